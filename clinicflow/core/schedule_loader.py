from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from clinicflow.core.schemas import ScheduleFile


def load_schedule(path: str | Path) -> ScheduleFile:
    """
    Load provider schedules from a YAML file.

    Expected structure:
      tenant_id: "t1"
      default_duration_minutes: 30
      providers:
        - id: "doc-1"
          windows:
            - {day_of_week: 1, start_time: "09:00", end_time: "17:00",
               lunch_start: "13:00", lunch_end: "14:00"}
          breaks: [...]
          appointments:
            - {date: 2024-06-03, start_time: "10:00", end_time: "10:30", status: confirmed}
    """
    schedule_path = Path(path)
    if not schedule_path.exists():
        raise FileNotFoundError(f"Schedule file not found: {schedule_path}")

    data = _load_yaml(schedule_path)
    return ScheduleFile(**data.get("schedule", data))


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
