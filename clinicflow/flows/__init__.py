from __future__ import annotations

from clinicflow.flows import booking, categories, services
from clinicflow.flows.engine import FlowEngine


def build_engine(backend=None) -> FlowEngine:
    """Create the process-wide engine and register every flow on it."""
    if backend is None:
        from clinicflow.integrations.backend import BackendAdapter

        backend = BackendAdapter.from_settings()

    engine = FlowEngine()
    booking.register(engine, backend)
    services.register(engine, backend)
    categories.register(engine, backend)
    return engine


__all__ = ["FlowEngine", "build_engine"]
