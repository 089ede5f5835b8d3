from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from clinicflow.flows import FlowEngine, build_engine
from clinicflow.flows.errors import (
    DependencyExistsError,
    DuplicateNameError,
    FlowError,
    FlowNotFoundError,
    PersistenceError,
    SlotUnavailableError,
    StepExecutionError,
    StepValidationError,
)
from clinicflow.flows.types import FlowContext

from .schemas import FlowErrorDetail, FlowErrorResponse


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/flows", tags=["flows"])


_STATUS_BY_ERROR: list[tuple[type[FlowError], int]] = [
    (FlowNotFoundError, status.HTTP_404_NOT_FOUND),
    (StepValidationError, 422),
    (SlotUnavailableError, status.HTTP_409_CONFLICT),
    (DuplicateNameError, status.HTTP_409_CONFLICT),
    (DependencyExistsError, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_502_BAD_GATEWAY),
    (StepExecutionError, status.HTTP_502_BAD_GATEWAY),
]

_ERROR_RESPONSES: dict = {
    code: {"model": FlowErrorResponse} for code in sorted({code for _, code in _STATUS_BY_ERROR})
}


@lru_cache(maxsize=1)
def get_flow_engine() -> FlowEngine:
    """FastAPI dependency returning the process-wide engine."""
    return build_engine()


@router.get("", response_model=list[str])
async def list_flows(engine: FlowEngine = Depends(get_flow_engine)) -> list[str]:
    return engine.flow_names()


@router.post(
    "/{flow_name}/execute",
    response_model=FlowContext,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
)
async def execute_flow(
    flow_name: str,
    payload: FlowContext,
    engine: FlowEngine = Depends(get_flow_engine),
) -> FlowContext:
    try:
        return await engine.execute_flow(flow_name, payload)
    except FlowError as e:
        code = _status_for(e)
        logger.info("Flow '%s' rejected with %s: %s", flow_name, code, e)
        detail = FlowErrorDetail(
            error=str(e),
            step=e.step,
            errors=e.errors if isinstance(e, StepValidationError) and e.errors else None,
        )
        raise HTTPException(status_code=code, detail=detail.model_dump(exclude_none=True)) from e


def _status_for(error: FlowError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
