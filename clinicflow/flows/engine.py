"""
Flow Engine — runs named business flows step by step.

If a step fails, the steps that already completed in the same run are
rolled back in reverse order before the error propagates. Rollback is best
effort: a failing rollback is logged and the remaining ones still run.

Usage:
    engine = FlowEngine()
    engine.register_flow(BusinessFlow(name="demo", steps=[...]))
    ctx = await engine.execute_flow("demo", FlowContext(...))
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from clinicflow.flows.errors import FlowError, FlowNotFoundError, StepExecutionError, StepValidationError
from clinicflow.flows.types import BusinessFlow, FlowContext, FlowEvent, FlowStep

logger = logging.getLogger(__name__)

Listener = Callable[[FlowContext], None]


class FlowEngine:
    def __init__(self):
        self._flows: dict[str, BusinessFlow] = {}
        self._listeners: dict[FlowEvent, list[Listener]] = {}
        self._setup_default_listeners()

    def register_flow(self, flow: BusinessFlow) -> None:
        """Register a flow under its name. A second registration with the same name wins."""
        if flow.name in self._flows:
            logger.warning("Flow '%s' is already registered, overwriting", flow.name)
        self._flows[flow.name] = flow

    def flow_names(self) -> list[str]:
        return sorted(self._flows)

    def get_flow(self, name: str) -> BusinessFlow:
        flow = self._flows.get(name)
        if flow is None:
            raise FlowNotFoundError(name)
        return flow

    async def execute_flow(self, name: str, initial_context: FlowContext) -> FlowContext:
        """
        Execute a registered flow.

        Returns the context produced by the last step. On failure every
        completed step with a rollback is compensated (newest first) and the
        error is re-raised with ``step`` set to the failing step. Errors that
        are not ``FlowError`` are wrapped in ``StepExecutionError``.
        """
        flow = self.get_flow(name)

        ctx = _merge_context(flow.context, initial_context)
        completed: list[FlowStep] = []

        for step in flow.steps:
            try:
                logger.debug("Executing flow step: %s.%s", name, step.name)
                if step.validate is not None and not step.validate(ctx):
                    raise StepValidationError(step.name)
                ctx = await step.action(ctx)
            except Exception as e:
                logger.error("Flow '%s' failed at step '%s': %s", name, step.name, e)
                await self._rollback(name, completed, ctx)
                if isinstance(e, FlowError):
                    if e.step is None:
                        e.step = step.name
                    raise
                raise StepExecutionError(step.name, e) from e

            completed.append(step)
            logger.debug("Step '%s' completed successfully", step.name)

        logger.info("Flow '%s' completed successfully", name)
        return ctx

    async def _rollback(self, flow_name: str, completed: list[FlowStep], ctx: FlowContext) -> FlowContext:
        for step in reversed(completed):
            if step.rollback is None:
                continue
            try:
                logger.info("Rolling back step: %s.%s", flow_name, step.name)
                ctx = await step.rollback(ctx)
            except Exception:
                logger.exception("Rollback failed for step '%s'", step.name)
        return ctx

    def on(self, event: FlowEvent | str, listener: Listener) -> None:
        self._listeners.setdefault(FlowEvent(event), []).append(listener)

    def emit(self, event: FlowEvent | str, ctx: FlowContext) -> None:
        """Call listeners in registration order; a failing listener never reaches the caller."""
        for listener in self._listeners.get(FlowEvent(event), []):
            try:
                listener(ctx)
            except Exception:
                logger.exception("Event listener error for '%s'", FlowEvent(event).value)

    def _setup_default_listeners(self) -> None:
        self.on(
            FlowEvent.APPOINTMENT_CREATED,
            lambda ctx: logger.info(
                "New appointment created: %s", ctx.appointment.id if ctx.appointment else None
            ),
        )
        self.on(
            FlowEvent.PAYMENT_COMPLETED,
            lambda ctx: logger.info(
                "Payment completed: %s", ctx.payment.reference_id if ctx.payment else None
            ),
        )
        self.on(
            FlowEvent.NOTIFICATION_SENT,
            lambda ctx: logger.info("Notifications sent: %d", len(ctx.notifications or [])),
        )


def _merge_context(template: FlowContext, initial: FlowContext) -> FlowContext:
    data = template.model_dump(exclude_unset=True)
    data.update(initial.model_dump(exclude_unset=True))
    return FlowContext.model_validate(data)
