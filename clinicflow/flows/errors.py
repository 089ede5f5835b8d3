from __future__ import annotations


class FlowError(Exception):
    """Base class for flow failures. ``step`` names the step that failed, once known."""

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.message = message
        self.step = step


class FlowNotFoundError(FlowError):
    def __init__(self, flow_name: str):
        super().__init__(f"Flow '{flow_name}' not found")
        self.flow_name = flow_name


class StepValidationError(FlowError):
    """A step's precondition failed before (or while) checking its input."""

    def __init__(self, step: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        message = f"Validation failed for step: {step}"
        if self.errors:
            message = f"{message}: {', '.join(self.errors)}"
        super().__init__(message, step=step)


class StepExecutionError(FlowError):
    """Wraps a non-flow exception raised by a step action."""

    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"Step '{step}' failed: {cause}", step=step)
        self.cause = cause


class SlotUnavailableError(FlowError):
    def __init__(self, provider_id: str, date: str, time: str):
        super().__init__(f"Requested time slot {date} {time} is not available for provider {provider_id}")
        self.provider_id = provider_id
        self.date = date
        self.time = time


class DependencyExistsError(FlowError):
    def __init__(self, category_id: str, count: int):
        super().__init__(
            f"Category {category_id} cannot be deleted: {count} active service(s) still reference it. "
            "Reassign or delete those services first."
        )
        self.category_id = category_id
        self.count = count


class DuplicateNameError(FlowError):
    def __init__(self, kind: str, name: str, tenant_id: str):
        super().__init__(f'A {kind} with the name "{name}" already exists in tenant {tenant_id}')
        self.kind = kind
        self.name = name
        self.tenant_id = tenant_id


class PersistenceError(FlowError):
    """A collaborator HTTP call failed or returned a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
