"""Custom exceptions for the creator pipeline engine."""

from typing import Optional


class PipelineException(Exception):
    """Base exception for the creator pipeline engine."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code.

        Args:
            message: Exception message
            status_code: HTTP status code
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(PipelineException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize NotFoundError with 404 status code."""
        super().__init__(message, 404)


class ValidationError(PipelineException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation failed"):
        """Initialize ValidationError with 422 status code."""
        super().__init__(message, 422)


class ConflictError(PipelineException):
    """Resource conflict exception."""

    def __init__(self, message: str = "Resource conflict"):
        """Initialize ConflictError with 409 status code."""
        super().__init__(message, 409)


# ─── Workflow engine errors ────────────────────────────────────

class WorkflowConfigurationError(ValidationError):
    """A step is misconfigured. Never retried; fails the execution."""


class UnknownActionError(WorkflowConfigurationError):
    """The step references an action id with no registered handler."""

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"Unknown action: {action_id}")


class MalformedConditionError(WorkflowConfigurationError):
    """A condition step cannot be evaluated."""


class MissingInputError(WorkflowConfigurationError):
    """An action handler was called without a required input."""

    def __init__(self, action_type: str, input_name: str):
        self.action_type = action_type
        self.input_name = input_name
        super().__init__(f"{action_type}: missing required input '{input_name}'")


class TemplateInactiveError(ValidationError):
    """A workflow template was started while deactivated."""


class GateNotSatisfiedError(ValidationError):
    """Resume was requested before the wait elapsed or the task was resolved."""


class InvalidTransitionError(ConflictError):
    """An execution status change is not on the state machine graph."""

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Illegal execution transition: {current} -> {target}")


class ConcurrentModificationError(ConflictError):
    """The execution row changed underneath the writer (stale version)."""


class ActionExecutionError(PipelineException):
    """Transient failure inside an action handler. Retryable."""

    def __init__(self, message: str):
        super().__init__(message, 502)
