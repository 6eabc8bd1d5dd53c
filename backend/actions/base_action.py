"""
Base action interface for all workflow action handlers.

Every action id a workflow step can reference (send_email, update_status,
assign_script, ...) is implemented by a subclass of BaseAction.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog

from core.exceptions import ActionExecutionError, MissingInputError, PipelineException
from workflow.context import ExecutionContext
from workflow.models import CreatorProfile, ExecutionRecord, StepDefinition

logger = structlog.get_logger(__name__)


@dataclass
class ActionContext:
    """What an action handler may see and touch while it runs."""

    execution: ExecutionRecord
    step: StepDefinition
    context: ExecutionContext
    creator: Optional[CreatorProfile]
    repository: Any
    step_execution_id: Optional[str] = None

    @property
    def brand_id(self) -> str:
        return self.execution.brand_id


class BaseAction(ABC):
    """
    Abstract base class for all action handlers.

    Subclasses must implement:
    - execute(inputs, ctx) -> dict of outputs
    - action_type (class property)
    - display_name (class property)
    """

    action_type: str = "base"
    display_name: str = "Base Action"
    description: str = "Abstract base action"
    required_inputs: tuple = ()

    @abstractmethod
    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        """
        Execute the action.

        Args:
            inputs: Context variables overlaid with the step's action_inputs,
                with {VAR} tokens already substituted
            ctx: Execution, step, creator and repository for side effects

        Returns:
            Output mapping, stored under the step id in the execution context

        Raises:
            WorkflowConfigurationError: Bad inputs (not retried)
            ActionExecutionError: Transient failure (retried if the step opts in)
        """
        pass

    def require(self, inputs: Dict[str, Any], name: str) -> Any:
        """Return a required input or raise MissingInputError."""
        value = inputs.get(name)
        if value is None or value == "":
            raise MissingInputError(self.action_type, name)
        return value

    async def run(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        """
        Run the action with timing and error classification.

        This is the main entry point called by the step dispatcher. Pipeline
        errors pass through unchanged; anything else is treated as transient.
        """
        start = time.monotonic()
        logger.info(
            "Action starting",
            action_type=self.action_type,
            execution_id=ctx.execution.id,
            step_id=ctx.step.id,
        )
        for name in self.required_inputs:
            self.require(inputs, name)
        try:
            output = await self.execute(inputs, ctx)
        except PipelineException as e:
            logger.warning(
                "Action failed",
                action_type=self.action_type,
                error=e.message,
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise
        except Exception as e:
            logger.error(
                "Action raised unexpected error",
                action_type=self.action_type,
                error=str(e),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise ActionExecutionError(f"{self.action_type} failed: {e}") from e

        logger.info(
            "Action completed",
            action_type=self.action_type,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return output or {}

    @classmethod
    def get_input_schema(cls) -> Dict[str, Any]:
        """
        Return JSON schema for the action's inputs.

        Override in subclasses to define the expected input shape.
        """
        return {"type": "object", "properties": {}, "required": list(cls.required_inputs)}
