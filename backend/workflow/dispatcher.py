"""Step dispatcher: performs one step's effect and reports what comes next.

The dispatcher never changes execution status. It returns a StepOutcome and
the engine drives the state machine from it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from actions.base_action import ActionContext
from actions.registry import ActionHandlerRegistry
from core.constants import StepType, TaskPriority
from core.exceptions import (
    MalformedConditionError,
    UnknownActionError,
    WorkflowConfigurationError,
)
from core.utils import parse_datetime, utc_now
from workflow.conditions import ConditionEvaluator
from workflow.context import ExecutionContext, substitute_inputs
from workflow.models import CreatorProfile, ExecutionRecord, StepAttempt, StepDefinition

logger = structlog.get_logger(__name__)


class NextAction(str, Enum):
    """What the engine should do after a step."""
    CONTINUE = "continue"
    BRANCH = "branch"
    PAUSE = "pause"
    WAIT_HUMAN = "wait_human"


@dataclass
class StepOutcome:
    """Result of dispatching one step."""
    output: dict[str, Any] = field(default_factory=dict)
    next_action: NextAction = NextAction.CONTINUE
    next_step_id: Optional[str] = None
    resume_at: Optional[datetime] = None
    task_id: Optional[str] = None


class StepDispatcher:
    """Executes individual workflow steps.

    Action steps are delegated to the ActionHandlerRegistry; condition,
    wait and human_intervention steps are handled here.
    """

    def __init__(
        self,
        repository,
        registry: ActionHandlerRegistry,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repository = repository
        self._registry = registry
        self._clock = clock
        self._evaluator = ConditionEvaluator()
        self._handlers = {
            StepType.ACTION.value: self._dispatch_action,
            StepType.CONDITION.value: self._dispatch_condition,
            StepType.WAIT.value: self._dispatch_wait,
            StepType.HUMAN_INTERVENTION.value: self._dispatch_human_intervention,
        }

    # ─── Inputs ────────────────────────────────────────────────

    @staticmethod
    def static_inputs(step: StepDefinition, context: ExecutionContext) -> dict[str, Any]:
        """The step's own action_inputs with {VAR} tokens substituted."""
        raw = step.config.get("action_inputs") or {}
        if not isinstance(raw, dict):
            raise WorkflowConfigurationError(f"Step '{step.name}': action_inputs must be an object")
        return substitute_inputs(raw, context.variables)

    def prepare_inputs(self, step: StepDefinition, context: ExecutionContext) -> dict[str, Any]:
        """Context variables overlaid with the step's inputs (step inputs win)."""
        inputs = dict(context.variables)
        inputs.update(self.static_inputs(step, context))
        return inputs

    def snapshot_inputs(self, step: StepDefinition, context: ExecutionContext) -> dict[str, Any]:
        """Input snapshot stored on the step attempt."""
        if step.step_type == StepType.ACTION.value:
            try:
                return {
                    "action_id": step.config.get("action_id"),
                    "action_inputs": self.static_inputs(step, context),
                }
            except WorkflowConfigurationError:
                return dict(step.config)
        return dict(step.config)

    # ─── Dispatch ──────────────────────────────────────────────

    async def dispatch(
        self,
        step: StepDefinition,
        context: ExecutionContext,
        attempt: StepAttempt,
        execution: ExecutionRecord,
        creator: Optional[CreatorProfile],
        steps: list[StepDefinition],
    ) -> StepOutcome:
        """Run one step.

        Raises:
            WorkflowConfigurationError: Misconfigured step (fatal)
            ActionExecutionError: Transient action failure (retryable)
        """
        handler = self._handlers.get(step.step_type)
        if handler is None:
            raise WorkflowConfigurationError(f"Unknown step type: {step.step_type}")
        return await handler(step, context, attempt, execution, creator, steps)

    async def _dispatch_action(self, step, context, attempt, execution, creator, steps) -> StepOutcome:
        action_id = step.config.get("action_id")
        if not action_id:
            raise WorkflowConfigurationError(f"Step '{step.name}' has no action_id")
        action = self._registry.get(action_id)
        if action is None:
            raise UnknownActionError(action_id)

        inputs = self.prepare_inputs(step, context)
        output = await action.run(inputs, ActionContext(
            execution=execution,
            step=step,
            context=context,
            creator=creator,
            repository=self._repository,
            step_execution_id=attempt.id,
        ))
        return StepOutcome(output=output)

    async def _dispatch_condition(self, step, context, attempt, execution, creator, steps) -> StepOutcome:
        conditions = self._evaluator.validate(step.config.get("conditions"))
        later_ids = {s.id for s in steps if s.step_order > step.step_order}
        all_ids = {s.id for s in steps}
        for index, condition in enumerate(conditions):
            target = condition.get("next_step_id")
            if not target:
                continue
            if target not in all_ids:
                raise MalformedConditionError(f"Condition #{index} branches to unknown step {target}")
            if target not in later_ids:
                raise MalformedConditionError(
                    f"Condition #{index} branches backwards to step {target}; workflows only move forward"
                )

        match = self._evaluator.evaluate(conditions, context)
        if match is None or not match.next_step_id:
            return StepOutcome(output={
                "matched": match is not None,
                "matched_index": match.index if match else None,
                "next_step_id": None,
            })

        return StepOutcome(
            output={
                "matched": True,
                "matched_index": match.index,
                "field_name": match.field_name,
                "operator": match.operator,
                "next_step_id": match.next_step_id,
            },
            next_action=NextAction.BRANCH,
            next_step_id=match.next_step_id,
        )

    def compute_resume_at(self, step: StepDefinition, now: datetime) -> datetime:
        """Resume time of a wait step from wait_duration (seconds) or wait_until (ISO)."""
        config = step.config
        if config.get("wait_duration") is not None:
            try:
                seconds = float(config["wait_duration"])
            except (TypeError, ValueError):
                raise WorkflowConfigurationError(f"Step '{step.name}': wait_duration must be a number of seconds")
            if seconds < 0:
                raise WorkflowConfigurationError(f"Step '{step.name}': wait_duration cannot be negative")
            return now + timedelta(seconds=seconds)
        if config.get("wait_until"):
            try:
                return parse_datetime(str(config["wait_until"]))
            except ValueError:
                raise WorkflowConfigurationError(f"Step '{step.name}': invalid wait_until {config['wait_until']!r}")
        raise WorkflowConfigurationError(f"Step '{step.name}': wait step needs wait_duration or wait_until")

    async def _dispatch_wait(self, step, context, attempt, execution, creator, steps) -> StepOutcome:
        now = self._clock()
        resume_at = self.compute_resume_at(step, now)
        if resume_at <= now:
            return StepOutcome(output={"resume_at": resume_at.isoformat(), "waited": False})
        return StepOutcome(
            output={"resume_at": resume_at.isoformat()},
            next_action=NextAction.PAUSE,
            resume_at=resume_at,
        )

    async def _dispatch_human_intervention(self, step, context, attempt, execution, creator, steps) -> StepOutcome:
        priority = step.config.get("priority") or TaskPriority.MEDIUM.value
        try:
            TaskPriority(priority)
        except ValueError:
            raise WorkflowConfigurationError(f"Step '{step.name}': unknown priority {priority!r}")

        task = await self._repository.find_task_for_attempt(attempt.id)
        if task is None:
            task = await self._repository.create_intervention_task(
                execution_id=execution.id,
                step_id=step.id,
                step_execution_id=attempt.id,
                creator_id=execution.creator_id,
                brand_id=execution.brand_id,
                assigned_to=step.config.get("assignee"),
                priority=priority,
                title=context.substitute(step.config.get("intervention_title") or step.name),
                description=context.substitute(step.config.get("intervention_description") or "") or None,
                context=context.to_dict(),
            )
            logger.info(
                "Intervention task created",
                execution_id=execution.id,
                step_id=step.id,
                task_id=task.id,
            )
        return StepOutcome(
            output={"task_id": task.id},
            next_action=NextAction.WAIT_HUMAN,
            task_id=task.id,
        )
