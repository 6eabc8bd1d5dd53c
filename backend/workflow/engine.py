"""Workflow Execution Engine: ordered step runner for creator workflows.

Runs a workflow template against one creator:

- Steps run strictly in step_order, one at a time
- Condition steps may branch forward, never back
- Action steps may retry with exponential backoff
- Wait steps pause the execution until resume_at
- Human intervention steps park the execution until a reviewer resolves
  the task, then resume() continues after that step

Every attempt of every step is written as its own StepExecution record,
so the execution plus its attempts is the full audit trail of a run.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import structlog

from actions.registry import ActionHandlerRegistry
from app.config import Settings, get_settings
from core.constants import ExecutionStatus, StepExecutionStatus, StepType, TaskStatus
from core.exceptions import (
    ActionExecutionError,
    ConcurrentModificationError,
    GateNotSatisfiedError,
    NotFoundError,
    PipelineException,
    TemplateInactiveError,
)
from core.utils import ensure_utc, utc_now
from workflow.context import ExecutionContext
from workflow.dispatcher import NextAction, StepDispatcher, StepOutcome
from workflow.models import (
    CreatorProfile,
    ExecutionRecord,
    StepAttempt,
    StepDefinition,
    WorkflowDefinition,
)
from workflow.retry import RetryPolicy
from workflow.state_machine import ExecutionStateMachine, ensure_resumable

logger = structlog.get_logger(__name__)


class StepFailedError(Exception):
    """A step failed for good; the execution must fail with this message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass
class _Run:
    """Everything one engine invocation needs about the execution it drives."""
    execution: ExecutionRecord
    template: WorkflowDefinition
    creator: Optional[CreatorProfile]
    steps: list[StepDefinition]
    context: ExecutionContext

    def index_of(self, step_id: Optional[str]) -> int:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        raise NotFoundError(f"Step {step_id} not found in workflow {self.template.id}")


class WorkflowEngine:
    """Creates and drives workflow executions.

    The engine holds no per-execution state between calls; everything it
    needs is loaded through the repository, so many executions may be driven
    concurrently by separate engine calls.
    """

    def __init__(
        self,
        repository,
        registry: ActionHandlerRegistry,
        settings: Optional[Settings] = None,
        resume_scheduler=None,
        notifier=None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._repository = repository
        self._registry = registry.freeze()
        self._settings = settings or get_settings()
        self._scheduler = resume_scheduler
        self._notifier = notifier
        self._sleep = sleep
        self._clock = clock
        self._state = ExecutionStateMachine(repository)
        self._dispatcher = StepDispatcher(repository, self._registry, clock=clock)

    @property
    def dispatcher(self) -> StepDispatcher:
        return self._dispatcher

    # ─── Entry points ──────────────────────────────────────────

    async def start(
        self,
        template_id: str,
        creator_id: str,
        brand_id: str,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> ExecutionRecord:
        """Start a new execution of a template for a creator.

        Returns the execution as it stands when the engine stops: completed,
        failed, paused or waiting_human.

        Raises:
            NotFoundError: Unknown template or creator
            TemplateInactiveError: Template is deactivated
        """
        template = await self._repository.get_template(template_id)
        if template is None or template.brand_id != brand_id:
            raise NotFoundError(f"Workflow template {template_id} not found")
        if not template.is_active:
            raise TemplateInactiveError(f"Workflow template '{template.name}' is not active")

        creator = await self._repository.get_creator(creator_id)
        if creator is None:
            raise NotFoundError(f"Creator {creator_id} not found")

        steps = await self._repository.get_steps(template.id)
        now = self._clock()
        context = ExecutionContext.seed(creator, template, brand_id, now, extra_context)
        execution = await self._repository.create_execution(
            workflow_id=template.id,
            creator_id=creator.id,
            brand_id=brand_id,
            context=context.to_dict(),
            started_at=now,
        )
        logger.info(
            "Execution started",
            execution_id=execution.id,
            workflow_id=template.id,
            creator_id=creator.id,
            steps=len(steps),
        )

        run = _Run(execution, template, creator, steps, context)
        return await self._run(run, 0)

    async def resume(self, execution_id: str) -> ExecutionRecord:
        """Continue a paused or waiting_human execution after its gate step.

        Raises:
            NotFoundError: Unknown execution
            InvalidTransitionError: Execution is not paused / waiting_human
            GateNotSatisfiedError: Wait not elapsed or task not resolved
            ConcurrentModificationError: Another resume won the race
        """
        execution = await self._repository.get_execution(execution_id)
        if execution is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        ensure_resumable(execution.status)

        template = await self._repository.get_template(execution.workflow_id)
        if template is None:
            raise NotFoundError(f"Workflow template {execution.workflow_id} not found")
        steps = await self._repository.get_steps(template.id)
        creator = await self._repository.get_creator(execution.creator_id)
        run = _Run(execution, template, creator, steps, ExecutionContext.from_dict(execution.context))
        index = run.index_of(execution.current_step_id)

        pending = await self._pending_attempt(execution)
        now = self._clock()
        output = await self._check_gate(execution, pending, now)

        run.execution = await self._state.transition(
            execution, ExecutionStatus.RUNNING, resume_at=None
        )
        await self._repository.update_step_execution(pending.id, {
            "status": StepExecutionStatus.COMPLETED.value,
            "output_data": output,
            "completed_at": now,
        })
        run.context.record_output(pending.step_id, output)
        run.context.retry_count = 0
        logger.info(
            "Execution resumed",
            execution_id=execution.id,
            step_id=pending.step_id,
            from_status=execution.status,
        )
        return await self._run(run, index + 1)

    async def cancel(self, execution_id: str, reason: str = "Cancelled by operator") -> ExecutionRecord:
        """Fail a non-terminal execution out of band.

        Open attempts are closed as failed. Review tasks are left to reviewers.
        """
        execution = await self._repository.get_execution(execution_id)
        if execution is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        now = self._clock()
        updated = await self._state.cancel(execution, reason, completed_at=now)
        for attempt in await self._repository.list_step_executions(execution_id):
            if attempt.status in (StepExecutionStatus.WAITING.value, StepExecutionStatus.RUNNING.value):
                await self._repository.update_step_execution(attempt.id, {
                    "status": StepExecutionStatus.FAILED.value,
                    "error_message": reason,
                    "completed_at": now,
                })
        return updated

    # ─── Resume gate ───────────────────────────────────────────

    async def _pending_attempt(self, execution: ExecutionRecord) -> StepAttempt:
        attempts = await self._repository.list_step_executions(execution.id)
        for attempt in reversed(attempts):
            if (
                attempt.step_id == execution.current_step_id
                and attempt.status == StepExecutionStatus.WAITING.value
            ):
                return attempt
        raise GateNotSatisfiedError(
            f"Execution {execution.id} has no waiting attempt for step {execution.current_step_id}"
        )

    async def _check_gate(
        self,
        execution: ExecutionRecord,
        pending: StepAttempt,
        now: datetime,
    ) -> dict[str, Any]:
        """Verify the external gate holds; return the output that closes the gated attempt."""
        if execution.status == ExecutionStatus.PAUSED.value:
            resume_at = ensure_utc(execution.resume_at)
            if resume_at is not None and now < resume_at:
                raise GateNotSatisfiedError(
                    f"Execution {execution.id} is waiting until {resume_at.isoformat()}"
                )
            return {
                "resume_at": resume_at.isoformat() if resume_at else None,
                "resumed_at": now.isoformat(),
            }

        task = await self._repository.find_task_for_attempt(pending.id)
        if task is None:
            raise GateNotSatisfiedError(f"No review task found for execution {execution.id}")
        if task.status not in (TaskStatus.COMPLETED.value, TaskStatus.SKIPPED.value):
            raise GateNotSatisfiedError(
                f"Review task '{task.title}' is {task.status}; complete or skip it before resuming"
            )
        return {
            "task_id": task.id,
            "task_status": task.status,
            "completed_by": task.completed_by,
            "resolution_notes": task.resolution_notes,
            "resumed_at": now.isoformat(),
        }

    # ─── Step loop ─────────────────────────────────────────────

    async def _run(self, run: _Run, index: int) -> ExecutionRecord:
        """Drive the execution from steps[index] until it stops.

        Anything that escapes the step loop fails the execution, except a lost
        version race: the other writer owns the execution then.
        """
        try:
            return await self._drive(run, index)
        except ConcurrentModificationError:
            raise
        except Exception as e:
            logger.error("Execution aborted", execution_id=run.execution.id, error=str(e), exc_info=True)
            return await self._fail(run, f"Execution aborted: {e}")

    async def _drive(self, run: _Run, index: int) -> ExecutionRecord:
        while index < len(run.steps):
            step = run.steps[index]
            run.execution = await self._state.save(
                run.execution,
                current_step_id=step.id,
                context=run.context.to_dict(),
            )

            try:
                attempt, outcome = await self._execute_step(run, step)
            except StepFailedError as failure:
                return await self._fail(run, failure.message)

            if outcome.next_action == NextAction.PAUSE:
                return await self._pause(run, step, attempt, outcome)
            if outcome.next_action == NextAction.WAIT_HUMAN:
                return await self._wait_for_human(run, step, attempt, outcome)

            await self._complete_attempt(run, step, attempt, outcome.output)
            if outcome.next_action == NextAction.BRANCH:
                target = run.index_of(outcome.next_step_id)
                await self._skip_steps(run, run.steps[index + 1:target])
                index = target
            else:
                index += 1

        run.execution = await self._state.transition(
            run.execution,
            ExecutionStatus.COMPLETED,
            completed_at=self._clock(),
            context=run.context.to_dict(),
        )
        logger.info("Execution completed", execution_id=run.execution.id)
        return run.execution

    async def _execute_step(self, run: _Run, step: StepDefinition) -> tuple[StepAttempt, StepOutcome]:
        """Run one step, retrying per its RetryPolicy. Each attempt gets its own record."""
        policy: Optional[RetryPolicy] = None
        attempt_number = 1
        while True:
            attempt = await self._repository.create_step_execution(
                execution_id=run.execution.id,
                step_id=step.id,
                attempt_number=attempt_number,
                input_data=self._dispatcher.snapshot_inputs(step, run.context),
                started_at=self._clock(),
            )
            log = logger.bind(
                execution_id=run.execution.id,
                step_id=step.id,
                step_type=step.step_type,
                attempt=attempt_number,
            )
            try:
                if policy is None:
                    policy = self._retry_policy(step)
                outcome = await self._dispatcher.dispatch(
                    step, run.context, attempt, run.execution, run.creator, run.steps
                )
                return attempt, outcome

            except ConcurrentModificationError:
                raise

            except ActionExecutionError as e:
                await self._fail_attempt(attempt, e.message)
                decision = policy.decide(attempt_number)
                if not decision.retry:
                    if policy.enabled:
                        raise StepFailedError(
                            f"Step '{step.name}' failed after {attempt_number} attempts: {e.message}"
                        )
                    raise StepFailedError(f"Step '{step.name}' failed: {e.message}")

                run.context.retry_count += 1
                run.context.last_error = e.message
                run.execution = await self._state.save(run.execution, context=run.context.to_dict())
                log.warning("Step failed, retrying", delay=decision.delay, error=e.message)
                await self._sleep(decision.delay)
                attempt_number += 1

            except PipelineException as e:
                await self._fail_attempt(attempt, e.message)
                log.error("Step failed", error=e.message)
                raise StepFailedError(f"Step '{step.name}' failed: {e.message}")

            except Exception as e:
                await self._fail_attempt(attempt, str(e))
                log.error("Step raised unexpected error", error=str(e), exc_info=True)
                raise StepFailedError(f"Step '{step.name}' failed: {e}")

    # ─── Outcome handling ──────────────────────────────────────

    async def _complete_attempt(
        self,
        run: _Run,
        step: StepDefinition,
        attempt: StepAttempt,
        output: dict[str, Any],
    ) -> None:
        await self._repository.update_step_execution(attempt.id, {
            "status": StepExecutionStatus.COMPLETED.value,
            "output_data": output,
            "completed_at": self._clock(),
        })
        run.context.record_output(step.id, output)
        run.context.retry_count = 0
        run.context.last_error = None

    async def _fail_attempt(self, attempt: StepAttempt, error: str) -> None:
        await self._repository.update_step_execution(attempt.id, {
            "status": StepExecutionStatus.FAILED.value,
            "error_message": error,
            "completed_at": self._clock(),
        })

    async def _skip_steps(self, run: _Run, skipped: list[StepDefinition]) -> None:
        """Leave a skipped record for every step a branch jumped over."""
        now = self._clock()
        for step in skipped:
            attempt = await self._repository.create_step_execution(
                execution_id=run.execution.id,
                step_id=step.id,
                attempt_number=1,
                input_data={},
                started_at=now,
            )
            await self._repository.update_step_execution(attempt.id, {
                "status": StepExecutionStatus.SKIPPED.value,
                "completed_at": now,
            })

    async def _pause(
        self,
        run: _Run,
        step: StepDefinition,
        attempt: StepAttempt,
        outcome: StepOutcome,
    ) -> ExecutionRecord:
        await self._repository.update_step_execution(attempt.id, {
            "status": StepExecutionStatus.WAITING.value,
            "output_data": outcome.output,
        })
        run.execution = await self._state.transition(
            run.execution,
            ExecutionStatus.PAUSED,
            current_step_id=step.id,
            resume_at=outcome.resume_at,
            context=run.context.to_dict(),
        )
        logger.info(
            "Execution paused",
            execution_id=run.execution.id,
            step_id=step.id,
            resume_at=outcome.resume_at.isoformat(),
        )
        if self._scheduler is not None:
            try:
                self._scheduler.schedule_resume(run.execution.id, outcome.resume_at)
            except Exception as e:
                # The due-wait poller picks the execution up anyway.
                logger.warning("Failed to schedule resume", execution_id=run.execution.id, error=str(e))
        return run.execution

    async def _wait_for_human(
        self,
        run: _Run,
        step: StepDefinition,
        attempt: StepAttempt,
        outcome: StepOutcome,
    ) -> ExecutionRecord:
        await self._repository.update_step_execution(attempt.id, {
            "status": StepExecutionStatus.WAITING.value,
            "output_data": outcome.output,
        })
        run.execution = await self._state.transition(
            run.execution,
            ExecutionStatus.WAITING_HUMAN,
            current_step_id=step.id,
            context=run.context.to_dict(),
        )
        logger.info(
            "Execution waiting for human",
            execution_id=run.execution.id,
            step_id=step.id,
            task_id=outcome.task_id,
        )
        if self._notifier is not None:
            try:
                await self._notifier.alert_review_needed(
                    title=step.config.get("intervention_title") or step.name,
                    execution_id=run.execution.id,
                    task_id=outcome.task_id,
                    brand_id=run.execution.brand_id,
                    creator_id=run.execution.creator_id,
                    assignee=step.config.get("assignee"),
                    task_priority=step.config.get("priority") or "medium",
                )
            except Exception as e:
                logger.warning("Intervention notification failed", execution_id=run.execution.id, error=str(e))
        return run.execution

    async def _fail(self, run: _Run, message: str) -> ExecutionRecord:
        run.context.last_error = message
        run.execution = await self._state.transition(
            run.execution,
            ExecutionStatus.FAILED,
            error_message=message,
            completed_at=self._clock(),
            context=run.context.to_dict(),
        )
        logger.error("Execution failed", execution_id=run.execution.id, error=message)
        if self._notifier is not None:
            try:
                await self._notifier.alert_execution_failed(
                    workflow_name=run.template.name,
                    execution_id=run.execution.id,
                    creator_name=run.creator.name if run.creator else run.execution.creator_id,
                    error=message,
                    brand_id=run.execution.brand_id,
                )
            except Exception as e:
                logger.warning("Failure notification failed", execution_id=run.execution.id, error=str(e))
        return run.execution
