"""Execution lifecycle state machine.

    running ──► running | waiting_human | paused | completed | failed
    waiting_human ──► running      (resume, task resolved)
    paused ──► running             (resume, wait elapsed)

completed and failed are terminal. An operator cancel is the same
``-> failed`` edge, additionally allowed from paused and waiting_human.

Every status write in the engine goes through ExecutionStateMachine so the
graph above is checked in exactly one place.
"""

from typing import Any, Optional

import structlog

from core.constants import ExecutionStatus
from core.exceptions import InvalidTransitionError
from workflow.models import ExecutionRecord

logger = structlog.get_logger(__name__)


TRANSITIONS: dict[ExecutionStatus, frozenset] = {
    ExecutionStatus.RUNNING: frozenset({
        ExecutionStatus.RUNNING,
        ExecutionStatus.WAITING_HUMAN,
        ExecutionStatus.PAUSED,
        ExecutionStatus.COMPLETED,
        ExecutionStatus.FAILED,
    }),
    ExecutionStatus.WAITING_HUMAN: frozenset({ExecutionStatus.RUNNING}),
    ExecutionStatus.PAUSED: frozenset({ExecutionStatus.RUNNING}),
    ExecutionStatus.COMPLETED: frozenset(),
    ExecutionStatus.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({ExecutionStatus.COMPLETED, ExecutionStatus.FAILED})
RESUMABLE_STATES = frozenset({ExecutionStatus.PAUSED, ExecutionStatus.WAITING_HUMAN})
CANCELLABLE_STATES = frozenset({
    ExecutionStatus.RUNNING,
    ExecutionStatus.PAUSED,
    ExecutionStatus.WAITING_HUMAN,
})


def can_transition(current: str, target: str) -> bool:
    """Check whether current -> target is on the transition graph."""
    try:
        return ExecutionStatus(target) in TRANSITIONS[ExecutionStatus(current)]
    except ValueError:
        return False


def assert_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless current -> target is legal."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def ensure_resumable(current: str) -> None:
    """Raise InvalidTransitionError unless an execution in this state can resume."""
    if current in RESUMABLE_STATES:
        return
    if current in TERMINAL_STATES:
        message = f"Execution is {current} and cannot be resumed"
    else:
        message = f"Execution is {current}; only paused or waiting_human executions can be resumed"
    raise InvalidTransitionError(current, ExecutionStatus.RUNNING.value, message)


class ExecutionStateMachine:
    """Owns status changes of execution records.

    Writes go through the repository with the record's version, so a
    concurrent writer surfaces as ConcurrentModificationError instead of a
    lost update.
    """

    def __init__(self, repository):
        self._repository = repository

    async def transition(
        self,
        execution: ExecutionRecord,
        target: ExecutionStatus,
        **fields: Any,
    ) -> ExecutionRecord:
        """Move execution to target, persisting any extra fields with it."""
        assert_transition(execution.status, target.value)
        patch = dict(fields)
        patch["status"] = target.value
        updated = await self._repository.update_execution(
            execution.id, patch, expected_version=execution.version
        )
        if execution.status != target.value:
            logger.info(
                "Execution status changed",
                execution_id=execution.id,
                from_status=execution.status,
                to_status=target.value,
            )
        return updated

    async def save(self, execution: ExecutionRecord, **fields: Any) -> ExecutionRecord:
        """Persist non-status fields (context, current step) of a running execution."""
        if "status" in fields:
            raise ValueError("Use transition() to change execution status")
        return await self._repository.update_execution(
            execution.id, dict(fields), expected_version=execution.version
        )

    async def cancel(
        self,
        execution: ExecutionRecord,
        reason: str,
        completed_at=None,
    ) -> ExecutionRecord:
        """Fail a non-terminal execution out of band."""
        if execution.status not in CANCELLABLE_STATES:
            raise InvalidTransitionError(
                execution.status,
                ExecutionStatus.FAILED.value,
                f"Execution is {execution.status} and cannot be cancelled",
            )
        updated = await self._repository.update_execution(
            execution.id,
            {
                "status": ExecutionStatus.FAILED.value,
                "error_message": reason,
                "completed_at": completed_at,
                "resume_at": None,
            },
            expected_version=execution.version,
        )
        logger.info(
            "Execution cancelled",
            execution_id=execution.id,
            from_status=execution.status,
            reason=reason,
        )
        return updated


def is_terminal(status: Optional[str]) -> bool:
    """True for completed and failed."""
    return status in TERMINAL_STATES
