"""Storage contracts the workflow engine depends on.

The engine receives a WorkflowRepository at construction. Two
implementations ship with the project:

- db.repository.SQLAlchemyWorkflowRepository (production, one session)
- workflow.memory_store.InMemoryWorkflowRepository (tests, local tooling)
"""

from datetime import datetime
from typing import Any, Optional, Protocol

from workflow.models import (
    CreatorProfile,
    ExecutionRecord,
    InterventionTask,
    MessageTemplateRecord,
    StepAttempt,
    StepDefinition,
    WorkflowDefinition,
)


class WorkflowRepository(Protocol):
    """Template, execution and task store used by the engine."""

    # Templates & steps (read-only for the engine)
    async def get_template(self, template_id: str) -> Optional[WorkflowDefinition]: ...

    async def list_active_templates(
        self, brand_id: str, trigger_event: str
    ) -> list[WorkflowDefinition]: ...

    async def get_steps(self, workflow_id: str) -> list[StepDefinition]:
        """Steps ordered by step_order ascending."""
        ...

    # Creators & message templates
    async def get_creator(self, creator_id: str) -> Optional[CreatorProfile]: ...

    async def update_creator_status(self, creator_id: str, status: str) -> str:
        """Set a creator's status and return the previous one."""
        ...

    async def get_message_template(
        self, brand_id: str, template_id: str
    ) -> Optional[MessageTemplateRecord]: ...

    # Executions
    async def create_execution(
        self,
        workflow_id: str,
        creator_id: str,
        brand_id: str,
        context: dict[str, Any],
        started_at: datetime,
    ) -> ExecutionRecord: ...

    async def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]: ...

    async def update_execution(
        self,
        execution_id: str,
        patch: dict[str, Any],
        expected_version: int,
    ) -> ExecutionRecord:
        """Apply patch and bump version.

        Raises:
            ConcurrentModificationError: If the stored version != expected_version
        """
        ...

    async def list_due_waits(self, now: datetime) -> list[ExecutionRecord]:
        """Paused executions whose resume_at is <= now."""
        ...

    # Step attempts
    async def create_step_execution(
        self,
        execution_id: str,
        step_id: str,
        attempt_number: int,
        input_data: dict[str, Any],
        started_at: datetime,
    ) -> StepAttempt: ...

    async def update_step_execution(
        self, step_execution_id: str, patch: dict[str, Any]
    ) -> StepAttempt: ...

    async def list_step_executions(self, execution_id: str) -> list[StepAttempt]:
        """All attempts of an execution in creation order."""
        ...

    # Human intervention queue
    async def create_intervention_task(self, **fields: Any) -> InterventionTask: ...

    async def get_intervention_task(self, task_id: str) -> Optional[InterventionTask]: ...

    async def find_task_for_attempt(
        self, step_execution_id: str
    ) -> Optional[InterventionTask]: ...

    async def update_intervention_task(
        self, task_id: str, patch: dict[str, Any]
    ) -> InterventionTask: ...

    # Script assignments (assign_script action)
    async def create_script_assignment(self, **fields: Any) -> dict[str, Any]: ...


class ResumeScheduler(Protocol):
    """Durable timer that calls WorkflowEngine.resume once a wait elapses."""

    def schedule_resume(self, execution_id: str, resume_at: datetime) -> None: ...
