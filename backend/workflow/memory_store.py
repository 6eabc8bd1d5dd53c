"""Dict-backed WorkflowRepository.

Behaves like the SQLAlchemy repository (ordering, optimistic versions,
one task per attempt) without a database, which makes it the store of
choice for engine tests and local experiments.
"""

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from core.exceptions import ConcurrentModificationError, ConflictError, NotFoundError
from core.utils import utc_now
from core.constants import ExecutionStatus
from workflow.models import (
    CreatorProfile,
    ExecutionRecord,
    InterventionTask,
    MessageTemplateRecord,
    StepAttempt,
    StepDefinition,
    WorkflowDefinition,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryWorkflowRepository:
    """In-memory implementation of the WorkflowRepository protocol."""

    def __init__(self):
        self.templates: dict[str, WorkflowDefinition] = {}
        self.steps: dict[str, StepDefinition] = {}
        self.creators: dict[str, CreatorProfile] = {}
        self.message_templates: dict[str, MessageTemplateRecord] = {}
        self.executions: dict[str, ExecutionRecord] = {}
        self.step_executions: dict[str, StepAttempt] = {}
        self.tasks: dict[str, InterventionTask] = {}
        self.script_assignments: dict[str, dict[str, Any]] = {}

    # ─── Seeding helpers ──────────────────────────────────────

    def add_template(self, template: WorkflowDefinition, steps: list[StepDefinition] = ()) -> WorkflowDefinition:
        self.templates[template.id] = template
        orders = {s.step_order for s in self.steps.values() if s.workflow_id == template.id}
        for step in steps:
            if step.step_order in orders:
                raise ConflictError(f"Duplicate step_order {step.step_order} in {template.id}")
            orders.add(step.step_order)
            self.steps[step.id] = step
        return template

    def add_creator(self, creator: CreatorProfile) -> CreatorProfile:
        self.creators[creator.id] = creator
        return creator

    def add_message_template(self, template: MessageTemplateRecord) -> MessageTemplateRecord:
        self.message_templates[template.id] = template
        return template

    # ─── Templates & steps ────────────────────────────────────

    async def get_template(self, template_id: str) -> Optional[WorkflowDefinition]:
        return self.templates.get(template_id)

    async def list_active_templates(self, brand_id: str, trigger_event: str) -> list[WorkflowDefinition]:
        return [
            t for t in self.templates.values()
            if t.brand_id == brand_id and t.trigger_event == trigger_event and t.is_active
        ]

    async def get_steps(self, workflow_id: str) -> list[StepDefinition]:
        steps = [s for s in self.steps.values() if s.workflow_id == workflow_id]
        return sorted(steps, key=lambda s: s.step_order)

    # ─── Creators & message templates ─────────────────────────

    async def get_creator(self, creator_id: str) -> Optional[CreatorProfile]:
        return self.creators.get(creator_id)

    async def update_creator_status(self, creator_id: str, status: str) -> str:
        creator = self.creators.get(creator_id)
        if creator is None:
            raise NotFoundError(f"Creator {creator_id} not found")
        old_status = creator.status
        creator.status = status
        return old_status

    async def get_message_template(self, brand_id: str, template_id: str) -> Optional[MessageTemplateRecord]:
        template = self.message_templates.get(template_id)
        if template is None or template.brand_id != brand_id:
            return None
        return template

    # ─── Executions ───────────────────────────────────────────

    async def create_execution(
        self,
        workflow_id: str,
        creator_id: str,
        brand_id: str,
        context: dict[str, Any],
        started_at: datetime,
    ) -> ExecutionRecord:
        record = ExecutionRecord(
            id=_new_id(),
            workflow_id=workflow_id,
            creator_id=creator_id,
            brand_id=brand_id,
            status=ExecutionStatus.RUNNING.value,
            context=context,
            started_at=started_at,
        )
        self.executions[record.id] = record
        return replace(record)

    async def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        record = self.executions.get(execution_id)
        return replace(record) if record else None

    async def update_execution(
        self,
        execution_id: str,
        patch: dict[str, Any],
        expected_version: int,
    ) -> ExecutionRecord:
        record = self.executions.get(execution_id)
        if record is None:
            raise NotFoundError(f"Execution {execution_id} not found")
        if record.version != expected_version:
            raise ConcurrentModificationError(
                f"Execution {execution_id} was modified concurrently "
                f"(expected version {expected_version}, found {record.version})"
            )
        updated = replace(record, **patch, version=record.version + 1)
        self.executions[execution_id] = updated
        return replace(updated)

    async def list_due_waits(self, now: datetime) -> list[ExecutionRecord]:
        return [
            replace(e) for e in self.executions.values()
            if e.status == ExecutionStatus.PAUSED.value
            and e.resume_at is not None
            and e.resume_at <= now
        ]

    # ─── Step attempts ────────────────────────────────────────

    async def create_step_execution(
        self,
        execution_id: str,
        step_id: str,
        attempt_number: int,
        input_data: dict[str, Any],
        started_at: datetime,
    ) -> StepAttempt:
        attempt = StepAttempt(
            id=_new_id(),
            execution_id=execution_id,
            step_id=step_id,
            attempt_number=attempt_number,
            status="running",
            input_data=input_data,
            started_at=started_at,
        )
        self.step_executions[attempt.id] = attempt
        return replace(attempt)

    async def update_step_execution(self, step_execution_id: str, patch: dict[str, Any]) -> StepAttempt:
        attempt = self.step_executions.get(step_execution_id)
        if attempt is None:
            raise NotFoundError(f"Step execution {step_execution_id} not found")
        updated = replace(attempt, **patch)
        self.step_executions[step_execution_id] = updated
        return replace(updated)

    async def list_step_executions(self, execution_id: str) -> list[StepAttempt]:
        return [replace(a) for a in self.step_executions.values() if a.execution_id == execution_id]

    # ─── Human intervention queue ─────────────────────────────

    async def create_intervention_task(self, **fields: Any) -> InterventionTask:
        step_execution_id = fields.get("step_execution_id")
        if step_execution_id and await self.find_task_for_attempt(step_execution_id):
            raise ConflictError(f"A task already exists for attempt {step_execution_id}")
        fields.setdefault("status", "pending")
        task = InterventionTask(id=_new_id(), created_at=utc_now(), **fields)
        self.tasks[task.id] = task
        return replace(task)

    async def get_intervention_task(self, task_id: str) -> Optional[InterventionTask]:
        task = self.tasks.get(task_id)
        return replace(task) if task else None

    async def find_task_for_attempt(self, step_execution_id: str) -> Optional[InterventionTask]:
        for task in self.tasks.values():
            if task.step_execution_id == step_execution_id:
                return replace(task)
        return None

    async def update_intervention_task(self, task_id: str, patch: dict[str, Any]) -> InterventionTask:
        task = self.tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Intervention task {task_id} not found")
        updated = replace(task, **patch)
        self.tasks[task_id] = updated
        return replace(updated)

    # ─── Script assignments ───────────────────────────────────

    async def create_script_assignment(self, **fields: Any) -> dict[str, Any]:
        assignment = {"id": _new_id(), "status": "assigned", "created_at": utc_now(), **fields}
        self.script_assignments[assignment["id"]] = assignment
        return dict(assignment)
