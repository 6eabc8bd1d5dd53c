"""SQLAlchemy implementation of the workflow engine's repository.

One repository wraps one AsyncSession. Engine writes are committed as they
happen so the step audit trail survives a crash half-way through a run.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import ExecutionStatus, StepExecutionStatus
from core.exceptions import ConcurrentModificationError, ConflictError, NotFoundError
from core.utils import ensure_utc
from db.models import (
    Creator,
    HumanInterventionTask,
    MessageTemplate,
    ScriptAssignment,
    StepExecution,
    WorkflowExecution,
    WorkflowStep,
    WorkflowTemplate,
)
from services.base import BaseService
from workflow.models import (
    CreatorProfile,
    ExecutionRecord,
    InterventionTask,
    MessageTemplateRecord,
    StepAttempt,
    StepDefinition,
    WorkflowDefinition,
)


# ─── Row -> record converters ─────────────────────────────────

def to_workflow_definition(row: WorkflowTemplate) -> WorkflowDefinition:
    return WorkflowDefinition(
        id=row.id,
        brand_id=row.brand_id,
        name=row.name,
        description=row.description or "",
        category=row.category,
        trigger_event=row.trigger_event,
        is_active=row.is_active,
    )


def to_step_definition(row: WorkflowStep) -> StepDefinition:
    return StepDefinition(
        id=row.id,
        workflow_id=row.workflow_id,
        step_order=row.step_order,
        step_type=row.step_type,
        name=row.name,
        config=dict(row.config or {}),
        description=row.description,
    )


def to_creator_profile(row: Creator) -> CreatorProfile:
    return CreatorProfile(
        id=row.id,
        brand_id=row.brand_id,
        name=row.name,
        email=row.email or "",
        instagram_handle=row.instagram_handle,
        tiktok_handle=row.tiktok_handle,
        phone_number=row.phone_number,
        status=row.status or "",
    )


def to_execution_record(row: WorkflowExecution) -> ExecutionRecord:
    return ExecutionRecord(
        id=row.id,
        workflow_id=row.workflow_id,
        creator_id=row.creator_id,
        brand_id=row.brand_id,
        status=row.status,
        context=dict(row.context or {}),
        current_step_id=row.current_step_id,
        started_at=ensure_utc(row.started_at),
        completed_at=ensure_utc(row.completed_at),
        error_message=row.error_message,
        resume_at=ensure_utc(row.resume_at),
        version=row.version,
    )


def to_step_attempt(row: StepExecution) -> StepAttempt:
    return StepAttempt(
        id=row.id,
        execution_id=row.execution_id,
        step_id=row.step_id,
        attempt_number=row.attempt_number,
        status=row.status,
        input_data=dict(row.input_data or {}),
        output_data=row.output_data,
        started_at=ensure_utc(row.started_at),
        completed_at=ensure_utc(row.completed_at),
        error_message=row.error_message,
    )


def to_intervention_task(row: HumanInterventionTask) -> InterventionTask:
    return InterventionTask(
        id=row.id,
        execution_id=row.execution_id,
        step_id=row.step_id,
        step_execution_id=row.step_execution_id,
        creator_id=row.creator_id,
        brand_id=row.brand_id,
        title=row.title,
        status=row.status,
        description=row.description,
        assigned_to=row.assigned_to,
        priority=row.priority,
        context=dict(row.context or {}),
        completed_at=ensure_utc(row.completed_at),
        completed_by=row.completed_by,
        resolution_notes=row.resolution_notes,
        created_at=ensure_utc(row.created_at),
    )


class SQLAlchemyWorkflowRepository:
    """WorkflowRepository backed by the relational schema in db.models."""

    def __init__(self, db: AsyncSession, autocommit: bool = True):
        self.db = db
        self._autocommit = autocommit
        self._templates = BaseService(WorkflowTemplate, db)
        self._creators = BaseService(Creator, db)
        self._executions = BaseService(WorkflowExecution, db)
        self._step_executions = BaseService(StepExecution, db)
        self._tasks = BaseService(HumanInterventionTask, db)
        self._assignments = BaseService(ScriptAssignment, db)

    async def _commit(self) -> None:
        if self._autocommit:
            await self.db.commit()
        else:
            await self.db.flush()

    # ─── Templates & steps ────────────────────────────────────

    async def get_template(self, template_id: str) -> Optional[WorkflowDefinition]:
        row = await self._templates.get_by_id(template_id)
        return to_workflow_definition(row) if row else None

    async def list_active_templates(self, brand_id: str, trigger_event: str) -> list[WorkflowDefinition]:
        result = await self.db.execute(
            select(WorkflowTemplate)
            .where(
                WorkflowTemplate.brand_id == brand_id,
                WorkflowTemplate.trigger_event == trigger_event,
                WorkflowTemplate.is_active == True,  # noqa: E712
            )
            .order_by(WorkflowTemplate.created_at.asc())
        )
        return [to_workflow_definition(row) for row in result.scalars().all()]

    async def get_steps(self, workflow_id: str) -> list[StepDefinition]:
        result = await self.db.execute(
            select(WorkflowStep)
            .where(WorkflowStep.workflow_id == workflow_id)
            .order_by(WorkflowStep.step_order.asc())
        )
        return [to_step_definition(row) for row in result.scalars().all()]

    # ─── Creators & message templates ─────────────────────────

    async def get_creator(self, creator_id: str) -> Optional[CreatorProfile]:
        row = await self._creators.get_by_id(creator_id)
        return to_creator_profile(row) if row else None

    async def update_creator_status(self, creator_id: str, status: str) -> str:
        row = await self._creators.get_by_id(creator_id)
        if row is None:
            raise NotFoundError(f"Creator {creator_id} not found")
        old_status = row.status or ""
        row.status = status
        await self._commit()
        return old_status

    async def get_message_template(self, brand_id: str, template_id: str) -> Optional[MessageTemplateRecord]:
        result = await self.db.execute(
            select(MessageTemplate).where(
                MessageTemplate.id == template_id,
                MessageTemplate.brand_id == brand_id,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return MessageTemplateRecord(
            id=row.id,
            brand_id=row.brand_id,
            name=row.name,
            template_type=row.template_type,
            subject=row.subject,
            content=row.content,
        )

    # ─── Executions ───────────────────────────────────────────

    async def create_execution(
        self,
        workflow_id: str,
        creator_id: str,
        brand_id: str,
        context: dict[str, Any],
        started_at: datetime,
    ) -> ExecutionRecord:
        row = await self._executions.create({
            "workflow_id": workflow_id,
            "creator_id": creator_id,
            "brand_id": brand_id,
            "status": ExecutionStatus.RUNNING.value,
            "context": context,
            "started_at": started_at,
            "version": 1,
        })
        await self._commit()
        return to_execution_record(row)

    async def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        result = await self.db.execute(
            select(WorkflowExecution)
            .where(WorkflowExecution.id == execution_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return to_execution_record(row) if row else None

    async def update_execution(
        self,
        execution_id: str,
        patch: dict[str, Any],
        expected_version: int,
    ) -> ExecutionRecord:
        values = dict(patch)
        values["version"] = WorkflowExecution.version + 1
        values["updated_at"] = func.now()
        result = await self.db.execute(
            update(WorkflowExecution)
            .where(
                WorkflowExecution.id == execution_id,
                WorkflowExecution.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if not await self._executions.exists(execution_id):
                raise NotFoundError(f"Execution {execution_id} not found")
            raise ConcurrentModificationError(
                f"Execution {execution_id} was modified concurrently (expected version {expected_version})"
            )
        await self._commit()
        return await self.get_execution(execution_id)

    async def list_due_waits(self, now: datetime) -> list[ExecutionRecord]:
        result = await self.db.execute(
            select(WorkflowExecution)
            .where(
                WorkflowExecution.status == ExecutionStatus.PAUSED.value,
                WorkflowExecution.resume_at.is_not(None),
                WorkflowExecution.resume_at <= now,
            )
            .order_by(WorkflowExecution.resume_at.asc())
        )
        return [to_execution_record(row) for row in result.scalars().all()]

    # ─── Step attempts ────────────────────────────────────────

    async def create_step_execution(
        self,
        execution_id: str,
        step_id: str,
        attempt_number: int,
        input_data: dict[str, Any],
        started_at: datetime,
    ) -> StepAttempt:
        count = await self.db.execute(
            select(func.count()).select_from(StepExecution).where(StepExecution.execution_id == execution_id)
        )
        row = await self._step_executions.create({
            "execution_id": execution_id,
            "sequence": (count.scalar() or 0) + 1,
            "step_id": step_id,
            "attempt_number": attempt_number,
            "status": StepExecutionStatus.RUNNING.value,
            "input_data": input_data,
            "started_at": started_at,
        })
        await self._commit()
        return to_step_attempt(row)

    async def update_step_execution(self, step_execution_id: str, patch: dict[str, Any]) -> StepAttempt:
        row = await self._step_executions.update(step_execution_id, patch, skip_none=False)
        if row is None:
            raise NotFoundError(f"Step execution {step_execution_id} not found")
        await self._commit()
        return to_step_attempt(row)

    async def list_step_executions(self, execution_id: str) -> list[StepAttempt]:
        result = await self.db.execute(
            select(StepExecution)
            .where(StepExecution.execution_id == execution_id)
            .order_by(StepExecution.sequence.asc())
        )
        return [to_step_attempt(row) for row in result.scalars().all()]

    # ─── Human intervention queue ─────────────────────────────

    async def create_intervention_task(self, **fields: Any) -> InterventionTask:
        fields.setdefault("status", "pending")
        try:
            row = await self._tasks.create(fields)
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                f"A task already exists for attempt {fields.get('step_execution_id')}"
            )
        await self._commit()
        return to_intervention_task(row)

    async def get_intervention_task(self, task_id: str) -> Optional[InterventionTask]:
        row = await self._tasks.get_by_id(task_id)
        return to_intervention_task(row) if row else None

    async def find_task_for_attempt(self, step_execution_id: str) -> Optional[InterventionTask]:
        result = await self.db.execute(
            select(HumanInterventionTask).where(
                HumanInterventionTask.step_execution_id == step_execution_id
            )
        )
        row = result.scalar_one_or_none()
        return to_intervention_task(row) if row else None

    async def update_intervention_task(self, task_id: str, patch: dict[str, Any]) -> InterventionTask:
        row = await self._tasks.update(task_id, patch, skip_none=False)
        if row is None:
            raise NotFoundError(f"Intervention task {task_id} not found")
        await self._commit()
        return to_intervention_task(row)

    # ─── Script assignments ───────────────────────────────────

    async def create_script_assignment(self, **fields: Any) -> dict[str, Any]:
        row = await self._assignments.create(fields)
        await self._commit()
        return {
            "id": row.id,
            "creator_id": row.creator_id,
            "brand_id": row.brand_id,
            "script_id": row.script_id,
            "execution_id": row.execution_id,
            "due_date": ensure_utc(row.due_date),
            "status": row.status,
        }
