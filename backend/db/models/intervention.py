"""HumanInterventionTask model for the creator pipeline engine."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import TaskPriority, TaskStatus
from db.base import BaseModel, BrandScopedMixin


class HumanInterventionTask(BrandScopedMixin, BaseModel):
    """Review item created when a workflow reaches a human intervention step.

    The engine only creates these; reviewers move them through
    pending -> in_progress -> completed | skipped.

    Attributes:
        execution_id: Execution that is waiting on this task
        step_id: The human_intervention (or create_task) step
        step_execution_id: The attempt that created it; one task per attempt
        creator_id / brand_id: Who and for whom
        assigned_to: Optional reviewer
        priority: low, medium, high or urgent
        title / description: What the reviewer should do
        context: Snapshot of the execution context at creation time
        status: pending, in_progress, completed or skipped
        completed_at / completed_by / resolution_notes: Resolution details
    """

    __tablename__ = "human_intervention_tasks"

    execution_id: Mapped[str] = mapped_column(
        ForeignKey("workflow_executions.id"),
        nullable=False,
        index=True,
    )
    step_id: Mapped[str] = mapped_column(nullable=False, index=True)
    step_execution_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("workflow_step_executions.id"),
        nullable=True,
        unique=True,
    )
    creator_id: Mapped[str] = mapped_column(nullable=False, index=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(nullable=True)
    priority: Mapped[str] = mapped_column(default=TaskPriority.MEDIUM.value)
    title: Mapped[str] = mapped_column(nullable=False)
    description: Mapped[Optional[str]] = mapped_column(nullable=True)
    context: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(
        default=TaskStatus.PENDING.value, index=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_by: Mapped[Optional[str]] = mapped_column(nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(nullable=True)
