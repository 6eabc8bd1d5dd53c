"""WorkflowExecution model for the creator pipeline engine."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import ExecutionStatus
from db.base import BaseModel, BrandScopedMixin


class WorkflowExecution(BrandScopedMixin, BaseModel):
    """One run of a workflow template against one creator.

    Rows are never deleted; together with their step executions they form
    the audit record of the run.

    Attributes:
        id: Unique identifier (UUID string)
        workflow_id: Foreign key to WorkflowTemplate
        creator_id: Foreign key to Creator
        brand_id: Owning brand
        current_step_id: Last step the engine dispatched
        status: running, paused, waiting_human, completed or failed
        started_at: Execution start timestamp
        completed_at: Execution completion timestamp
        error_message: Error message if execution failed
        context: Serialized ExecutionContext (variables, step outputs, retry count)
        resume_at: Wake-up time of a paused wait step
        version: Optimistic lock counter, bumped on every update
    """

    __tablename__ = "workflow_executions"

    workflow_id: Mapped[str] = mapped_column(
        ForeignKey("workflow_templates.id"),
        nullable=False,
        index=True,
    )
    creator_id: Mapped[str] = mapped_column(
        ForeignKey("creators.id"),
        nullable=False,
        index=True,
    )
    current_step_id: Mapped[Optional[str]] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        default=ExecutionStatus.RUNNING.value, index=True
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[Optional[str]] = mapped_column(nullable=True)
    context: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    resume_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    version: Mapped[int] = mapped_column(default=1, nullable=False)

    # Relationships
    step_executions: Mapped[list["StepExecution"]] = relationship(
        "StepExecution",
        back_populates="execution",
        lazy="noload",
    )
