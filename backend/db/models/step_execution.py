"""StepExecution model for the creator pipeline engine."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import StepExecutionStatus
from db.base import BaseModel


class StepExecution(BaseModel):
    """One attempt of one step within an execution.

    A step retried three times leaves four rows, never one mutated row.

    Attributes:
        id: Unique identifier (UUID string)
        execution_id: Foreign key to WorkflowExecution
        step_id: Foreign key to WorkflowStep
        attempt_number: 1 for the first attempt, 2 for the first retry, ...
        sequence: Position of the attempt within the execution (audit order)
        status: pending, running, completed, failed, skipped or waiting
        input_data: Inputs the attempt ran with
        output_data: Outputs the attempt produced
        started_at / completed_at: Attempt timestamps
        error_message: Error message if the attempt failed
    """

    __tablename__ = "workflow_step_executions"

    execution_id: Mapped[str] = mapped_column(
        ForeignKey("workflow_executions.id"),
        nullable=False,
        index=True,
    )
    step_id: Mapped[str] = mapped_column(
        ForeignKey("workflow_steps.id"),
        nullable=False,
        index=True,
    )
    attempt_number: Mapped[int] = mapped_column(default=1)
    sequence: Mapped[int] = mapped_column(default=1)
    status: Mapped[str] = mapped_column(
        default=StepExecutionStatus.PENDING.value, index=True
    )
    input_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    output_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    error_message: Mapped[Optional[str]] = mapped_column(nullable=True)

    # Relationships
    execution: Mapped["WorkflowExecution"] = relationship(
        "WorkflowExecution", back_populates="step_executions", lazy="noload"
    )
