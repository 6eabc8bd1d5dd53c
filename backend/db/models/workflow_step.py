"""WorkflowStep model for the creator pipeline engine."""

from typing import Optional

from sqlalchemy import JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import BaseModel


class WorkflowStep(BaseModel):
    """WorkflowStep model representing a single step in a workflow template.

    Attributes:
        id: Unique identifier (UUID string)
        workflow_id: Foreign key to WorkflowTemplate
        step_order: Position in the template; unique per template
        step_type: action, condition, wait or human_intervention
        name: Step name
        description: Optional description
        config: Type-specific JSON configuration
    """

    __tablename__ = "workflow_steps"
    __table_args__ = (
        UniqueConstraint("workflow_id", "step_order", name="uq_workflow_steps_order"),
    )

    workflow_id: Mapped[str] = mapped_column(
        ForeignKey("workflow_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_order: Mapped[int] = mapped_column(nullable=False)
    step_type: Mapped[str] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(nullable=False)
    description: Mapped[Optional[str]] = mapped_column(nullable=True)
    config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Relationships
    workflow: Mapped["WorkflowTemplate"] = relationship(
        "WorkflowTemplate", back_populates="steps", lazy="noload"
    )
