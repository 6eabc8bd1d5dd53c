"""WorkflowTemplate model for the creator pipeline engine."""

from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import TriggerEvent, WorkflowCategory
from db.base import BaseModel, BrandScopedMixin


class WorkflowTemplate(BrandScopedMixin, BaseModel):
    """WorkflowTemplate model representing a declarative creator workflow.

    Attributes:
        id: Unique identifier (UUID string)
        brand_id: Owning brand
        name: Template name
        description: Template description
        category: Pipeline stage (onboarding, script_pipeline, ...)
        trigger_event: Event that starts it (creator_added, status_change, ...)
        is_active: Inactive templates are never started
    """

    __tablename__ = "workflow_templates"

    name: Mapped[str] = mapped_column(nullable=False, index=True)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    category: Mapped[str] = mapped_column(
        default=WorkflowCategory.ONBOARDING.value, index=True
    )
    trigger_event: Mapped[str] = mapped_column(
        default=TriggerEvent.MANUAL.value, index=True
    )
    is_active: Mapped[bool] = mapped_column(default=True, index=True)

    # Relationships
    steps: Mapped[list["WorkflowStep"]] = relationship(
        "WorkflowStep",
        back_populates="workflow",
        cascade="all, delete-orphan",
        lazy="noload",
    )
