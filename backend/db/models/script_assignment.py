"""ScriptAssignment model for the creator pipeline engine."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import ScriptAssignmentStatus
from db.base import BaseModel, BrandScopedMixin


class ScriptAssignment(BrandScopedMixin, BaseModel):
    """A script handed to a creator by the assign_script action."""

    __tablename__ = "script_assignments"

    creator_id: Mapped[str] = mapped_column(nullable=False, index=True)
    script_id: Mapped[str] = mapped_column(nullable=False)
    execution_id: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    priority: Mapped[str] = mapped_column(default="medium")
    status: Mapped[str] = mapped_column(
        default=ScriptAssignmentStatus.ASSIGNED.value
    )
