"""MessageTemplate model for the creator pipeline engine."""

from typing import Optional

from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MessageTemplateType
from db.base import BaseModel, BrandScopedMixin


class MessageTemplate(BrandScopedMixin, BaseModel):
    """Reusable message body with {VAR} placeholders, owned by a brand."""

    __tablename__ = "message_templates"

    name: Mapped[str] = mapped_column(nullable=False)
    template_type: Mapped[str] = mapped_column(
        default=MessageTemplateType.EMAIL.value
    )
    subject: Mapped[Optional[str]] = mapped_column(nullable=True)
    content: Mapped[str] = mapped_column(nullable=False, default="")
