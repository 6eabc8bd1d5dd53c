"""Declarative base and shared columns for the pipeline tables."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import func, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class BrandScopedMixin:
    """Adds the owning ``brand_id``.

    Templates, creators, executions and the rows they produce all belong to
    exactly one brand. API reads filter on it (see services.base), so it is
    always indexed.
    """

    brand_id: Mapped[str] = mapped_column(nullable=False, index=True)


class BaseModel(Base):
    """Abstract base: UUID string primary key plus created/updated stamps.

    Step attempts and workflow steps use this directly; brand-owned rows
    combine it with BrandScopedMixin.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(primary_key=True, default=lambda: str(uuid4()))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
