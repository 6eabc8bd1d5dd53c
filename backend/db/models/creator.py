"""Creator model for the creator pipeline engine."""

from typing import Optional

from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel, BrandScopedMixin


class Creator(BrandScopedMixin, BaseModel):
    """A UGC creator working with a brand.

    Attributes:
        id: Unique identifier (UUID string)
        brand_id: Owning brand
        name: Display name
        email: Contact email (target of send_email actions)
        instagram_handle: Optional Instagram handle
        tiktok_handle: Optional TikTok handle
        phone_number: Optional phone number
        status: Current pipeline status (free-form, brand-defined)
    """

    __tablename__ = "creators"

    name: Mapped[str] = mapped_column(nullable=False)
    email: Mapped[str] = mapped_column(nullable=False, default="")
    instagram_handle: Mapped[Optional[str]] = mapped_column(nullable=True)
    tiktok_handle: Mapped[Optional[str]] = mapped_column(nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(nullable=False, default="", index=True)
