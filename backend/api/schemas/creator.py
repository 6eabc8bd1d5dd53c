"""Creator and message template schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from api.schemas.common import PageMeta


class CreatorCreate(BaseModel):
    """Request to register a creator with a brand."""

    brand_id: str = Field(min_length=1, description="Owning brand")
    name: str = Field(min_length=1, description="Display name")
    email: str = Field(default="", description="Contact email")
    instagram_handle: Optional[str] = Field(default=None, description="Instagram handle")
    tiktok_handle: Optional[str] = Field(default=None, description="TikTok handle")
    phone_number: Optional[str] = Field(default=None, description="Phone number")
    status: str = Field(default="", description="Initial pipeline status")
    fire_creator_added: bool = Field(
        default=False,
        description="Start every active creator_added template for the new creator",
    )


class CreatorResponse(BaseModel):
    """Creator response."""

    id: str = Field(description="Creator ID")
    brand_id: str = Field(description="Owning brand")
    name: str = Field(description="Display name")
    email: str = Field(description="Contact email")
    instagram_handle: Optional[str] = Field(default=None, description="Instagram handle")
    tiktok_handle: Optional[str] = Field(default=None, description="TikTok handle")
    phone_number: Optional[str] = Field(default=None, description="Phone number")
    status: str = Field(description="Current pipeline status")
    created_at: datetime = Field(description="Creation timestamp")

    class Config:
        from_attributes = True


class MessageTemplateCreate(BaseModel):
    """Request to create a message template."""

    brand_id: str = Field(min_length=1, description="Owning brand")
    name: str = Field(min_length=1, description="Template name")
    template_type: str = Field(default="email", description="email, sms or slack")
    subject: Optional[str] = Field(default=None, description="Subject line with {VAR} placeholders")
    content: str = Field(min_length=1, description="Body with {VAR} placeholders")


class MessageTemplateResponse(BaseModel):
    """Message template response."""

    id: str = Field(description="Template ID")
    brand_id: str = Field(description="Owning brand")
    name: str = Field(description="Template name")
    template_type: str = Field(description="Delivery medium")
    subject: Optional[str] = Field(default=None, description="Subject line")
    content: str = Field(description="Body")
    created_at: datetime = Field(description="Creation timestamp")

    class Config:
        from_attributes = True


class MessageTemplateListResponse(PageMeta):
    """Paginated list of message templates."""

    message_templates: List[MessageTemplateResponse] = Field(description="List of message templates")
