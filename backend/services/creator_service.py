"""Creator and message template services."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import MessageTemplateType
from core.exceptions import ValidationError
from db.models import Creator, MessageTemplate
from services.base import BaseService

logger = logging.getLogger(__name__)


class CreatorService(BaseService[Creator]):
    """Service for creator records."""

    label = "Creator"

    def __init__(self, db: AsyncSession):
        super().__init__(Creator, db)

    async def create_creator(
        self,
        brand_id: str,
        name: str,
        email: str = "",
        instagram_handle: Optional[str] = None,
        tiktok_handle: Optional[str] = None,
        phone_number: Optional[str] = None,
        status: str = "",
    ) -> Creator:
        """Create a new creator for a brand."""
        creator = await self.create({
            "brand_id": brand_id,
            "name": name,
            "email": email or "",
            "instagram_handle": instagram_handle,
            "tiktok_handle": tiktok_handle,
            "phone_number": phone_number,
            "status": status or "",
        })
        logger.info(f"Creator created: {creator.id} for brand {brand_id}")
        return creator


class MessageTemplateService(BaseService[MessageTemplate]):
    """Service for reusable message bodies used by send_email."""

    label = "Message template"

    def __init__(self, db: AsyncSession):
        super().__init__(MessageTemplate, db)

    async def create_message_template(
        self,
        brand_id: str,
        name: str,
        content: str,
        subject: Optional[str] = None,
        template_type: str = MessageTemplateType.EMAIL.value,
    ) -> MessageTemplate:
        if template_type not in {t.value for t in MessageTemplateType}:
            raise ValidationError(f"Unknown message template type: {template_type}")
        template = await self.create({
            "brand_id": brand_id,
            "name": name,
            "template_type": template_type,
            "subject": subject,
            "content": content,
        })
        logger.info(f"Message template created: {template.id} ({name}) for brand {brand_id}")
        return template
