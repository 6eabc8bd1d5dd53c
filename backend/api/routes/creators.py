"""Creator and message template endpoints."""

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from api.schemas.common import ErrorResponse, PaginationParams
from api.schemas.creator import (
    CreatorCreate,
    CreatorResponse,
    MessageTemplateCreate,
    MessageTemplateListResponse,
    MessageTemplateResponse,
)
from app.dependencies import get_db, get_repository, get_workflow_engine
from core.constants import TriggerEvent
from db.repository import SQLAlchemyWorkflowRepository
from services.creator_service import CreatorService, MessageTemplateService
from triggers.manager import trigger_workflow_for_creator
from workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["creators"])
message_templates_router = APIRouter(tags=["message-templates"])


@router.post(
    "/",
    response_model=CreatorResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def create_creator(
    body: CreatorCreate,
    db: AsyncSession = Depends(get_db),
    repository: SQLAlchemyWorkflowRepository = Depends(get_repository),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> CreatorResponse:
    """
    Register a creator. With fire_creator_added, every active
    creator_added template of the brand is started for them.
    """
    data = body.model_dump(exclude={"fire_creator_added"})
    creator = await CreatorService(db).create_creator(**data)
    response = CreatorResponse.model_validate(creator)

    if body.fire_creator_added:
        results = await trigger_workflow_for_creator(
            engine, repository, creator.id, creator.brand_id, TriggerEvent.CREATOR_ADDED.value
        )
        logger.info(f"creator_added fired for {creator.id}: {len(results)} template(s)")
    return response


@router.get("/{creator_id}", response_model=CreatorResponse, responses={404: {"model": ErrorResponse}})
async def get_creator(
    creator_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> CreatorResponse:
    creator = await CreatorService(db).get_for_brand(creator_id, brand_id)
    return CreatorResponse.model_validate(creator)


# ─── Message templates ──────────────────────────────────────────

@message_templates_router.post(
    "/",
    response_model=MessageTemplateResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def create_message_template(
    body: MessageTemplateCreate,
    db: AsyncSession = Depends(get_db),
) -> MessageTemplateResponse:
    """Create a message template usable as send_email's template_id."""
    template = await MessageTemplateService(db).create_message_template(**body.model_dump())
    return MessageTemplateResponse.model_validate(template)


@message_templates_router.get("/", response_model=MessageTemplateListResponse)
async def list_message_templates(
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    pagination: PaginationParams = Depends(),
    template_type: Optional[str] = Query(None, description="Filter by delivery medium"),
    db: AsyncSession = Depends(get_db),
) -> MessageTemplateListResponse:
    templates, total = await MessageTemplateService(db).list_for_brand(
        brand_id,
        offset=pagination.offset,
        limit=pagination.per_page,
        template_type=template_type,
    )
    return MessageTemplateListResponse(
        message_templates=[MessageTemplateResponse.model_validate(t) for t in templates],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )
