"""Workflow template and step endpoints."""

from fastapi import APIRouter, Depends, Query, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from api.schemas.common import ErrorResponse, PaginationParams
from api.schemas.template import (
    StepCreate,
    StepResponse,
    TemplateCreate,
    TemplateDetailResponse,
    TemplateListResponse,
    TemplateResponse,
)
from app.dependencies import get_db
from services.template_service import StepService, TemplateService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["templates"])

_NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post(
    "/",
    response_model=TemplateResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def create_template(
    body: TemplateCreate,
    db: AsyncSession = Depends(get_db),
) -> TemplateResponse:
    """Create a workflow template (without steps)."""
    template = await TemplateService(db).create_template(**body.model_dump())
    return TemplateResponse.model_validate(template)


@router.post(
    "/default",
    response_model=TemplateDetailResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def create_default_template(
    brand_id: str = Query(..., min_length=1, description="Brand to seed"),
    db: AsyncSession = Depends(get_db),
) -> TemplateDetailResponse:
    """Seed the default creator onboarding template for a brand."""
    template = await TemplateService(db).create_default_onboarding_template(brand_id)
    steps = await StepService(db).list_steps(template.id)
    return _detail(template, steps)


@router.get("/", response_model=TemplateListResponse)
async def list_templates(
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    pagination: PaginationParams = Depends(),
    category: Optional[str] = Query(None, description="Filter by category"),
    trigger_event: Optional[str] = Query(None, description="Filter by trigger event"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    db: AsyncSession = Depends(get_db),
) -> TemplateListResponse:
    """
    List a brand's workflow templates (paginated, filterable).
    """
    templates, total = await TemplateService(db).list_for_brand(
        brand_id,
        offset=pagination.offset,
        limit=pagination.per_page,
        category=category,
        trigger_event=trigger_event,
        is_active=is_active,
    )
    return TemplateListResponse(
        templates=[TemplateResponse.model_validate(t) for t in templates],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.get("/{template_id}", response_model=TemplateDetailResponse, responses=_NOT_FOUND)
async def get_template(
    template_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> TemplateDetailResponse:
    """Get a template with its ordered steps."""
    template = await TemplateService(db).get_for_brand(template_id, brand_id)
    steps = await StepService(db).list_steps(template_id)
    return _detail(template, steps)


@router.post("/{template_id}/activate", response_model=TemplateResponse, responses=_NOT_FOUND)
async def activate_template(
    template_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> TemplateResponse:
    template = await TemplateService(db).set_active(template_id, brand_id, True)
    return TemplateResponse.model_validate(template)


@router.post("/{template_id}/deactivate", response_model=TemplateResponse, responses=_NOT_FOUND)
async def deactivate_template(
    template_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> TemplateResponse:
    """Stop new executions; executions already in flight keep running."""
    template = await TemplateService(db).set_active(template_id, brand_id, False)
    return TemplateResponse.model_validate(template)


@router.get("/{template_id}/steps", response_model=List[StepResponse], responses=_NOT_FOUND)
async def list_steps(
    template_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> List[StepResponse]:
    await TemplateService(db).get_for_brand(template_id, brand_id)
    steps = await StepService(db).list_steps(template_id)
    return [StepResponse.model_validate(s) for s in steps]


@router.post(
    "/{template_id}/steps",
    response_model=StepResponse,
    status_code=http_status.HTTP_201_CREATED,
    responses={**_NOT_FOUND, 409: {"model": ErrorResponse}},
)
async def add_step(
    template_id: str,
    body: StepCreate,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> StepResponse:
    """
    Add a step to a template. step_order must be unique within the template.
    """
    step = await StepService(db).add_step(template_id, brand_id, **body.model_dump())
    logger.info(f"Step {step.id} ({step.step_type}) added to template {template_id}")
    return StepResponse.model_validate(step)


def _detail(template, steps) -> TemplateDetailResponse:
    response = TemplateDetailResponse.model_validate(template)
    response.steps = [StepResponse.model_validate(s) for s in steps]
    return response
