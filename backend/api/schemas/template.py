"""Workflow template and step schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional, Dict, Any

from api.schemas.common import PageMeta


class TemplateCreate(BaseModel):
    """Request to create a workflow template."""

    brand_id: str = Field(min_length=1, description="Owning brand")
    name: str = Field(min_length=1, description="Template name")
    description: Optional[str] = Field(default="", description="Template description")
    category: str = Field(default="onboarding", description="Pipeline stage (onboarding, script_pipeline, ...)")
    trigger_event: str = Field(
        default="manual",
        description="Event that starts the template (creator_added, status_change, manual, time_based)",
    )
    is_active: bool = Field(default=True, description="Whether new executions may start")


class StepCreate(BaseModel):
    """Request to add a step to a template."""

    step_order: int = Field(ge=0, description="Position in the template, unique per template")
    step_type: str = Field(min_length=1, description="action, condition, wait or human_intervention")
    name: str = Field(min_length=1, description="Human-readable step name")
    description: Optional[str] = Field(default=None, description="Step description")
    config: Dict[str, Any] = Field(default={}, description="Type-specific step configuration")


class StepResponse(BaseModel):
    """Workflow step response."""

    id: str = Field(description="Step ID")
    workflow_id: str = Field(description="Owning template ID")
    step_order: int = Field(description="Position in the template")
    step_type: str = Field(description="Step type")
    name: str = Field(description="Step name")
    description: Optional[str] = Field(default=None, description="Step description")
    config: Optional[Dict[str, Any]] = Field(default=None, description="Step configuration")

    class Config:
        from_attributes = True


class TemplateResponse(BaseModel):
    """Workflow template response."""

    id: str = Field(description="Template ID")
    brand_id: str = Field(description="Owning brand")
    name: str = Field(description="Template name")
    description: str = Field(description="Template description")
    category: str = Field(description="Pipeline stage")
    trigger_event: str = Field(description="Event that starts the template")
    is_active: bool = Field(description="Whether new executions may start")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")

    class Config:
        from_attributes = True


class TemplateDetailResponse(TemplateResponse):
    """Workflow template with its ordered steps."""

    steps: List[StepResponse] = Field(default=[], description="Steps ordered by step_order")


class TemplateListResponse(PageMeta):
    """Paginated list of workflow templates."""

    templates: List[TemplateResponse] = Field(description="List of templates")
