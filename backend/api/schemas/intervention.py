"""Human intervention task schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from api.schemas.common import PageMeta
from api.schemas.execution import ExecutionResponse


class InterventionTaskResponse(BaseModel):
    """Human intervention task response."""

    id: str = Field(description="Task ID")
    execution_id: str = Field(description="Execution waiting on the task")
    step_id: str = Field(description="Step that created the task")
    step_execution_id: Optional[str] = Field(default=None, description="Attempt that created the task")
    creator_id: str = Field(description="Creator the task is about")
    brand_id: str = Field(description="Owning brand")
    assigned_to: Optional[str] = Field(default=None, description="Reviewer")
    priority: str = Field(description="low, medium, high or urgent")
    title: str = Field(description="What the reviewer should do")
    description: Optional[str] = Field(default=None, description="Details")
    context: Optional[Dict[str, Any]] = Field(default=None, description="Context snapshot at creation")
    status: str = Field(description="pending, in_progress, completed or skipped")
    completed_at: Optional[datetime] = Field(default=None, description="Resolution timestamp")
    completed_by: Optional[str] = Field(default=None, description="Who resolved the task")
    resolution_notes: Optional[str] = Field(default=None, description="Reviewer notes")
    created_at: datetime = Field(description="Creation timestamp")

    class Config:
        from_attributes = True


class InterventionTaskListResponse(PageMeta):
    """Paginated list of intervention tasks."""

    tasks: List[InterventionTaskResponse] = Field(description="List of tasks")


class InterventionStart(BaseModel):
    """Request to claim a task."""

    assigned_to: Optional[str] = Field(default=None, description="Reviewer claiming the task")


class InterventionResolve(BaseModel):
    """Request to complete or skip a task."""

    completed_by: str = Field(min_length=1, description="Reviewer resolving the task")
    resolution_notes: Optional[str] = Field(default=None, description="Notes passed on to the workflow")
    auto_resume: bool = Field(default=False, description="Resume the waiting execution right away")


class InterventionResolveResponse(BaseModel):
    """Resolved task and, with auto_resume, the resumed execution."""

    task: InterventionTaskResponse = Field(description="The resolved task")
    execution: Optional[ExecutionResponse] = Field(default=None, description="Execution after resume")
