"""Trigger schemas."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class TriggerFire(BaseModel):
    """Request to fire a creator event."""

    creator_id: str = Field(min_length=1, description="Creator the event is about")
    brand_id: str = Field(min_length=1, description="Owning brand")
    event: str = Field(description="creator_added, status_change, manual or time_based")
    extra_context: Dict[str, Any] = Field(default={}, description="Variables merged into the execution context")
    run_async: bool = Field(default=False, description="Queue on the Celery worker instead of running inline")


class TriggerResultResponse(BaseModel):
    """Outcome of starting one template."""

    success: bool = Field(description="Whether the template started")
    message: str = Field(description="Human-readable outcome")
    workflow_id: str = Field(description="Template ID")
    execution_id: Optional[str] = Field(default=None, description="Execution created for the template")
    status: Optional[str] = Field(default=None, description="Execution status after the run")
    error: Optional[str] = Field(default=None, description="Why the template did not start")


class TriggerFireResponse(BaseModel):
    """Result of firing an event."""

    queued: bool = Field(default=False, description="True when handed to the worker")
    task_id: Optional[str] = Field(default=None, description="Celery task id when queued")
    results: List[TriggerResultResponse] = Field(default=[], description="One entry per matching template")
