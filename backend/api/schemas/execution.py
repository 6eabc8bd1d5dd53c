"""Execution and step attempt schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from api.schemas.common import PageMeta


class ExecutionResponse(BaseModel):
    """Workflow execution response."""

    id: str = Field(description="Execution ID")
    workflow_id: str = Field(description="Template ID")
    creator_id: str = Field(description="Creator the workflow runs for")
    brand_id: str = Field(description="Owning brand")
    status: str = Field(description="running, paused, waiting_human, completed or failed")
    current_step_id: Optional[str] = Field(default=None, description="Step being executed or waited on")
    started_at: Optional[datetime] = Field(default=None, description="Execution start timestamp")
    completed_at: Optional[datetime] = Field(default=None, description="Execution completion timestamp")
    error_message: Optional[str] = Field(default=None, description="Error message if execution failed")
    resume_at: Optional[datetime] = Field(default=None, description="When a paused execution may resume")
    context: Optional[Dict[str, Any]] = Field(default=None, description="Execution context snapshot")

    class Config:
        from_attributes = True


class StepAttemptResponse(BaseModel):
    """One attempt of one step."""

    id: str = Field(description="Step execution ID")
    step_id: str = Field(description="Step ID")
    attempt_number: int = Field(description="1-based attempt number")
    status: str = Field(description="running, completed, failed, skipped or waiting")
    input_data: Optional[Dict[str, Any]] = Field(default=None, description="Inputs passed to the step")
    output_data: Optional[Dict[str, Any]] = Field(default=None, description="Step output")
    started_at: Optional[datetime] = Field(default=None, description="Attempt start timestamp")
    completed_at: Optional[datetime] = Field(default=None, description="Attempt end timestamp")
    error_message: Optional[str] = Field(default=None, description="Error message if the attempt failed")

    class Config:
        from_attributes = True


class ExecutionDetailResponse(ExecutionResponse):
    """Execution with its full step attempt history."""

    attempts: List[StepAttemptResponse] = Field(default=[], description="Step attempts in start order")


class ExecutionListResponse(PageMeta):
    """Paginated list of executions."""

    executions: List[ExecutionResponse] = Field(description="List of executions")


class ExecutionCancel(BaseModel):
    """Request to cancel an execution."""

    reason: str = Field(default="Cancelled by operator", min_length=1, description="Recorded as error_message")
