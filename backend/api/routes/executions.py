"""Workflow execution history and management endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from api.schemas.common import ErrorResponse, PaginationParams
from api.schemas.execution import (
    ExecutionCancel,
    ExecutionDetailResponse,
    ExecutionListResponse,
    ExecutionResponse,
    StepAttemptResponse,
)
from app.dependencies import get_db, get_workflow_engine
from services.execution_service import ExecutionService
from triggers.manager import resume_workflow_execution
from workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["executions"])

_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.get("/", response_model=ExecutionListResponse)
async def list_executions(
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    pagination: PaginationParams = Depends(),
    creator_id: Optional[str] = Query(None, description="Filter by creator"),
    workflow_id: Optional[str] = Query(None, description="Filter by template"),
    exec_status: Optional[str] = Query(None, alias="status", description="Filter by execution status"),
    db: AsyncSession = Depends(get_db),
) -> ExecutionListResponse:
    """
    Execution history (paginated, newest first), filterable by creator,
    template and status.
    """
    executions, total = await ExecutionService(db).list_executions(
        brand_id=brand_id,
        offset=pagination.offset,
        limit=pagination.per_page,
        creator_id=creator_id,
        workflow_id=workflow_id,
        status=exec_status,
    )
    return ExecutionListResponse(
        executions=[ExecutionResponse.model_validate(ex) for ex in executions],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.get("/{execution_id}", response_model=ExecutionDetailResponse, responses=_ERRORS)
async def get_execution(
    execution_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> ExecutionDetailResponse:
    """
    Get an execution with every step attempt in the order they ran.
    """
    svc = ExecutionService(db)
    execution = await svc.get_for_brand(execution_id, brand_id)
    attempts = await svc.list_attempts(execution_id)

    response = ExecutionDetailResponse.model_validate(execution)
    response.attempts = [StepAttemptResponse.model_validate(a) for a in attempts]
    return response


@router.post("/{execution_id}/resume", response_model=ExecutionResponse, responses=_ERRORS)
async def resume_execution(
    execution_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> ExecutionResponse:
    """
    Resume a paused or waiting_human execution.

    Rejected with 422 while the wait has not elapsed or the intervention task
    is still open, and with 409 for completed or failed executions.
    """
    await ExecutionService(db).get_for_brand(execution_id, brand_id)
    execution = await resume_workflow_execution(engine, execution_id)
    return ExecutionResponse.model_validate(execution)


@router.post("/{execution_id}/cancel", response_model=ExecutionResponse, responses=_ERRORS)
async def cancel_execution(
    execution_id: str,
    body: ExecutionCancel,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> ExecutionResponse:
    """Cancel a running, paused or waiting_human execution (it ends as failed)."""
    await ExecutionService(db).get_for_brand(execution_id, brand_id)
    execution = await engine.cancel(execution_id, body.reason)
    logger.info(f"Execution {execution_id} cancelled: {body.reason}")
    return ExecutionResponse.model_validate(execution)
