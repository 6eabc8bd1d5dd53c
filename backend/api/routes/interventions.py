"""Human intervention queue endpoints: the reviewer side of waiting_human."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from api.schemas.common import ErrorResponse, PaginationParams
from api.schemas.execution import ExecutionResponse
from api.schemas.intervention import (
    InterventionResolve,
    InterventionResolveResponse,
    InterventionStart,
    InterventionTaskListResponse,
    InterventionTaskResponse,
)
from app.dependencies import get_db, get_workflow_engine
from core.constants import ExecutionStatus
from db.models import HumanInterventionTask
from services.execution_service import ExecutionService
from services.intervention_service import InterventionService
from triggers.manager import resume_workflow_execution
from workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["interventions"])

_ERRORS = {404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}


@router.get("/", response_model=InterventionTaskListResponse)
async def list_tasks(
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    pagination: PaginationParams = Depends(),
    task_status: Optional[str] = Query(None, alias="status", description="Filter by task status"),
    assigned_to: Optional[str] = Query(None, description="Filter by reviewer"),
    creator_id: Optional[str] = Query(None, description="Filter by creator"),
    db: AsyncSession = Depends(get_db),
) -> InterventionTaskListResponse:
    """
    Review queue for a brand (paginated, newest first).
    """
    tasks, total = await InterventionService(db).list_tasks(
        brand_id=brand_id,
        offset=pagination.offset,
        limit=pagination.per_page,
        status=task_status,
        assigned_to=assigned_to,
        creator_id=creator_id,
    )
    return InterventionTaskListResponse(
        tasks=[InterventionTaskResponse.model_validate(t) for t in tasks],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.get("/{task_id}", response_model=InterventionTaskResponse, responses=_ERRORS)
async def get_task(
    task_id: str,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> InterventionTaskResponse:
    task = await InterventionService(db).get_for_brand(task_id, brand_id)
    return InterventionTaskResponse.model_validate(task)


@router.post("/{task_id}/start", response_model=InterventionTaskResponse, responses=_ERRORS)
async def start_task(
    task_id: str,
    body: InterventionStart,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
) -> InterventionTaskResponse:
    """Claim a pending task."""
    task = await InterventionService(db).start(task_id, brand_id, body.assigned_to)
    return InterventionTaskResponse.model_validate(task)


@router.post("/{task_id}/complete", response_model=InterventionResolveResponse, responses=_ERRORS)
async def complete_task(
    task_id: str,
    body: InterventionResolve,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> InterventionResolveResponse:
    """
    Complete a task. With auto_resume the waiting execution continues
    in the same request.
    """
    task = await InterventionService(db).complete(
        task_id, brand_id, body.completed_by, body.resolution_notes
    )
    return await _resolved(db, engine, task, body.auto_resume)


@router.post("/{task_id}/skip", response_model=InterventionResolveResponse, responses=_ERRORS)
async def skip_task(
    task_id: str,
    body: InterventionResolve,
    brand_id: str = Query(..., min_length=1, description="Owning brand"),
    db: AsyncSession = Depends(get_db),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> InterventionResolveResponse:
    """Skip a task; the workflow treats it as resolved."""
    task = await InterventionService(db).skip(
        task_id, brand_id, body.completed_by, body.resolution_notes
    )
    return await _resolved(db, engine, task, body.auto_resume)


async def _resolved(
    db: AsyncSession,
    engine: WorkflowEngine,
    task: HumanInterventionTask,
    auto_resume: bool,
) -> InterventionResolveResponse:
    response = InterventionResolveResponse(task=InterventionTaskResponse.model_validate(task))
    if not auto_resume:
        return response

    execution = await ExecutionService(db).get_by_id(task.execution_id)
    # create_task actions open tasks without pausing the execution
    if execution is None or execution.status != ExecutionStatus.WAITING_HUMAN.value:
        return response
    if execution.current_step_id != task.step_id:
        return response

    resumed = await resume_workflow_execution(engine, task.execution_id)
    logger.info(f"Execution {task.execution_id} resumed after task {task.id} was {task.status}")
    response.execution = ExecutionResponse.model_validate(resumed)
    return response
