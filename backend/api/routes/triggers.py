"""Trigger endpoints: fire creator events that start workflows."""

from fastapi import APIRouter, Depends, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from api.schemas.common import ErrorResponse
from api.schemas.trigger import TriggerFire, TriggerFireResponse, TriggerResultResponse
from app.dependencies import get_db, get_repository, get_workflow_engine
from core.constants import TriggerEvent
from core.exceptions import ValidationError
from db.repository import SQLAlchemyWorkflowRepository
from services.creator_service import CreatorService
from triggers.manager import trigger_workflow_for_creator
from workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["triggers"])


@router.post(
    "/fire",
    response_model=TriggerFireResponse,
    status_code=http_status.HTTP_200_OK,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def fire_event(
    body: TriggerFire,
    db: AsyncSession = Depends(get_db),
    repository: SQLAlchemyWorkflowRepository = Depends(get_repository),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> TriggerFireResponse:
    """
    Fire a creator event.

    Starts one execution per active template of the brand listening for the
    event. A template that fails to start is reported in its result entry
    and never blocks the others. With run_async the event is handed to the
    Celery worker instead.
    """
    try:
        TriggerEvent(body.event)
    except ValueError:
        raise ValidationError(f"Unknown trigger event: {body.event}")
    await CreatorService(db).get_for_brand(body.creator_id, body.brand_id)

    if body.run_async:
        from worker.tasks.workflow import trigger_workflow

        task = trigger_workflow.delay(body.creator_id, body.brand_id, body.event, body.extra_context)
        logger.info(f"Event {body.event} for creator {body.creator_id} queued as {task.id}")
        return TriggerFireResponse(queued=True, task_id=task.id)

    results = await trigger_workflow_for_creator(
        engine,
        repository,
        body.creator_id,
        body.brand_id,
        body.event,
        body.extra_context,
    )
    return TriggerFireResponse(
        results=[TriggerResultResponse(**r.to_dict()) for r in results],
    )
