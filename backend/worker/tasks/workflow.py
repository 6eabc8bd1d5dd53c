"""Celery tasks for workflow execution.

These tasks bridge the Celery worker with the WorkflowEngine:

- trigger_workflow: fire a creator event (fire-and-forget from the API)
- resume_execution: resume one execution (ETA task for wait steps)
- poll_due_waits: beat task that resumes every paused execution whose
  wait has elapsed, covering lost or never-sent ETA messages
"""

import asyncio
import logging

from core.exceptions import ConcurrentModificationError, GateNotSatisfiedError, PipelineException
from core.logging_config import execution_log_context
from worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run(coro):
    """Run a coroutine on a fresh event loop (Celery workers are sync)."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# ─── Trigger ─────────────────────────────────────────────────────

@celery_app.task(
    name="worker.tasks.workflow.trigger_workflow",
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    acks_late=True,
    queue="workflows",
)
def trigger_workflow(self, creator_id: str, brand_id: str, event: str, extra_context: dict = None):
    """Start every active template of the brand matching event for the creator."""
    try:
        with execution_log_context(creator_id=creator_id, event=event, task_id=self.request.id):
            results = _run(_trigger(creator_id, brand_id, event, extra_context or {}))
    except Exception as exc:
        logger.error(f"Trigger {event} for creator {creator_id} failed: {exc}")
        raise self.retry(exc=exc)
    return [r.to_dict() for r in results]


async def _trigger(creator_id, brand_id, event, extra_context):
    from db.worker_session import worker_repository
    from triggers.manager import trigger_workflow_for_creator
    from workflow.factory import build_workflow_engine

    async with worker_repository() as repository:
        return await trigger_workflow_for_creator(
            build_workflow_engine(repository), repository, creator_id, brand_id, event, extra_context
        )


# ─── Resume ──────────────────────────────────────────────────────

@celery_app.task(
    name="worker.tasks.workflow.resume_execution",
    bind=True,
    max_retries=5,
    default_retry_delay=10,
    acks_late=True,
    queue="workflows",
)
def resume_execution(self, execution_id: str):
    """Resume a paused or waiting_human execution."""
    try:
        with execution_log_context(execution_id, task_id=self.request.id):
            return _run(_resume(execution_id))
    except GateNotSatisfiedError as exc:
        # ETA fired a little early (clock skew between beat, broker and worker)
        logger.info(f"Execution {execution_id} not ready: {exc.message}")
        raise self.retry(exc=exc)
    except ConcurrentModificationError:
        logger.info(f"Execution {execution_id} was resumed by another worker")
        return {"execution_id": execution_id, "status": "skipped"}
    except PipelineException as exc:
        logger.warning(f"Execution {execution_id} cannot be resumed: {exc.message}")
        return {"execution_id": execution_id, "status": "rejected", "error": exc.message}


async def _resume(execution_id):
    from db.worker_session import worker_repository
    from triggers.manager import resume_workflow_execution
    from workflow.factory import build_workflow_engine

    async with worker_repository() as repository:
        execution = await resume_workflow_execution(build_workflow_engine(repository), execution_id)
        return {"execution_id": execution.id, "status": execution.status}


# ─── Due-wait poller ─────────────────────────────────────────────

@celery_app.task(
    name="worker.tasks.workflow.poll_due_waits",
    queue="workflows",
)
def poll_due_waits():
    """Resume paused executions whose resume_at has passed."""
    resumed = _run(_poll_due_waits())
    if resumed:
        logger.info(f"Resumed {len(resumed)} due executions")
    return {"resumed": resumed}


async def _poll_due_waits():
    from db.worker_session import worker_repository
    from triggers.manager import resume_due_executions
    from workflow.factory import build_workflow_engine

    async with worker_repository() as repository:
        return await resume_due_executions(build_workflow_engine(repository), repository)
