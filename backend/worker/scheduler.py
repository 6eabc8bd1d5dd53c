"""Durable resume scheduling for wait steps."""

import logging
from datetime import datetime

logger = logging.getLogger(__name__)


class CeleryResumeScheduler:
    """Schedules WorkflowEngine.resume via a Celery task with an ETA.

    A lost message is not fatal: the poll_due_waits beat task resumes any
    paused execution whose resume_at has passed.
    """

    def schedule_resume(self, execution_id: str, resume_at: datetime) -> None:
        from worker.tasks.workflow import resume_execution

        resume_execution.apply_async(args=[execution_id], eta=resume_at)
        logger.info(f"Resume of execution {execution_id} scheduled for {resume_at.isoformat()}")
