"""Trigger Manager: routes creator events to the workflow engine.

The TriggerManager:
1. Finds every active template of the brand listening for the event
2. Starts one execution per template
3. Isolates failures so one broken template never blocks the others

Module-level helpers expose the trigger and resume entry points used by
the API and the Celery worker.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from core.constants import TriggerEvent
from core.exceptions import PipelineException
from core.utils import utc_now
from triggers.base import CreatorEvent, TriggerResult
from workflow.models import ExecutionRecord

logger = logging.getLogger(__name__)


class TriggerManager:
    """Starts workflows for creator events."""

    def __init__(self, engine, repository):
        self._engine = engine
        self._repository = repository

    async def fire_event(self, event: CreatorEvent) -> list[TriggerResult]:
        """Start every active template of the brand that matches the event.

        Args:
            event: The creator event

        Returns:
            One TriggerResult per matching template
        """
        templates = await self._repository.list_active_templates(event.brand_id, event.event.value)
        if not templates:
            logger.info(
                f"No active templates for event {event.event.value} (brand {event.brand_id})"
            )
            return []

        extra_context = dict(event.extra_context)
        extra_context.setdefault("trigger_event", event.event.value)
        if event.correlation_id:
            extra_context.setdefault("correlation_id", event.correlation_id)

        results = []
        for template in templates:
            try:
                execution = await self._engine.start(
                    template.id, event.creator_id, event.brand_id, extra_context
                )
            except PipelineException as e:
                logger.warning(f"Template {template.id} did not start for creator {event.creator_id}: {e.message}")
                results.append(TriggerResult(
                    success=False,
                    message=f"Failed to start '{template.name}'",
                    workflow_id=template.id,
                    error=e.message,
                ))
            except Exception as e:
                logger.error(
                    f"Template {template.id} crashed for creator {event.creator_id}: {e}",
                    exc_info=True,
                )
                results.append(TriggerResult(
                    success=False,
                    message=f"Failed to start '{template.name}'",
                    workflow_id=template.id,
                    error=str(e),
                ))
            else:
                results.append(TriggerResult(
                    success=True,
                    message=f"Started '{template.name}'",
                    workflow_id=template.id,
                    execution_id=execution.id,
                    status=execution.status,
                ))

        started = sum(1 for r in results if r.success)
        logger.info(
            f"Event {event.event.value} for creator {event.creator_id}: "
            f"{started}/{len(results)} workflows started"
        )
        return results


# ─── Entry points ──────────────────────────────────────────────

async def trigger_workflow_for_creator(
    engine,
    repository,
    creator_id: str,
    brand_id: str,
    event: str,
    extra_context: Optional[dict[str, Any]] = None,
) -> list[TriggerResult]:
    """Start one execution per active template matching event."""
    manager = TriggerManager(engine, repository)
    return await manager.fire_event(CreatorEvent(
        creator_id=creator_id,
        brand_id=brand_id,
        event=TriggerEvent(event),
        extra_context=extra_context or {},
    ))


async def resume_workflow_execution(engine, execution_id: str) -> ExecutionRecord:
    """Resume a paused or waiting_human execution."""
    return await engine.resume(execution_id)


async def resume_due_executions(
    engine,
    repository,
    now: Optional[datetime] = None,
) -> list[str]:
    """Resume every paused execution whose wait has elapsed.

    Returns:
        Ids of executions that were resumed
    """
    now = now or utc_now()
    resumed = []
    for execution in await repository.list_due_waits(now):
        try:
            await engine.resume(execution.id)
        except PipelineException as e:
            # Typically a concurrent resume from the ETA task won the race.
            logger.info(f"Skipped due execution {execution.id}: {e.message}")
            continue
        resumed.append(execution.id)
    return resumed
