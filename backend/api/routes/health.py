"""Health and pipeline status endpoints.

- ``/health/``        liveness, no I/O
- ``/health/health``  readiness: database (required) and the Celery broker
- ``/health/status``  uptime, configured components and the pipeline backlog
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.dependencies import get_db
from core.constants import ExecutionStatus, TaskStatus
from db.models import HumanInterventionTask, WorkflowExecution

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_started = time.monotonic()
_started_at = datetime.now(timezone.utc).isoformat()


@router.get("/", response_model=dict[str, Any])
async def liveness() -> dict[str, Any]:
    settings = get_settings()
    return {"app": settings.APP_NAME, "version": settings.APP_VERSION, "status": "ok"}


async def _ping_broker(redis_url: str) -> str:
    import redis.asyncio as aioredis

    client = aioredis.from_url(redis_url, socket_connect_timeout=2, socket_timeout=2)
    try:
        return "ok" if await client.ping() else "degraded"
    finally:
        await client.aclose()


@router.get("/health", response_model=dict[str, Any])
async def readiness(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """
    503 when the database is unreachable. A broker outage is reported as
    degraded: triggers still run inline, only wait-step wake-ups depend on
    Celery, and the beat poller catches up once it is back.
    """
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = "unavailable"

    try:
        checks["broker"] = await _ping_broker(get_settings().REDIS_URL)
    except Exception as e:
        logger.warning(f"Broker health check failed: {e}")
        checks["broker"] = "unavailable"

    if checks["database"] != "ok":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "unhealthy", "checks": checks},
        )
    return {"status": "healthy" if checks["broker"] == "ok" else "degraded", **checks}


async def _backlog(db: AsyncSession) -> dict[str, int]:
    """Executions per non-terminal status, open review tasks and overdue waits."""
    rows = await db.execute(
        select(WorkflowExecution.status, func.count())
        .where(WorkflowExecution.status.in_([
            ExecutionStatus.RUNNING.value,
            ExecutionStatus.PAUSED.value,
            ExecutionStatus.WAITING_HUMAN.value,
        ]))
        .group_by(WorkflowExecution.status)
    )
    backlog = {s.value: 0 for s in (ExecutionStatus.RUNNING, ExecutionStatus.PAUSED, ExecutionStatus.WAITING_HUMAN)}
    backlog.update({row[0]: row[1] for row in rows.all()})

    backlog["open_tasks"] = await db.scalar(
        select(func.count()).select_from(HumanInterventionTask).where(
            HumanInterventionTask.status.in_([TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value])
        )
    ) or 0
    backlog["overdue_waits"] = await db.scalar(
        select(func.count()).select_from(WorkflowExecution).where(
            WorkflowExecution.status == ExecutionStatus.PAUSED.value,
            WorkflowExecution.resume_at <= datetime.now(timezone.utc),
        )
    ) or 0
    return backlog


@router.get("/status", response_model=dict[str, Any])
async def pipeline_status(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Uptime, component configuration and how much work is parked."""
    from integrations.claude_client import get_claude_client
    from notifications.manager import get_notification_manager

    settings = get_settings()
    uptime = time.monotonic() - _started

    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "started_at": _started_at,
        "uptime_seconds": round(uptime, 1),
        "components": {
            "notifications": get_notification_manager().configured_channels,
            "ai": "configured" if get_claude_client().is_configured else "disabled",
            "wait_poll_interval_seconds": settings.WAIT_POLL_INTERVAL_SECONDS,
        },
        "backlog": await _backlog(db),
    }
