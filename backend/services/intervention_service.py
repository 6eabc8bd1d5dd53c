"""Human intervention queue service: reviewer side of the task lifecycle."""

import logging
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import TaskStatus
from core.exceptions import ConflictError
from core.utils import utc_now
from db.models import HumanInterventionTask
from services.base import BaseService

logger = logging.getLogger(__name__)

_OPEN = {TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value}


class InterventionService(BaseService[HumanInterventionTask]):
    """Moves tasks through pending -> in_progress -> completed | skipped.

    Resolving a task does not resume the execution by itself; callers
    resume through the engine once the task is completed or skipped.
    """

    label = "Intervention task"

    def __init__(self, db: AsyncSession):
        super().__init__(HumanInterventionTask, db)

    async def list_tasks(
        self,
        brand_id: str,
        offset: int = 0,
        limit: int = 20,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        creator_id: Optional[str] = None,
    ) -> tuple[Sequence[HumanInterventionTask], int]:
        return await self.list_for_brand(
            brand_id,
            offset=offset,
            limit=limit,
            status=status,
            assigned_to=assigned_to,
            creator_id=creator_id,
        )

    async def start(self, task_id: str, brand_id: str, assigned_to: Optional[str] = None) -> HumanInterventionTask:
        """Claim a pending task."""
        task = await self.get_for_brand(task_id, brand_id)
        if task.status != TaskStatus.PENDING.value:
            raise ConflictError(f"Task {task_id} is {task.status} and cannot be started")
        return await self.update(
            task_id,
            {"status": TaskStatus.IN_PROGRESS.value, "assigned_to": assigned_to},
            brand_id,
        )

    async def complete(
        self,
        task_id: str,
        brand_id: str,
        completed_by: str,
        resolution_notes: Optional[str] = None,
    ) -> HumanInterventionTask:
        return await self._resolve(task_id, brand_id, TaskStatus.COMPLETED, completed_by, resolution_notes)

    async def skip(
        self,
        task_id: str,
        brand_id: str,
        completed_by: str,
        resolution_notes: Optional[str] = None,
    ) -> HumanInterventionTask:
        return await self._resolve(task_id, brand_id, TaskStatus.SKIPPED, completed_by, resolution_notes)

    async def _resolve(
        self,
        task_id: str,
        brand_id: str,
        target: TaskStatus,
        completed_by: str,
        resolution_notes: Optional[str],
    ) -> HumanInterventionTask:
        task = await self.get_for_brand(task_id, brand_id)
        if task.status not in _OPEN:
            raise ConflictError(f"Task {task_id} is already {task.status}")
        task = await self.update(
            task_id,
            {
                "status": target.value,
                "completed_at": utc_now(),
                "completed_by": completed_by,
                "resolution_notes": resolution_notes,
            },
            brand_id,
        )
        logger.info(f"Intervention task {task_id} {target.value} by {completed_by}")
        return task
