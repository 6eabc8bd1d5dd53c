"""Execution history service: read side of workflow runs."""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import StepExecution, WorkflowExecution
from services.base import BaseService


class ExecutionService(BaseService[WorkflowExecution]):
    """Service for querying workflow executions and their step attempts."""

    label = "Execution"

    def __init__(self, db: AsyncSession):
        super().__init__(WorkflowExecution, db)

    async def list_executions(
        self,
        brand_id: str,
        offset: int = 0,
        limit: int = 20,
        creator_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> tuple[Sequence[WorkflowExecution], int]:
        """Execution history for a brand, newest first."""
        return await self.list_for_brand(
            brand_id,
            offset=offset,
            limit=limit,
            order_by="started_at",
            creator_id=creator_id,
            workflow_id=workflow_id,
            status=status,
        )

    async def list_attempts(self, execution_id: str) -> Sequence[StepExecution]:
        """Every step attempt of an execution in the order they were started."""
        result = await self.db.execute(
            select(StepExecution)
            .where(StepExecution.execution_id == execution_id)
            .order_by(StepExecution.sequence.asc())
        )
        return result.scalars().all()
