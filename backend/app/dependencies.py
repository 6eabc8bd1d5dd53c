"""FastAPI dependency injection functions."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from db.database import AsyncSessionLocal
from db.repository import SQLAlchemyWorkflowRepository
from workflow.engine import WorkflowEngine
from workflow.factory import build_workflow_engine

logger = logging.getLogger(__name__)


async def get_db() -> AsyncSession:
    """
    Provide a database session for API endpoints.

    Yields an async SQLAlchemy session that is automatically
    committed on success or rolled back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database error: {str(e)}")
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_repository(
    db: AsyncSession = Depends(get_db),
) -> SQLAlchemyWorkflowRepository:
    """Workflow repository bound to the request's session."""
    return SQLAlchemyWorkflowRepository(db)


async def get_workflow_engine(
    repository: SQLAlchemyWorkflowRepository = Depends(get_repository),
) -> WorkflowEngine:
    """
    Provide a workflow engine for the request.

    Engines are cheap: one per request, bound to the request's repository.
    """
    return build_workflow_engine(repository)
