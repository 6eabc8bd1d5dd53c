"""Database access for Celery tasks.

Each task runs its coroutine on a fresh event loop, so connections cannot
be shared with the module-level engine. Every call gets its own engine
without pooling and disposes it on exit.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from app.config import get_settings
from db.database import create_session_factory
from db.repository import SQLAlchemyWorkflowRepository


@asynccontextmanager
async def worker_repository() -> AsyncIterator[SQLAlchemyWorkflowRepository]:
    """Workflow repository bound to a task-local session.

        async with worker_repository() as repository:
            engine = build_workflow_engine(repository)
    """
    engine = create_async_engine(get_settings().DATABASE_URL, poolclass=NullPool)
    try:
        async with create_session_factory(engine)() as session:
            yield SQLAlchemyWorkflowRepository(session)
    finally:
        await engine.dispose()
