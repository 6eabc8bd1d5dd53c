"""Shared pytest fixtures for the Creator Pipeline Engine test suite.

Provides:
- In-memory async SQLite database (no PostgreSQL needed for tests)
- AsyncSession factory
- FastAPI test client (httpx.AsyncClient) wired to the test database
- In-memory workflow repository with fake handlers, clock and sleep for
  engine tests
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("RETRY_BASE_DELAY", "1.0")
os.environ["ANTHROPIC_API_KEY"] = ""

from db.base import Base  # noqa: E402
from actions.base_action import BaseAction  # noqa: E402
from actions.registry import ActionHandlerRegistry  # noqa: E402
from core.exceptions import ActionExecutionError  # noqa: E402
from notifications.channels import (  # noqa: E402
    BaseChannel,
    DeliveryResult,
    InAppChannel,
    NotificationChannel,
)
from notifications.manager import NotificationManager  # noqa: E402
from workflow.engine import WorkflowEngine  # noqa: E402
from workflow.memory_store import InMemoryWorkflowRepository  # noqa: E402
from workflow.models import CreatorProfile, StepDefinition, WorkflowDefinition  # noqa: E402

BRAND_ID = "brand-1"
NOW = datetime(2025, 3, 14, 9, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Settable clock so wait gates can be tested without sleeping."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingSleep:
    """Replaces asyncio.sleep; remembers every requested delay."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class RecordingScheduler:
    """ResumeScheduler that records instead of talking to Celery."""

    def __init__(self):
        self.scheduled: list[tuple[str, datetime]] = []

    def schedule_resume(self, execution_id: str, resume_at: datetime) -> None:
        self.scheduled.append((execution_id, resume_at))


class RecordingEmailChannel(BaseChannel):
    """Email channel that keeps sent messages in memory."""

    channel_type = NotificationChannel.EMAIL

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send(self, notification) -> DeliveryResult:
        if self.fail:
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                recipient=notification.recipient,
                error="SMTP unavailable",
            )
        self.sent.append(notification)
        return DeliveryResult(
            success=True,
            channel=self.channel_type,
            recipient=notification.recipient,
            message_id=f"msg-{len(self.sent)}",
        )


class FlakyAction(BaseAction):
    """Fails with a transient error for the first `failures` calls."""

    action_type = "flaky"
    display_name = "Flaky"

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    async def execute(self, inputs, ctx):
        self.calls += 1
        if self.calls <= self.failures:
            raise ActionExecutionError(f"transient failure #{self.calls}")
        return {"calls": self.calls}


class RecordingAction(BaseAction):
    """Succeeds and remembers the inputs it saw."""

    action_type = "record"
    display_name = "Record"

    def __init__(self):
        self.inputs = []

    async def execute(self, inputs, ctx):
        self.inputs.append(dict(inputs))
        return {"seen": inputs.get("note")}


# ---------------------------------------------------------------------------
# Engine fixtures (in-memory)
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def email_channel() -> RecordingEmailChannel:
    return RecordingEmailChannel()


@pytest.fixture
def notifier(email_channel) -> NotificationManager:
    manager = NotificationManager()
    manager.register_channel(email_channel)
    manager.register_channel(InAppChannel())
    return manager


@pytest.fixture
def repo() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def creator(repo) -> CreatorProfile:
    return repo.add_creator(CreatorProfile(
        id="creator-1",
        brand_id=BRAND_ID,
        name="Ana Lima",
        email="ana@example.com",
        instagram_handle="@ana.creates",
        status="New",
    ))


@pytest.fixture
def registry(notifier) -> ActionHandlerRegistry:
    return ActionHandlerRegistry.with_builtin_actions(notifier=notifier)


@pytest.fixture
def make_engine(repo, notifier, scheduler, sleep, clock):
    """Build an engine over the in-memory repo; extra handlers may be passed in."""

    def _make(*handlers, registry=None) -> WorkflowEngine:
        registry = registry or ActionHandlerRegistry.with_builtin_actions(notifier=notifier)
        for handler in handlers:
            registry.register(handler)
        return WorkflowEngine(
            repository=repo,
            registry=registry,
            resume_scheduler=scheduler,
            notifier=notifier,
            sleep=sleep,
            clock=clock,
        )

    return _make


@pytest.fixture
def add_workflow(repo):
    """Register a template with steps given as (step_type, name, config) tuples."""

    def _add(*steps, is_active=True, trigger_event="manual", name="Test Workflow"):
        workflow_id = f"wf-{uuid4().hex[:8]}"
        template = WorkflowDefinition(
            id=workflow_id,
            brand_id=BRAND_ID,
            name=name,
            trigger_event=trigger_event,
            is_active=is_active,
        )
        definitions = []
        for order, step in enumerate(steps):
            step_type, step_name, config = step[:3]
            step_id = step[3] if len(step) > 3 else f"{workflow_id}-s{order}"
            definitions.append(StepDefinition(
                id=step_id,
                workflow_id=workflow_id,
                step_order=order,
                step_type=step_type,
                name=step_name,
                config=config,
            ))
        repo.add_template(template, definitions)
        return template, definitions

    return _add


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh in-memory database for one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # Import all models so Base.metadata knows about them
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a DB session that commits so the app can read data."""
    async with session_factory() as session:
        yield session
        await session.commit()


# ---------------------------------------------------------------------------
# App / HTTP client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(session_factory, notifier, scheduler):
    """Create a FastAPI app instance wired to the test database.

    The engine dependency is swapped for one that records wait scheduling
    instead of talking to Celery and delivers email to a recording channel.
    """
    from fastapi import Depends

    from app.dependencies import get_db, get_repository, get_workflow_engine
    from app.main import create_app
    from db.repository import SQLAlchemyWorkflowRepository
    from workflow.factory import build_workflow_engine

    test_app = create_app()

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _get_engine(repository: SQLAlchemyWorkflowRepository = Depends(get_repository)):
        return build_workflow_engine(
            repository,
            resume_scheduler=scheduler,
            notifier=notifier,
        )

    test_app.dependency_overrides[get_db] = _get_db
    test_app.dependency_overrides[get_workflow_engine] = _get_engine
    yield test_app
    test_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac
