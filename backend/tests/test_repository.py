"""Tests for the SQLAlchemy workflow repository (async SQLite)."""

from datetime import timedelta

import pytest
import pytest_asyncio

from actions.registry import ActionHandlerRegistry
from core.exceptions import ConcurrentModificationError, ConflictError, NotFoundError
from db.repository import SQLAlchemyWorkflowRepository
from notifications.manager import NotificationManager
from services.creator_service import CreatorService, MessageTemplateService
from services.intervention_service import InterventionService
from services.template_service import StepService, TemplateService
from workflow.engine import WorkflowEngine

from conftest import BRAND_ID, NOW, FakeClock, RecordingAction, RecordingScheduler, RecordingSleep


@pytest_asyncio.fixture
async def seeded(db_session):
    creator = await CreatorService(db_session).create_creator(
        brand_id=BRAND_ID, name="Ana Lima", email="ana@example.com", status="New",
    )
    template = await TemplateService(db_session).create_template(
        brand_id=BRAND_ID, name="Review flow", trigger_event="creator_added",
    )
    steps = StepService(db_session)
    await steps.add_step(template.id, BRAND_ID, 2, "action", "After", {"action_id": "record"})
    await steps.add_step(template.id, BRAND_ID, 0, "action", "Status", {
        "action_id": "update_status", "action_inputs": {"new_status": "Primary Screen"},
    })
    await steps.add_step(template.id, BRAND_ID, 1, "human_intervention", "Review", {
        "intervention_title": "Review {creator_name}",
    })
    await db_session.commit()
    return template, creator


@pytest.mark.integration
class TestSQLAlchemyRepository:
    async def test_steps_come_back_ordered(self, db_session, seeded):
        template, _ = seeded
        repo = SQLAlchemyWorkflowRepository(db_session)

        steps = await repo.get_steps(template.id)

        assert [s.step_order for s in steps] == [0, 1, 2]
        assert [s.name for s in steps] == ["Status", "Review", "After"]

    async def test_active_templates_by_event(self, db_session, seeded):
        template, _ = seeded
        repo = SQLAlchemyWorkflowRepository(db_session)

        assert [t.id for t in await repo.list_active_templates(BRAND_ID, "creator_added")] == [template.id]
        assert await repo.list_active_templates(BRAND_ID, "manual") == []
        assert await repo.list_active_templates("brand-2", "creator_added") == []

    async def test_optimistic_version(self, db_session, seeded):
        template, creator = seeded
        repo = SQLAlchemyWorkflowRepository(db_session)
        execution = await repo.create_execution(template.id, creator.id, BRAND_ID, {}, NOW)
        assert execution.version == 1

        updated = await repo.update_execution(execution.id, {"current_step_id": "x"}, expected_version=1)
        assert updated.version == 2
        assert updated.current_step_id == "x"

        with pytest.raises(ConcurrentModificationError):
            await repo.update_execution(execution.id, {"current_step_id": "y"}, expected_version=1)

        with pytest.raises(NotFoundError):
            await repo.update_execution("missing", {}, expected_version=1)

    async def test_attempts_listed_in_creation_order(self, db_session, seeded):
        template, creator = seeded
        repo = SQLAlchemyWorkflowRepository(db_session)
        execution = await repo.create_execution(template.id, creator.id, BRAND_ID, {}, NOW)

        for attempt_number in (1, 2, 3):
            await repo.create_step_execution(execution.id, "step-x", attempt_number, {}, NOW)

        attempts = await repo.list_step_executions(execution.id)
        assert [a.attempt_number for a in attempts] == [1, 2, 3]

    async def test_one_task_per_attempt(self, db_session, seeded):
        template, creator = seeded
        repo = SQLAlchemyWorkflowRepository(db_session)
        execution = await repo.create_execution(template.id, creator.id, BRAND_ID, {}, NOW)
        attempt = await repo.create_step_execution(execution.id, "step-x", 1, {}, NOW)
        fields = dict(
            execution_id=execution.id,
            step_id="step-x",
            step_execution_id=attempt.id,
            creator_id=creator.id,
            brand_id=BRAND_ID,
            title="Review",
            priority="medium",
        )

        task = await repo.create_intervention_task(**fields)
        assert (await repo.find_task_for_attempt(attempt.id)).id == task.id

        with pytest.raises(ConflictError):
            await repo.create_intervention_task(**fields)

    async def test_due_waits(self, db_session, seeded):
        template, creator = seeded
        repo = SQLAlchemyWorkflowRepository(db_session)
        execution = await repo.create_execution(template.id, creator.id, BRAND_ID, {}, NOW)
        await repo.update_execution(execution.id, {
            "status": "paused",
            "resume_at": NOW + timedelta(hours=1),
        }, expected_version=1)

        assert await repo.list_due_waits(NOW) == []
        due = await repo.list_due_waits(NOW + timedelta(hours=1))
        assert [e.id for e in due] == [execution.id]
        assert due[0].resume_at == NOW + timedelta(hours=1)

    async def test_message_template_scoped_to_brand(self, db_session):
        template = await MessageTemplateService(db_session).create_message_template(
            brand_id=BRAND_ID, name="Welcome", content="Hi {creator_name}", subject="Hello",
        )
        repo = SQLAlchemyWorkflowRepository(db_session)

        assert (await repo.get_message_template(BRAND_ID, template.id)).content == "Hi {creator_name}"
        assert await repo.get_message_template("brand-2", template.id) is None


@pytest.mark.integration
class TestEngineOnDatabase:
    async def test_review_round_trip(self, db_session, seeded):
        template, creator = seeded
        repo = SQLAlchemyWorkflowRepository(db_session)
        registry = ActionHandlerRegistry.with_builtin_actions(notifier=NotificationManager())
        registry.register(RecordingAction())
        engine = WorkflowEngine(
            repository=repo,
            registry=registry,
            resume_scheduler=RecordingScheduler(),
            notifier=NotificationManager(),
            sleep=RecordingSleep(),
            clock=FakeClock(),
        )

        execution = await engine.start(template.id, creator.id, BRAND_ID)
        assert execution.status == "waiting_human"
        assert (await repo.get_creator(creator.id)).status == "Primary Screen"

        tasks, total = await InterventionService(db_session).list_tasks(brand_id=BRAND_ID)
        assert total == 1
        assert tasks[0].title == "Review Ana Lima"
        await InterventionService(db_session).complete(tasks[0].id, BRAND_ID, "maria", "Looks good")
        await db_session.commit()

        resumed = await engine.resume(execution.id)

        assert resumed.status == "completed"
        assert resumed.version > execution.version
        attempts = await repo.list_step_executions(execution.id)
        assert [a.status for a in attempts] == ["completed", "completed", "completed"]
