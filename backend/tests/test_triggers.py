"""Tests for the trigger manager and due-wait resumption."""

from datetime import timedelta

import pytest

from core.constants import TriggerEvent
from triggers.base import CreatorEvent, TriggerResult
from triggers.manager import (
    TriggerManager,
    resume_due_executions,
    trigger_workflow_for_creator,
)

from conftest import BRAND_ID, NOW, RecordingAction


@pytest.mark.unit
class TestFireEvent:
    async def test_starts_every_matching_active_template(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        first, _ = add_workflow(("action", "A", {"action_id": "record"}), trigger_event="creator_added")
        second, _ = add_workflow(("action", "B", {"action_id": "record"}), trigger_event="creator_added")
        add_workflow(("action", "Inactive", {"action_id": "record"}), trigger_event="creator_added", is_active=False)
        add_workflow(("action", "Manual", {"action_id": "record"}), trigger_event="manual")

        results = await trigger_workflow_for_creator(
            make_engine(record), repo, creator.id, BRAND_ID, "creator_added"
        )

        assert {r.workflow_id for r in results} == {first.id, second.id}
        assert all(r.success and r.status == "completed" for r in results)
        assert len(record.inputs) == 2
        assert record.inputs[0]["trigger_event"] == "creator_added"

    async def test_failing_template_does_not_block_others(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        broken, _ = add_workflow(("action", "Broken", {"action_id": "teleport"}), trigger_event="status_change")
        healthy, _ = add_workflow(("action", "Fine", {"action_id": "record"}), trigger_event="status_change")

        results = await TriggerManager(make_engine(record), repo).fire_event(CreatorEvent(
            creator_id=creator.id,
            brand_id=BRAND_ID,
            event=TriggerEvent.STATUS_CHANGE,
            extra_context={"old_status": "New"},
            correlation_id="req-42",
        ))

        by_id = {r.workflow_id: r for r in results}
        assert by_id[broken.id].success is True
        assert by_id[broken.id].status == "failed"
        assert by_id[healthy.id].status == "completed"
        assert record.inputs[0]["old_status"] == "New"
        assert record.inputs[0]["correlation_id"] == "req-42"

    async def test_start_errors_are_reported_per_template(self, make_engine, add_workflow, repo):
        template, _ = add_workflow(("action", "A", {"action_id": "record"}), trigger_event="manual")

        results = await trigger_workflow_for_creator(
            make_engine(RecordingAction()), repo, "ghost", BRAND_ID, "manual"
        )

        assert len(results) == 1
        assert results[0].success is False
        assert results[0].workflow_id == template.id
        assert "ghost" in results[0].error

    async def test_no_templates(self, make_engine, creator, repo):
        results = await trigger_workflow_for_creator(
            make_engine(), repo, creator.id, BRAND_ID, "time_based"
        )
        assert results == []

    async def test_unknown_event_rejected(self, make_engine, creator, repo):
        with pytest.raises(ValueError):
            await trigger_workflow_for_creator(make_engine(), repo, creator.id, BRAND_ID, "birthday")

    def test_result_to_dict(self):
        result = TriggerResult(success=True, message="Started 'X'", workflow_id="wf-1", execution_id="ex-1")
        assert result.to_dict()["execution_id"] == "ex-1"


@pytest.mark.unit
class TestResumeDueExecutions:
    async def test_resumes_only_due_waits(self, make_engine, add_workflow, creator, repo, clock):
        record = RecordingAction()
        short, _ = add_workflow(
            ("wait", "Short", {"wait_duration": 60}),
            ("action", "After short", {"action_id": "record", "action_inputs": {"note": "short"}}),
        )
        slow, _ = add_workflow(
            ("wait", "Long", {"wait_duration": 86400}),
            ("action", "After long", {"action_id": "record", "action_inputs": {"note": "long"}}),
        )
        engine = make_engine(record)
        due = await engine.start(short.id, creator.id, BRAND_ID)
        later = await engine.start(slow.id, creator.id, BRAND_ID)

        clock.advance(minutes=5)
        resumed = await resume_due_executions(engine, repo, now=clock())

        assert resumed == [due.id]
        assert repo.executions[due.id].status == "completed"
        assert repo.executions[later.id].status == "paused"
        assert [i["note"] for i in record.inputs] == ["short"]

    async def test_already_resumed_execution_is_skipped(self, make_engine, add_workflow, creator, repo, clock):
        template, _ = add_workflow(("wait", "Short", {"wait_duration": 60}))
        engine = make_engine()
        execution = await engine.start(template.id, creator.id, BRAND_ID)
        clock.advance(minutes=2)
        stale = await repo.list_due_waits(clock())

        await engine.resume(execution.id)

        class StaleRepo:
            async def list_due_waits(self, now):
                return stale

        assert await resume_due_executions(engine, StaleRepo(), now=NOW + timedelta(minutes=2)) == []
