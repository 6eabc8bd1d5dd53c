"""Tests for the workflow execution engine."""

from datetime import timedelta

import pytest

from core.exceptions import (
    ConcurrentModificationError,
    GateNotSatisfiedError,
    InvalidTransitionError,
    NotFoundError,
    TemplateInactiveError,
)
from notifications.channels import NotificationChannel
from workflow.context import ExecutionContext

from conftest import BRAND_ID, NOW, FlakyAction, RecordingAction


def _attempts(repo, execution_id):
    return [a for a in repo.step_executions.values() if a.execution_id == execution_id]


def _statuses(repo, execution_id):
    return [(a.step_id, a.status) for a in _attempts(repo, execution_id)]


@pytest.mark.unit
class TestLinearRun:
    async def test_runs_steps_in_order(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        _, steps = add_workflow(
            ("action", "First", {"action_id": "record", "action_inputs": {"note": "one"}}),
            ("action", "Second", {"action_id": "record", "action_inputs": {"note": "two"}}),
        )
        engine = make_engine(record)

        execution = await engine.start(steps[0].workflow_id, creator.id, BRAND_ID)

        assert execution.status == "completed"
        assert execution.completed_at == NOW
        assert [i["note"] for i in record.inputs] == ["one", "two"]
        assert _statuses(repo, execution.id) == [
            (steps[0].id, "completed"),
            (steps[1].id, "completed"),
        ]
        ctx = ExecutionContext.from_dict(execution.context)
        assert ctx.step_outputs[steps[1].id] == {"seen": "two"}

    async def test_inputs_are_context_overlaid_with_substituted_step_inputs(
        self, make_engine, add_workflow, creator
    ):
        record = RecordingAction()
        template, _ = add_workflow(
            ("action", "Greet", {
                "action_id": "record",
                "action_inputs": {"note": "Hello {creator_name} ({missing})", "creator_status": "Override"},
            }),
        )

        await make_engine(record).start(template.id, creator.id, BRAND_ID, {"campaign": "spring"})

        seen = record.inputs[0]
        assert seen["note"] == "Hello Ana Lima ({missing})"
        assert seen["creator_email"] == "ana@example.com"
        assert seen["creator_status"] == "Override"
        assert seen["campaign"] == "spring"

    async def test_update_status_is_visible_to_later_steps(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        template, _ = add_workflow(
            ("action", "Move to outreach", {"action_id": "update_status", "action_inputs": {"new_status": "Cold Outreach"}}),
            ("action", "Check", {"action_id": "record", "action_inputs": {"note": "{creator_status}"}}),
        )

        await make_engine(record).start(template.id, creator.id, BRAND_ID)

        assert repo.creators[creator.id].status == "Cold Outreach"
        assert record.inputs[0]["note"] == "Cold Outreach"

    async def test_empty_workflow_completes(self, make_engine, add_workflow, creator):
        template, _ = add_workflow()
        execution = await make_engine().start(template.id, creator.id, BRAND_ID)
        assert execution.status == "completed"


@pytest.mark.unit
class TestStartValidation:
    async def test_inactive_template(self, make_engine, add_workflow, creator, repo):
        template, _ = add_workflow(("action", "Noop", {"action_id": "record"}), is_active=False)

        with pytest.raises(TemplateInactiveError):
            await make_engine(RecordingAction()).start(template.id, creator.id, BRAND_ID)
        assert repo.executions == {}

    async def test_template_of_other_brand(self, make_engine, add_workflow, creator):
        template, _ = add_workflow()
        with pytest.raises(NotFoundError):
            await make_engine().start(template.id, creator.id, "brand-2")

    async def test_unknown_creator(self, make_engine, add_workflow):
        template, _ = add_workflow()
        with pytest.raises(NotFoundError):
            await make_engine().start(template.id, "nobody", BRAND_ID)


@pytest.mark.unit
class TestRetries:
    async def test_exhausted_retries_fail_execution(self, make_engine, add_workflow, creator, repo, sleep):
        flaky = FlakyAction(failures=10)
        template, steps = add_workflow(
            ("action", "Flaky", {"action_id": "flaky", "retry_on_failure": True, "retry_count": 3}),
        )

        execution = await make_engine(flaky).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert execution.error_message == "Step 'Flaky' failed after 4 attempts: transient failure #4"
        attempts = _attempts(repo, execution.id)
        assert [a.attempt_number for a in attempts] == [1, 2, 3, 4]
        assert all(a.status == "failed" for a in attempts)
        assert attempts[0].error_message == "transient failure #1"
        assert sleep.delays == [2.0, 4.0, 8.0]
        assert flaky.calls == 4

    async def test_retry_then_success_resets_retry_count(self, make_engine, add_workflow, creator, repo, sleep):
        flaky = FlakyAction(failures=2)
        template, steps = add_workflow(
            ("action", "Flaky", {"action_id": "flaky", "retry_on_failure": True, "retry_count": 3}),
        )

        execution = await make_engine(flaky).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "completed"
        assert [a.status for a in _attempts(repo, execution.id)] == ["failed", "failed", "completed"]
        assert sleep.delays == [2.0, 4.0]
        ctx = ExecutionContext.from_dict(execution.context)
        assert ctx.retry_count == 0
        assert ctx.last_error is None
        assert ctx.step_outputs[steps[0].id] == {"calls": 3}

    async def test_retry_count_grows_while_retrying(self, make_engine, add_workflow, creator, repo):
        seen = []

        class Peek(FlakyAction):
            async def execute(self, inputs, ctx):
                seen.append(ctx.context.retry_count)
                return await super().execute(inputs, ctx)

        template, _ = add_workflow(
            ("action", "Flaky", {"action_id": "flaky", "retry_on_failure": True, "retry_count": 3}),
        )

        await make_engine(Peek(failures=3)).start(template.id, creator.id, BRAND_ID)

        assert seen == [0, 1, 2, 3]

    async def test_no_retry_without_opt_in(self, make_engine, add_workflow, creator, repo, sleep):
        template, _ = add_workflow(("action", "Flaky", {"action_id": "flaky"}))

        execution = await make_engine(FlakyAction(failures=1)).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert execution.error_message == "Step 'Flaky' failed: transient failure #1"
        assert len(_attempts(repo, execution.id)) == 1
        assert sleep.delays == []

    async def test_configuration_errors_are_not_retried(self, make_engine, add_workflow, creator, repo, sleep):
        template, _ = add_workflow(
            ("action", "Teleport", {"action_id": "teleport", "retry_on_failure": True, "retry_count": 3}),
        )

        execution = await make_engine().start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert execution.error_message == "Step 'Teleport' failed: Unknown action: teleport"
        assert len(_attempts(repo, execution.id)) == 1
        assert sleep.delays == []

    async def test_non_integer_retry_count_fails_execution(self, make_engine, add_workflow, creator, repo, sleep):
        flaky = FlakyAction(failures=0)
        template, steps = add_workflow(
            ("action", "Flaky", {"action_id": "flaky", "retry_on_failure": True, "retry_count": "three"}),
        )

        execution = await make_engine(flaky).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert execution.error_message == "Step 'Flaky' failed: retry_count must be an integer, got 'three'"
        stored = repo.executions[execution.id]
        assert stored.status == "failed"
        assert stored.completed_at == NOW
        assert _statuses(repo, execution.id) == [(steps[0].id, "failed")]
        assert flaky.calls == 0
        assert sleep.delays == []

    async def test_string_false_does_not_opt_in(self, make_engine, add_workflow, creator, repo, sleep):
        template, _ = add_workflow(
            ("action", "Flaky", {"action_id": "flaky", "retry_on_failure": "false", "retry_count": 3}),
        )

        execution = await make_engine(FlakyAction(failures=1)).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert len(_attempts(repo, execution.id)) == 1
        assert sleep.delays == []

    async def test_failure_notifies_brand(self, make_engine, add_workflow, creator, notifier):
        template, _ = add_workflow(("action", "Teleport", {"action_id": "teleport"}), name="Onboarding")

        await make_engine().start(template.id, creator.id, BRAND_ID)

        inbox = notifier.get_channel(NotificationChannel.IN_APP).inbox
        assert inbox[-1]["title"] == "Workflow FAILED: Onboarding"
        assert inbox[-1]["metadata"]["type"] == "execution_failed"


@pytest.mark.unit
class TestConditions:
    def _workflow(self, add_workflow, expected):
        return add_workflow(
            ("condition", "VIP?", {"conditions": [{
                "field_name": "creator_status",
                "operator": "equals",
                "expected_value": expected,
                "next_step_id": "step-b",
            }]}, "step-cond"),
            ("action", "A", {"action_id": "record", "action_inputs": {"note": "a"}}, "step-a"),
            ("action", "B", {"action_id": "record", "action_inputs": {"note": "b"}}, "step-b"),
        )

    async def test_no_match_falls_through(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        template, _ = self._workflow(add_workflow, "VIP")

        execution = await make_engine(record).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "completed"
        assert [i["note"] for i in record.inputs] == ["a", "b"]
        ctx = ExecutionContext.from_dict(execution.context)
        assert ctx.step_outputs["step-cond"]["matched"] is False

    async def test_match_branches_forward_and_skips(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        template, _ = self._workflow(add_workflow, "New")

        execution = await make_engine(record).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "completed"
        assert [i["note"] for i in record.inputs] == ["b"]
        assert _statuses(repo, execution.id) == [
            ("step-cond", "completed"),
            ("step-a", "skipped"),
            ("step-b", "completed"),
        ]

    async def test_backward_branch_fails(self, make_engine, add_workflow, creator):
        template, _ = add_workflow(
            ("action", "A", {"action_id": "record"}, "step-a"),
            ("condition", "Loop", {"conditions": [{
                "field_name": "creator_status",
                "operator": "exists",
                "next_step_id": "step-a",
            }]}, "step-cond"),
        )

        execution = await make_engine(RecordingAction()).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert "branches backwards" in execution.error_message

    async def test_numeric_test_on_missing_field_falls_through(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        template, _ = add_workflow(
            ("condition", "Big?", {"conditions": [{
                "field_name": "follower_count",
                "operator": "greater_than",
                "expected_value": 10000,
                "next_step_id": "step-b",
            }]}, "step-cond"),
            ("action", "A", {"action_id": "record", "action_inputs": {"note": "a"}}, "step-a"),
            ("action", "B", {"action_id": "record", "action_inputs": {"note": "b"}}, "step-b"),
        )

        execution = await make_engine(record).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "completed"
        assert [i["note"] for i in record.inputs] == ["a", "b"]

    async def test_non_numeric_threshold_fails(self, make_engine, add_workflow, creator):
        template, _ = add_workflow(
            ("condition", "Big?", {"conditions": [{
                "field_name": "follower_count",
                "operator": "less_than",
                "expected_value": "lots",
            }]}),
        )

        execution = await make_engine().start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert "expected_value" in execution.error_message

    async def test_empty_condition_list_fails(self, make_engine, add_workflow, creator):
        template, _ = add_workflow(("condition", "Broken", {"conditions": []}))

        execution = await make_engine().start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"


@pytest.mark.unit
class TestHumanIntervention:
    async def _start(self, make_engine, add_workflow, creator, record):
        template, steps = add_workflow(
            ("action", "Primary screen", {"action_id": "update_status", "action_inputs": {"new_status": "Primary Screen"}}),
            ("human_intervention", "Portfolio Review", {
                "intervention_title": "Review {creator_name}",
                "intervention_description": "Check {creator_instagram}",
                "priority": "high",
                "assignee": "maria",
            }),
            ("action", "After review", {"action_id": "record", "action_inputs": {"note": "done"}}),
        )
        engine = make_engine(record)
        execution = await engine.start(template.id, creator.id, BRAND_ID)
        return engine, steps, execution

    async def test_parks_execution_with_one_task(self, make_engine, add_workflow, creator, repo, notifier):
        record = RecordingAction()
        _, steps, execution = await self._start(make_engine, add_workflow, creator, record)

        assert execution.status == "waiting_human"
        assert execution.current_step_id == steps[1].id
        assert record.inputs == []
        tasks = list(repo.tasks.values())
        assert len(tasks) == 1
        assert tasks[0].title == "Review Ana Lima"
        assert tasks[0].description == "Check @ana.creates"
        assert tasks[0].priority == "high"
        assert tasks[0].assigned_to == "maria"
        assert _statuses(repo, execution.id) == [
            (steps[0].id, "completed"),
            (steps[1].id, "waiting"),
        ]
        inbox = notifier.get_channel(NotificationChannel.IN_APP).inbox
        assert inbox[-1]["metadata"]["task_id"] == tasks[0].id

    async def test_resume_rejected_while_task_open(self, make_engine, add_workflow, creator, repo):
        engine, _, execution = await self._start(make_engine, add_workflow, creator, RecordingAction())
        before = len(repo.step_executions)

        with pytest.raises(GateNotSatisfiedError):
            await engine.resume(execution.id)

        assert repo.executions[execution.id].status == "waiting_human"
        assert len(repo.step_executions) == before

    async def test_resume_after_task_completed(self, make_engine, add_workflow, creator, repo):
        record = RecordingAction()
        engine, steps, execution = await self._start(make_engine, add_workflow, creator, record)
        task = next(iter(repo.tasks.values()))
        await repo.update_intervention_task(task.id, {
            "status": "completed",
            "completed_by": "maria",
            "resolution_notes": "Great portfolio",
        })

        resumed = await engine.resume(execution.id)

        assert resumed.status == "completed"
        assert [i["note"] for i in record.inputs] == ["done"]
        assert _statuses(repo, execution.id) == [
            (steps[0].id, "completed"),
            (steps[1].id, "completed"),
            (steps[2].id, "completed"),
        ]
        ctx = ExecutionContext.from_dict(resumed.context)
        assert ctx.step_outputs[steps[1].id]["completed_by"] == "maria"
        assert ctx.step_outputs[steps[1].id]["task_status"] == "completed"

    async def test_skipped_task_also_opens_gate(self, make_engine, add_workflow, creator, repo):
        engine, _, execution = await self._start(make_engine, add_workflow, creator, RecordingAction())
        task = next(iter(repo.tasks.values()))
        await repo.update_intervention_task(task.id, {"status": "skipped"})

        resumed = await engine.resume(execution.id)

        assert resumed.status == "completed"

    async def test_resume_of_completed_execution_rejected(self, make_engine, add_workflow, creator, repo):
        engine, _, execution = await self._start(make_engine, add_workflow, creator, RecordingAction())
        task = next(iter(repo.tasks.values()))
        await repo.update_intervention_task(task.id, {"status": "completed"})
        await engine.resume(execution.id)
        before = len(repo.step_executions)

        with pytest.raises(InvalidTransitionError, match="completed and cannot be resumed"):
            await engine.resume(execution.id)

        assert len(repo.step_executions) == before

    async def test_unknown_execution(self, make_engine):
        with pytest.raises(NotFoundError):
            await make_engine().resume("missing")

    async def test_bad_priority_fails_execution(self, make_engine, add_workflow, creator, repo):
        template, _ = add_workflow(("human_intervention", "Review", {"priority": "asap"}))

        execution = await make_engine().start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert repo.tasks == {}


@pytest.mark.unit
class TestWaitSteps:
    async def test_pauses_and_schedules_resume(self, make_engine, add_workflow, creator, repo, scheduler):
        template, steps = add_workflow(
            ("wait", "Give them a day", {"wait_duration": 3600}),
            ("action", "Follow up", {"action_id": "record", "action_inputs": {"note": "follow-up"}}),
        )

        execution = await make_engine(RecordingAction()).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "paused"
        assert execution.resume_at == NOW + timedelta(hours=1)
        assert execution.current_step_id == steps[0].id
        assert scheduler.scheduled == [(execution.id, NOW + timedelta(hours=1))]

    async def test_resume_before_resume_at_rejected(self, make_engine, add_workflow, creator, repo, clock):
        template, _ = add_workflow(("wait", "Wait", {"wait_duration": 3600}))
        engine = make_engine()
        execution = await engine.start(template.id, creator.id, BRAND_ID)

        clock.advance(minutes=59)
        with pytest.raises(GateNotSatisfiedError):
            await engine.resume(execution.id)
        assert repo.executions[execution.id].status == "paused"

    async def test_resume_after_resume_at(self, make_engine, add_workflow, creator, repo, clock):
        record = RecordingAction()
        template, steps = add_workflow(
            ("wait", "Wait", {"wait_duration": 3600}),
            ("action", "Follow up", {"action_id": "record", "action_inputs": {"note": "follow-up"}}),
        )
        engine = make_engine(record)
        execution = await engine.start(template.id, creator.id, BRAND_ID)

        clock.advance(hours=1)
        resumed = await engine.resume(execution.id)

        assert resumed.status == "completed"
        assert resumed.resume_at is None
        assert [i["note"] for i in record.inputs] == ["follow-up"]
        assert _statuses(repo, execution.id) == [
            (steps[0].id, "completed"),
            (steps[1].id, "completed"),
        ]

    async def test_wait_until_in_past_continues(self, make_engine, add_workflow, creator, scheduler):
        template, _ = add_workflow(("wait", "Already due", {"wait_until": "2020-01-01T00:00:00Z"}))

        execution = await make_engine().start(template.id, creator.id, BRAND_ID)

        assert execution.status == "completed"
        assert scheduler.scheduled == []

    async def test_wait_until_in_future(self, make_engine, add_workflow, creator):
        template, _ = add_workflow(("wait", "Launch day", {"wait_until": "2025-03-20T08:00:00Z"}))

        execution = await make_engine().start(template.id, creator.id, BRAND_ID)

        assert execution.status == "paused"
        assert execution.resume_at.isoformat() == "2025-03-20T08:00:00+00:00"

    async def test_wait_without_config_fails(self, make_engine, add_workflow, creator):
        template, _ = add_workflow(("wait", "Broken", {}))

        execution = await make_engine().start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert "wait_duration or wait_until" in execution.error_message


@pytest.mark.unit
class TestCancel:
    async def test_cancel_waiting_execution(self, make_engine, add_workflow, creator, repo):
        template, steps = add_workflow(("human_intervention", "Review", {}))
        engine = make_engine()
        execution = await engine.start(template.id, creator.id, BRAND_ID)

        cancelled = await engine.cancel(execution.id, "Creator withdrew")

        assert cancelled.status == "failed"
        assert cancelled.error_message == "Creator withdrew"
        assert _statuses(repo, execution.id) == [(steps[0].id, "failed")]

    async def test_cancel_paused_clears_resume_at(self, make_engine, add_workflow, creator):
        template, _ = add_workflow(("wait", "Wait", {"wait_duration": 60}))
        engine = make_engine()
        execution = await engine.start(template.id, creator.id, BRAND_ID)

        cancelled = await engine.cancel(execution.id)

        assert cancelled.resume_at is None
        assert cancelled.error_message == "Cancelled by operator"

    async def test_cancel_completed_rejected(self, make_engine, add_workflow, creator):
        template, _ = add_workflow()
        engine = make_engine()
        execution = await engine.start(template.id, creator.id, BRAND_ID)

        with pytest.raises(InvalidTransitionError):
            await engine.cancel(execution.id)


@pytest.mark.unit
class TestUnexpectedErrors:
    async def test_repository_error_fails_execution(self, make_engine, add_workflow, creator, repo):
        template, _ = add_workflow(("action", "First", {"action_id": "record"}))

        async def broken(**kwargs):
            raise RuntimeError("disk full")

        repo.create_step_execution = broken
        execution = await make_engine(RecordingAction()).start(template.id, creator.id, BRAND_ID)

        assert execution.status == "failed"
        assert execution.error_message == "Execution aborted: disk full"
        assert repo.executions[execution.id].status == "failed"

    async def test_lost_version_race_leaves_execution_alone(self, make_engine, add_workflow, creator, repo):
        class Interloper(RecordingAction):
            async def execute(self, inputs, ctx):
                for execution in repo.executions.values():
                    execution.version += 1
                return await super().execute(inputs, ctx)

        template, _ = add_workflow(
            ("action", "First", {"action_id": "record"}),
            ("action", "Second", {"action_id": "record"}),
        )

        with pytest.raises(ConcurrentModificationError):
            await make_engine(Interloper()).start(template.id, creator.id, BRAND_ID)

        (stored,) = repo.executions.values()
        assert stored.status == "running"
        assert stored.error_message is None
