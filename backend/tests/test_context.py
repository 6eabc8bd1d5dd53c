"""Tests for the execution context and {VAR} substitution."""

from datetime import datetime, timezone

import pytest

from workflow.context import (
    ExecutionContext,
    extract_template_variables,
    substitute_inputs,
    substitute_variables,
)
from workflow.models import CreatorProfile, WorkflowDefinition


@pytest.mark.unit
class TestSubstituteVariables:
    def test_replaces_known_tokens(self):
        text = "Hi {creator_name}, welcome to {brand_name}!"
        result = substitute_variables(text, {"creator_name": "Ana", "brand_name": "Glow"})
        assert result == "Hi Ana, welcome to Glow!"

    def test_unknown_tokens_kept_verbatim(self):
        assert substitute_variables("Hi {missing}", {}) == "Hi {missing}"

    def test_unknown_tokens_dropped_when_asked(self):
        assert substitute_variables("Hi {missing}!", {}, keep_unknown=False) == "Hi !"

    def test_none_becomes_empty_string(self):
        assert substitute_variables("[{phone}]", {"phone": None}) == "[]"

    def test_non_string_values_stringified(self):
        assert substitute_variables("{n} videos", {"n": 3}) == "3 videos"

    def test_keys_are_case_sensitive(self):
        assert substitute_variables("{Name}", {"name": "Ana"}) == "{Name}"

    def test_value_that_looks_like_token_not_expanded(self):
        variables = {"a": "{b}", "b": "nope"}
        assert substitute_variables("{a}", variables) == "{b}"

    def test_idempotent_on_result(self):
        variables = {"creator_name": "Ana", "status": "Primary Screen"}
        once = substitute_variables("{creator_name} is {status} ({unknown})", variables)
        assert substitute_variables(once, variables) == once

    def test_text_without_braces_unchanged(self):
        assert substitute_variables("plain text", {"x": 1}) == "plain text"

    def test_non_string_input_returned_as_is(self):
        assert substitute_variables(42, {"x": 1}) == 42


@pytest.mark.unit
class TestHelpers:
    def test_extract_template_variables(self):
        names = extract_template_variables("{a} and {b} then {a} again, not { c }")
        assert names == ["a", "b"]

    def test_substitute_inputs_walks_nested_values(self):
        inputs = {
            "template_id": "welcome",
            "variables": {"greeting": "Hi {creator_name}"},
            "tags": ["{brand_id}", 7],
        }
        result = substitute_inputs(inputs, {"creator_name": "Ana", "brand_id": "b1"})
        assert result == {
            "template_id": "welcome",
            "variables": {"greeting": "Hi Ana"},
            "tags": ["b1", 7],
        }


@pytest.mark.unit
class TestExecutionContext:
    def _seed(self, extra=None):
        creator = CreatorProfile(
            id="c1",
            brand_id="b1",
            name="Ana",
            email="ana@example.com",
            tiktok_handle="@ana",
            status="New",
        )
        workflow = WorkflowDefinition(id="wf1", brand_id="b1", name="Onboarding")
        now = datetime(2025, 3, 14, 9, 30, 5, tzinfo=timezone.utc)
        return ExecutionContext.seed(creator, workflow, "b1", now, extra)

    def test_seed_variables(self):
        ctx = self._seed()
        assert ctx.variables["creator_id"] == "c1"
        assert ctx.variables["creator_name"] == "Ana"
        assert ctx.variables["creator_email"] == "ana@example.com"
        assert ctx.variables["creator_tiktok"] == "@ana"
        assert ctx.variables["creator_instagram"] == ""
        assert ctx.variables["creator_status"] == "New"
        assert ctx.variables["brand_id"] == "b1"
        assert ctx.variables["workflow_name"] == "Onboarding"
        assert ctx.variables["current_date"] == "2025-03-14"
        assert ctx.variables["current_time"] == "09:30:05"
        assert ctx.retry_count == 0

    def test_extra_context_merged_last(self):
        ctx = self._seed({"campaign": "spring", "creator_status": "Imported"})
        assert ctx.variables["campaign"] == "spring"
        assert ctx.variables["creator_status"] == "Imported"

    def test_step_output_written_once(self):
        ctx = ExecutionContext()
        ctx.record_output("s1", {"ok": True})
        with pytest.raises(ValueError):
            ctx.record_output("s1", {"ok": False})
        assert ctx.get_step_output("s1") == {"ok": True}

    def test_substitute_uses_variables(self):
        ctx = ExecutionContext(variables={"creator_name": "Ana"})
        assert ctx.substitute("Review {creator_name}") == "Review Ana"

    def test_to_dict_and_back(self):
        ctx = ExecutionContext(variables={"k": "v"})
        ctx.record_output("s1", {"n": 1})
        ctx.retry_count = 2
        ctx.last_error = "timeout"

        restored = ExecutionContext.from_dict(ctx.to_dict())

        assert restored == ctx

    def test_from_empty_dict(self):
        restored = ExecutionContext.from_dict(None)
        assert restored.variables == {}
        assert restored.step_outputs == {}
        assert restored.retry_count == 0
