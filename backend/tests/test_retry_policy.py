"""Tests for the action step retry policy."""

import pytest

from app.config import Settings
from core.exceptions import WorkflowConfigurationError
from workflow.retry import RetryDecision, RetryPolicy


def _settings(**overrides) -> Settings:
    values = {"RETRY_BASE_DELAY": 1.0, "RETRY_DEFAULT_MAX_RETRIES": 3, "RETRY_MAX_DELAY": 300.0}
    values.update(overrides)
    return Settings(**values)


# ─── Construction ───

@pytest.mark.unit
class TestRetryPolicyFromConfig:
    def test_disabled_by_default(self):
        policy = RetryPolicy.from_step_config({"action_id": "send_email"}, _settings())
        assert policy.enabled is False

    def test_enabled_uses_default_max_retries(self):
        policy = RetryPolicy.from_step_config({"retry_on_failure": True}, _settings())
        assert policy.enabled is True
        assert policy.max_retries == 3

    def test_retry_count_overrides_default(self):
        policy = RetryPolicy.from_step_config(
            {"retry_on_failure": True, "retry_count": 5}, _settings()
        )
        assert policy.max_retries == 5

    def test_negative_retry_count_clamped(self):
        policy = RetryPolicy.from_step_config(
            {"retry_on_failure": True, "retry_count": -2}, _settings()
        )
        assert policy.max_retries == 0

    def test_numeric_string_retry_count(self):
        policy = RetryPolicy.from_step_config(
            {"retry_on_failure": True, "retry_count": "2"}, _settings()
        )
        assert policy.max_retries == 2

    @pytest.mark.parametrize("retry_count", ["three", 2.5, True, [3]])
    def test_non_integer_retry_count_rejected(self, retry_count):
        with pytest.raises(WorkflowConfigurationError):
            RetryPolicy.from_step_config({"retry_on_failure": True, "retry_count": retry_count}, _settings())

    @pytest.mark.parametrize("flag,enabled", [
        ("false", False),
        ("False", False),
        ("0", False),
        ("true", True),
        ("yes", True),
        (1, True),
        (None, False),
    ])
    def test_retry_on_failure_flag_parsing(self, flag, enabled):
        policy = RetryPolicy.from_step_config({"retry_on_failure": flag}, _settings())
        assert policy.enabled is enabled

    def test_unparseable_retry_flag_rejected(self):
        with pytest.raises(WorkflowConfigurationError):
            RetryPolicy.from_step_config({"retry_on_failure": "sometimes"}, _settings())

    def test_settings_drive_delays(self):
        policy = RetryPolicy.from_step_config(
            {"retry_on_failure": True}, _settings(RETRY_BASE_DELAY=0.5, RETRY_MAX_DELAY=10.0)
        )
        assert policy.base_delay == 0.5
        assert policy.max_delay == 10.0

    def test_none_never_retries(self):
        policy = RetryPolicy.none()
        assert policy.decide(1) == RetryDecision(retry=False)


# ─── Decisions ───

@pytest.mark.unit
class TestRetryDecisions:
    def test_exponential_delays(self):
        policy = RetryPolicy(enabled=True, max_retries=3, base_delay=1.0)
        assert [policy.compute_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_delay_capped_at_max(self):
        policy = RetryPolicy(enabled=True, max_retries=20, base_delay=1.0, max_delay=300.0)
        assert policy.compute_delay(10) == 300.0

    def test_retries_until_max_then_stops(self):
        policy = RetryPolicy(enabled=True, max_retries=3)
        decisions = [policy.decide(n).retry for n in (1, 2, 3, 4)]
        assert decisions == [True, True, True, False]

    def test_disabled_policy_does_not_retry(self):
        policy = RetryPolicy(enabled=False, max_retries=3)
        assert policy.decide(1).retry is False

    def test_zero_retries_fails_first_time(self):
        policy = RetryPolicy(enabled=True, max_retries=0)
        assert policy.decide(1).retry is False

    def test_decision_carries_delay(self):
        policy = RetryPolicy(enabled=True, max_retries=3, base_delay=2.0)
        assert policy.decide(2) == RetryDecision(retry=True, delay=8.0)

    def test_to_dict(self):
        policy = RetryPolicy(enabled=True, max_retries=2, base_delay=1.5, max_delay=60.0)
        assert policy.to_dict() == {
            "enabled": True,
            "max_retries": 2,
            "base_delay": 1.5,
            "max_delay": 60.0,
        }
