"""Retry policy for action steps.

Steps opt in through their config:

    {"action_id": "send_email", "retry_on_failure": true, "retry_count": 3}

The failed attempt number drives the backoff: the first retry waits
2 * base, the second 4 * base, the third 8 * base, capped at max_delay.
"""

from dataclasses import dataclass
from typing import Optional

from app.config import Settings, get_settings
from core.exceptions import WorkflowConfigurationError

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off", ""}


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUE | _FALSE:
        return value.strip().lower() in _TRUE
    if isinstance(value, int):
        return value != 0
    if value is None:
        return False
    raise WorkflowConfigurationError(f"retry_on_failure must be a boolean, got {value!r}")


@dataclass
class RetryDecision:
    """Outcome of a retry decision."""

    retry: bool
    delay: float = 0.0


@dataclass
class RetryPolicy:
    """Decides whether and when a failed step attempt is retried."""

    enabled: bool = False
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 300.0

    @classmethod
    def none(cls) -> "RetryPolicy":
        """No retries, fail on the first error."""
        return cls(enabled=False, max_retries=0)

    @classmethod
    def from_step_config(
        cls,
        config: Optional[dict],
        settings: Optional[Settings] = None,
    ) -> "RetryPolicy":
        """Create the policy for one step from its config dict.

        Raises:
            WorkflowConfigurationError: retry_count or retry_on_failure has the wrong type
        """
        settings = settings or get_settings()
        config = config or {}
        max_retries = config.get("retry_count")
        if max_retries is None:
            max_retries = settings.RETRY_DEFAULT_MAX_RETRIES
        elif isinstance(max_retries, bool) or not isinstance(max_retries, (int, str)):
            raise WorkflowConfigurationError(f"retry_count must be an integer, got {max_retries!r}")
        try:
            max_retries = int(max_retries)
        except ValueError:
            raise WorkflowConfigurationError(f"retry_count must be an integer, got {max_retries!r}")
        return cls(
            enabled=_flag(config.get("retry_on_failure", False)),
            max_retries=max(0, max_retries),
            base_delay=settings.RETRY_BASE_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
        )

    def compute_delay(self, attempt_number: int) -> float:
        """Backoff before the retry that follows attempt_number (1-based)."""
        delay = (2 ** attempt_number) * self.base_delay
        return min(delay, self.max_delay)

    def decide(self, attempt_number: int) -> RetryDecision:
        """Decide what happens after attempt_number failed.

        Attempt 1 is the initial run, so with max_retries=3 attempts 1-3
        are retried and attempt 4 is final.
        """
        if not self.enabled or attempt_number > self.max_retries:
            return RetryDecision(retry=False)
        return RetryDecision(retry=True, delay=self.compute_delay(attempt_number))

    def to_dict(self) -> dict:
        """Serialize for logs and step snapshots."""
        return {
            "enabled": self.enabled,
            "max_retries": self.max_retries,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
        }
