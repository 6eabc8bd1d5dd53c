"""Trigger event and result types."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from core.constants import TriggerEvent
from core.utils import utc_now


@dataclass
class CreatorEvent:
    """Something happened to a creator that may start workflows.

    This is the payload that gets passed from the API or a worker to the
    TriggerManager, which starts every matching active template.
    """

    creator_id: str
    brand_id: str
    event: TriggerEvent
    extra_context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    correlation_id: Optional[str] = None


@dataclass
class TriggerResult:
    """Outcome of starting one template for an event."""

    success: bool
    message: str
    workflow_id: str
    execution_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "status": self.status,
            "error": self.error,
        }
