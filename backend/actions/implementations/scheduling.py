"""Call scheduling action."""

from datetime import timedelta
from typing import Any, Dict
from uuid import uuid4

from actions.base_action import ActionContext, BaseAction
from core.exceptions import WorkflowConfigurationError
from core.utils import parse_datetime, utc_now


class ScheduleCallAction(BaseAction):
    """Book a call with the creator through the brand's calendar link.

    The meeting itself is booked by the creator via calendar_link; the
    action records the proposed slot and returns the link to share.
    """

    action_type = "schedule_call"
    display_name = "Schedule Call"
    description = "Propose a call with the creator using the brand's calendar link"
    required_inputs = ("calendar_link",)

    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        try:
            duration = int(inputs.get("duration", 30))
        except (TypeError, ValueError):
            raise WorkflowConfigurationError("schedule_call: duration must be minutes as an integer")

        scheduled_for = inputs.get("scheduled_for")
        if scheduled_for:
            try:
                start = parse_datetime(str(scheduled_for))
            except ValueError:
                raise WorkflowConfigurationError(f"schedule_call: invalid scheduled_for {scheduled_for!r}")
        else:
            start = utc_now()

        return {
            "calendar_event_id": str(uuid4()),
            "meeting_url": inputs["calendar_link"],
            "scheduled_for": start.isoformat(),
            "ends_at": (start + timedelta(minutes=duration)).isoformat(),
            "meeting_type": inputs.get("meeting_type", "initial"),
        }


SCHEDULING_ACTIONS = {
    "schedule_call": ScheduleCallAction,
}
