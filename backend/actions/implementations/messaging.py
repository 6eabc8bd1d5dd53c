"""
Messaging action implementations.

- send_email: render a brand message template for the creator and email it
- send_notification: push a notification to the team (in-app or Slack)
"""

from typing import Any, Dict, Optional

from actions.base_action import ActionContext, BaseAction
from core.exceptions import ActionExecutionError, WorkflowConfigurationError
from core.utils import utc_now
from notifications.channels import Notification, NotificationChannel, NotificationPriority
from notifications.manager import NotificationManager, get_notification_manager
from workflow.context import substitute_variables


class SendEmailAction(BaseAction):
    """Send a templated email to the creator."""

    action_type = "send_email"
    display_name = "Send Email"
    description = "Render a message template with workflow variables and email it to the creator"
    required_inputs = ("template_id",)

    def __init__(self, notifier: Optional[NotificationManager] = None):
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationManager:
        return self._notifier or get_notification_manager()

    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        template_id = inputs["template_id"]
        template = await ctx.repository.get_message_template(ctx.brand_id, template_id)
        if template is None:
            raise WorkflowConfigurationError(f"Email template not found: {template_id}")

        variables = dict(ctx.context.variables)
        variables.update(inputs.get("variables") or {})
        subject = substitute_variables(template.subject or "", variables)
        content = substitute_variables(template.content, variables)

        recipient = inputs.get("to") or variables.get("creator_email")
        if not recipient:
            raise WorkflowConfigurationError("send_email: creator has no email address")

        result = await self.notifier.send(Notification(
            title=subject,
            message=content,
            channel=NotificationChannel.EMAIL,
            recipient=recipient,
            brand_id=ctx.brand_id,
            creator_id=ctx.execution.creator_id,
            metadata={"execution_id": ctx.execution.id, "template_id": template_id},
        ))
        if not result.success:
            raise ActionExecutionError(f"Email delivery failed: {result.error}")

        return {
            "message_id": result.message_id,
            "sent_at": utc_now().isoformat(),
            "status": "sent",
            "to": recipient,
            "subject": subject,
        }

    @classmethod
    def get_input_schema(cls) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "template_id": {"type": "string", "description": "Brand message template id"},
                "variables": {"type": "object", "description": "Extra variables, override context values"},
                "to": {"type": "string", "description": "Recipient override (default: creator email)"},
            },
            "required": ["template_id"],
        }


class SendNotificationAction(BaseAction):
    """Notify the brand team about the creator."""

    action_type = "send_notification"
    display_name = "Send Notification"
    description = "Send an in-app or Slack notification to the team"
    required_inputs = ("message",)

    def __init__(self, notifier: Optional[NotificationManager] = None):
        self._notifier = notifier

    @property
    def notifier(self) -> NotificationManager:
        return self._notifier or get_notification_manager()

    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        channel_name = inputs.get("channel", NotificationChannel.IN_APP.value)
        priority_name = inputs.get("priority", NotificationPriority.NORMAL.value)
        try:
            channel = NotificationChannel(channel_name)
            priority = NotificationPriority(priority_name)
        except ValueError as e:
            raise WorkflowConfigurationError(f"send_notification: {e}")

        result = await self.notifier.send(Notification(
            title=inputs.get("title") or ctx.step.name,
            message=inputs["message"],
            channel=channel,
            priority=priority,
            recipient=inputs.get("recipient", ""),
            brand_id=ctx.brand_id,
            creator_id=ctx.execution.creator_id,
            metadata={"execution_id": ctx.execution.id},
        ))
        if not result.success:
            raise ActionExecutionError(f"Notification delivery failed: {result.error}")

        return {
            "notification_id": result.message_id,
            "sent_at": utc_now().isoformat(),
            "channel": channel.value,
        }


MESSAGING_ACTIONS = {
    "send_email": SendEmailAction,
    "send_notification": SendNotificationAction,
}
