"""Routes notifications to channels and raises pipeline alerts.

Two kinds of traffic go through here:

- messages a workflow step sends on purpose (send_email, send_notification),
  where a failed delivery fails the step
- alerts the engine raises on its own (execution failed, review needed),
  which go to every configured team channel and are best-effort
"""

import logging
from typing import Iterable, Optional

from app.config import Settings, get_settings
from notifications.channels import (
    BaseChannel,
    DeliveryResult,
    EmailChannel,
    InAppChannel,
    Notification,
    NotificationChannel,
    NotificationPriority,
    SlackChannel,
)

logger = logging.getLogger(__name__)

# Channels alerts fan out to; email is reserved for creator-facing mail
ALERT_CHANNELS = (NotificationChannel.IN_APP, NotificationChannel.SLACK)

_TASK_PRIORITY_LEVELS = {
    "high": NotificationPriority.HIGH,
    "urgent": NotificationPriority.CRITICAL,
}


class NotificationManager:
    def __init__(self, channels: Iterable[BaseChannel] = ()):
        self._channels: dict[NotificationChannel, BaseChannel] = {}
        for channel in channels:
            self.register_channel(channel)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "NotificationManager":
        """SMTP and the in-app inbox always; Slack only with a webhook URL."""
        settings = settings or get_settings()
        channels: list[BaseChannel] = [
            EmailChannel(
                host=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                user=settings.SMTP_USER,
                password=settings.SMTP_PASSWORD,
                from_address=settings.EMAIL_FROM_ADDRESS,
                use_tls=settings.SMTP_USE_TLS,
            ),
            InAppChannel(),
        ]
        if settings.SLACK_WEBHOOK_URL:
            channels.append(SlackChannel(settings.SLACK_WEBHOOK_URL, settings.ALERT_CHANNEL))
        return cls(channels)

    def register_channel(self, channel: BaseChannel) -> None:
        """Add a channel, replacing any existing one of the same type."""
        self._channels[channel.channel_type] = channel
        logger.debug(f"Notification channel registered: {channel.channel_type.value}")

    def get_channel(self, channel: NotificationChannel) -> Optional[BaseChannel]:
        return self._channels.get(channel)

    @property
    def configured_channels(self) -> list[str]:
        return sorted(ch.value for ch in self._channels)

    async def send(self, notification: Notification) -> DeliveryResult:
        channel = self._channels.get(notification.channel)
        if channel is None:
            return DeliveryResult.failed(
                notification.channel,
                notification.recipient,
                f"Channel not configured: {notification.channel.value}",
            )

        result = await channel.send(notification)
        if result.success:
            logger.info(f"Notification sent via {notification.channel.value} to {result.recipient}")
        else:
            logger.warning(f"Notification via {notification.channel.value} failed: {result.error}")
        return result

    async def alert(
        self,
        title: str,
        message: str,
        brand_id: str,
        alert_type: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        creator_id: Optional[str] = None,
        assignee: str = "",
        **metadata,
    ) -> list[DeliveryResult]:
        """Send one alert to every configured team channel.

        ``assignee`` addresses the in-app inbox entry; Slack always posts to
        the brand's alert channel.
        """
        results = []
        for channel_type in ALERT_CHANNELS:
            if channel_type not in self._channels:
                continue
            results.append(await self.send(Notification(
                title=title,
                message=message,
                channel=channel_type,
                priority=priority,
                recipient=assignee if channel_type == NotificationChannel.IN_APP else "",
                metadata={"type": alert_type, **metadata},
                brand_id=brand_id,
                creator_id=creator_id,
            )))
        return results

    async def alert_execution_failed(
        self,
        workflow_name: str,
        execution_id: str,
        creator_name: str,
        error: str,
        brand_id: str,
    ) -> list[DeliveryResult]:
        return await self.alert(
            title=f"Workflow FAILED: {workflow_name}",
            message=f"Execution {execution_id[:8]} for {creator_name} failed: {error}",
            brand_id=brand_id,
            alert_type="execution_failed",
            priority=NotificationPriority.HIGH,
            execution_id=execution_id,
            error=error,
        )

    async def alert_review_needed(
        self,
        title: str,
        execution_id: str,
        task_id: str,
        brand_id: str,
        creator_id: str,
        assignee: Optional[str] = None,
        task_priority: str = "medium",
    ) -> list[DeliveryResult]:
        """A human_intervention step parked an execution on a review task."""
        return await self.alert(
            title=f"Review needed: {title}",
            message=f"Execution {execution_id[:8]} is waiting for task {task_id[:8]}.",
            brand_id=brand_id,
            alert_type="intervention_required",
            priority=_TASK_PRIORITY_LEVELS.get(task_priority, NotificationPriority.NORMAL),
            creator_id=creator_id,
            assignee=assignee or "",
            execution_id=execution_id,
            task_id=task_id,
        )


_manager: Optional[NotificationManager] = None


def get_notification_manager() -> NotificationManager:
    """Process-wide manager built from settings on first use."""
    global _manager
    if _manager is None:
        _manager = NotificationManager.from_settings()
    return _manager
