"""Delivery channels for creator emails and team alerts.

- EmailChannel: SMTP, used by the send_email action to reach creators
- SlackChannel: incoming webhook, used for team alerts
- InAppChannel: bounded in-process inbox read by the brand dashboard

Channels never raise on delivery problems; they return a failed
DeliveryResult and let the caller decide whether that matters.
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage
from enum import Enum
from html import escape
from typing import Any, Optional
from uuid import uuid4

import httpx

logger = logging.getLogger(__name__)


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    SLACK = "slack"
    IN_APP = "in_app"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Notification:
    title: str
    message: str
    channel: NotificationChannel
    priority: NotificationPriority = NotificationPriority.NORMAL
    # Email address, Slack channel or dashboard user, depending on channel
    recipient: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    brand_id: Optional[str] = None
    creator_id: Optional[str] = None
    created_at: str = field(default_factory=_now_iso)


@dataclass
class DeliveryResult:
    success: bool
    channel: NotificationChannel
    recipient: str
    error: Optional[str] = None
    delivered_at: Optional[str] = None
    message_id: Optional[str] = None

    @classmethod
    def delivered(cls, channel: NotificationChannel, recipient: str, message_id: Optional[str] = None) -> "DeliveryResult":
        return cls(
            success=True,
            channel=channel,
            recipient=recipient,
            delivered_at=_now_iso(),
            message_id=message_id or str(uuid4()),
        )

    @classmethod
    def failed(cls, channel: NotificationChannel, recipient: str, error: str) -> "DeliveryResult":
        return cls(success=False, channel=channel, recipient=recipient, error=error)


class BaseChannel(ABC):
    channel_type: NotificationChannel

    @abstractmethod
    async def send(self, notification: Notification) -> DeliveryResult:
        ...


class EmailChannel(BaseChannel):
    """SMTP delivery. The blocking smtplib call runs in the default executor."""

    channel_type = NotificationChannel.EMAIL

    def __init__(
        self,
        host: str = "localhost",
        port: int = 587,
        user: str = "",
        password: str = "",
        from_address: str = "workflows@localhost",
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_address = from_address
        self.use_tls = use_tls

    def build_message(self, notification: Notification, message_id: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = notification.title
        msg["From"] = self.from_address
        msg["To"] = notification.recipient
        msg["Message-ID"] = f"<{message_id}@creator-pipeline>"
        msg.set_content(notification.message)
        body = escape(notification.message).replace("\n", "<br>")
        msg.add_alternative(f'<div style="font-family: sans-serif; line-height: 1.6;">{body}</div>', subtype="html")
        return msg

    async def send(self, notification: Notification) -> DeliveryResult:
        if not notification.recipient:
            return DeliveryResult.failed(self.channel_type, "", "No recipient address")

        message_id = str(uuid4())
        msg = self.build_message(notification, message_id)
        try:
            await asyncio.get_running_loop().run_in_executor(None, self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {notification.recipient} failed: {e}")
            return DeliveryResult.failed(self.channel_type, notification.recipient, str(e))
        return DeliveryResult.delivered(self.channel_type, notification.recipient, message_id)

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            if self.use_tls:
                server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)


class SlackChannel(BaseChannel):
    """Incoming-webhook delivery with a small block-kit layout."""

    channel_type = NotificationChannel.SLACK

    _PRIORITY_EMOJI = {
        NotificationPriority.HIGH: ":warning:",
        NotificationPriority.CRITICAL: ":rotating_light:",
    }

    def __init__(
        self,
        webhook_url: str,
        default_channel: str = "#creator-pipeline",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.default_channel = default_channel
        self._transport = transport

    def build_payload(self, notification: Notification) -> dict:
        emoji = self._PRIORITY_EMOJI.get(notification.priority, "")
        blocks = [
            {"type": "header", "text": {"type": "plain_text", "text": f"{emoji} {notification.title}".strip()}},
            {"type": "section", "text": {"type": "mrkdwn", "text": notification.message}},
        ]
        if notification.metadata:
            # Slack rejects section blocks with more than 10 fields
            blocks.append({
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*{key}:*\n{value}"}
                    for key, value in list(notification.metadata.items())[:10]
                ],
            })
        return {"channel": notification.recipient or self.default_channel, "blocks": blocks}

    async def send(self, notification: Notification) -> DeliveryResult:
        payload = self.build_payload(notification)
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Slack webhook failed: {e}")
            return DeliveryResult.failed(self.channel_type, payload["channel"], str(e))
        return DeliveryResult.delivered(self.channel_type, payload["channel"])


class InAppChannel(BaseChannel):
    """Dashboard inbox, newest last, capped at ``max_items``."""

    channel_type = NotificationChannel.IN_APP

    def __init__(self, max_items: int = 500):
        self._max_items = max_items
        self.inbox: list[dict] = []

    async def send(self, notification: Notification) -> DeliveryResult:
        result = DeliveryResult.delivered(self.channel_type, notification.recipient)
        self.inbox.append({
            "id": result.message_id,
            "title": notification.title,
            "message": notification.message,
            "priority": notification.priority.value,
            "recipient": notification.recipient,
            "brand_id": notification.brand_id,
            "creator_id": notification.creator_id,
            "metadata": notification.metadata,
            "created_at": notification.created_at,
        })
        del self.inbox[:-self._max_items]
        logger.info(f"In-app notification for {notification.recipient or notification.brand_id}: {notification.title}")
        return result
