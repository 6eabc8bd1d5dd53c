"""Wiring helpers that assemble a WorkflowEngine from its collaborators."""

from typing import Optional

from actions.registry import ActionHandlerRegistry
from app.config import Settings, get_settings
from integrations.claude_client import get_claude_client
from notifications.manager import NotificationManager, get_notification_manager
from workflow.engine import WorkflowEngine


def build_action_registry(
    notifier: Optional[NotificationManager] = None,
) -> ActionHandlerRegistry:
    """Registry with every built-in action wired to the shared clients."""
    return ActionHandlerRegistry.with_builtin_actions(
        notifier=notifier or get_notification_manager(),
        claude_client=get_claude_client(),
    )


def build_workflow_engine(
    repository,
    resume_scheduler=None,
    notifier: Optional[NotificationManager] = None,
    settings: Optional[Settings] = None,
) -> WorkflowEngine:
    """Engine bound to one repository (one database session).

    Without an explicit scheduler, wait steps are scheduled through Celery.
    """
    if resume_scheduler is None:
        from worker.scheduler import CeleryResumeScheduler

        resume_scheduler = CeleryResumeScheduler()
    notifier = notifier or get_notification_manager()
    return WorkflowEngine(
        repository=repository,
        registry=build_action_registry(notifier),
        settings=settings or get_settings(),
        resume_scheduler=resume_scheduler,
        notifier=notifier,
    )
