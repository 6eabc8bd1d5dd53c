"""
Action Handler Registry: maps action ids to handler instances.

Built-in handlers are registered at construction. The engine freezes the
registry when it is built, after which the table is read-only.
"""

from typing import Dict, Optional

from actions.base_action import BaseAction
from actions.implementations.ai_actions import AIGenerateAction
from actions.implementations.creator_actions import CREATOR_ACTIONS
from actions.implementations.messaging import MESSAGING_ACTIONS
from actions.implementations.scheduling import SCHEDULING_ACTIONS
from integrations.claude_client import ClaudeClient
from notifications.manager import NotificationManager


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a frozen registry."""


class ActionHandlerRegistry:
    """Central registry for all action handlers."""

    def __init__(self, handlers: Optional[list[BaseAction]] = None):
        self._handlers: Dict[str, BaseAction] = {}
        self._frozen = False
        for handler in handlers or []:
            self.register(handler)

    @classmethod
    def with_builtin_actions(
        cls,
        notifier: Optional[NotificationManager] = None,
        claude_client: Optional[ClaudeClient] = None,
    ) -> "ActionHandlerRegistry":
        """Create a registry holding every built-in action."""
        registry = cls()
        for action_class in MESSAGING_ACTIONS.values():
            registry.register(action_class(notifier=notifier))
        for action_class in CREATOR_ACTIONS.values():
            registry.register(action_class())
        for action_class in SCHEDULING_ACTIONS.values():
            registry.register(action_class())
        registry.register(AIGenerateAction(client=claude_client))
        return registry

    def register(self, handler: BaseAction, action_type: Optional[str] = None) -> None:
        """Register (or replace) the handler for an action id."""
        if self._frozen:
            raise RegistryFrozenError("Action registry is frozen; register handlers before building the engine")
        self._handlers[action_type or handler.action_type] = handler

    def freeze(self) -> "ActionHandlerRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, action_type: str) -> Optional[BaseAction]:
        """Get a handler by action id."""
        return self._handlers.get(action_type)

    def list_all(self) -> list:
        """List all registered actions with metadata."""
        return [
            {
                "action_type": action_type,
                "display_name": handler.display_name,
                "description": handler.description,
                "input_schema": handler.get_input_schema(),
            }
            for action_type, handler in self._handlers.items()
        ]

    @property
    def available_types(self) -> list:
        return list(self._handlers.keys())
