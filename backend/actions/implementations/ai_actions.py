"""AI content generation action using Claude."""

from typing import Any, Dict, Optional

from actions.base_action import ActionContext, BaseAction
from core.exceptions import ActionExecutionError, WorkflowConfigurationError
from core.utils import utc_now
from integrations.claude_client import ClaudeAPIError, ClaudeClient, get_claude_client

CONTENT_TYPES = ("email", "script", "message", "task_description")


class AIGenerateAction(BaseAction):
    """Generate outreach copy or a script draft with Claude."""

    action_type = "ai_generate"
    display_name = "AI Generate"
    description = "Generate an email, script, message or task description with Claude"
    required_inputs = ("prompt",)

    def __init__(self, client: Optional[ClaudeClient] = None):
        self._client = client

    @property
    def client(self) -> ClaudeClient:
        return self._client or get_claude_client()

    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        client = self.client
        if not client.is_configured:
            raise WorkflowConfigurationError("ai_generate: Claude API key not configured")

        content_type = inputs.get("content_type", "message")
        if content_type not in CONTENT_TYPES:
            raise WorkflowConfigurationError(f"ai_generate: unknown content_type {content_type!r}")

        system = (
            f"{client.settings.CLAUDE_SYSTEM_PROMPT or ''}\n"
            f"Write a {content_type.replace('_', ' ')} for creator {ctx.context.get_variable('creator_name', '')}."
        ).strip()

        try:
            result = await client.generate(
                prompt=inputs["prompt"],
                system=system,
                max_tokens=inputs.get("max_tokens"),
            )
        except ClaudeAPIError as e:
            raise ActionExecutionError(str(e))

        return {
            "generated_content": result.text,
            "tokens_used": result.tokens_used,
            "model_used": result.model,
            "generated_at": utc_now().isoformat(),
            "content_type": content_type,
        }

    @classmethod
    def get_input_schema(cls) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "prompt": {"type": "string", "description": "Instructions for the model"},
                "content_type": {"type": "string", "enum": list(CONTENT_TYPES)},
                "max_tokens": {"type": "integer", "description": "Max response tokens"},
            },
            "required": ["prompt"],
        }

