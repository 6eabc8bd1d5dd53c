"""Execution context and {VAR} template substitution.

The context is the JSON blob stored on every execution row:

    {
        "variables": {"creator_name": "Ana", "brand_id": "...", ...},
        "step_outputs": {"<step id>": {...}},
        "retry_count": 0,
        "last_error": null
    }
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from workflow.models import CreatorProfile, WorkflowDefinition

# Single-pass token matcher: {creator_name}, {brand_id}, {VAR_1} ...
_TOKEN_RE = re.compile(r"\{([A-Za-z0-9_]+)\}")


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def substitute_variables(
    text: str,
    variables: dict[str, Any],
    keep_unknown: bool = True,
) -> str:
    """Replace {VAR_NAME} tokens in text with values from variables.

    Replacement happens in one pass over the original text, so a value that
    itself looks like a token is never expanded again.

    Args:
        text: Template string
        variables: Variable map (keys are case-sensitive)
        keep_unknown: Leave unknown tokens verbatim (True) or drop them (False)

    Returns:
        The substituted string
    """
    if not isinstance(text, str) or "{" not in text:
        return text

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name in variables:
            return _stringify(variables[name])
        return match.group(0) if keep_unknown else ""

    return _TOKEN_RE.sub(_replace, text)


def extract_template_variables(text: str) -> list[str]:
    """List distinct {VAR} token names in order of first appearance."""
    if not isinstance(text, str):
        return []
    seen: list[str] = []
    for name in _TOKEN_RE.findall(text):
        if name not in seen:
            seen.append(name)
    return seen


def substitute_inputs(value: Any, variables: dict[str, Any]) -> Any:
    """Apply substitution to every string inside a (possibly nested) input value."""
    if isinstance(value, str):
        return substitute_variables(value, variables)
    if isinstance(value, dict):
        return {k: substitute_inputs(v, variables) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_inputs(v, variables) for v in value]
    return value


@dataclass
class ExecutionContext:
    """Variables, step outputs and retry bookkeeping for one execution.

    - variables: seeded at start, then only extended or explicitly overwritten
    - step_outputs: step id -> output, written once per step id
    - retry_count: bumped on every retry, back to 0 after a step succeeds
    """

    variables: dict[str, Any] = field(default_factory=dict)
    step_outputs: dict[str, Any] = field(default_factory=dict)
    retry_count: int = 0
    last_error: Optional[str] = None

    @classmethod
    def seed(
        cls,
        creator: CreatorProfile,
        workflow: WorkflowDefinition,
        brand_id: str,
        now: datetime,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> "ExecutionContext":
        """Build the initial context for a new execution."""
        variables: dict[str, Any] = {
            "creator_id": creator.id,
            "creator_name": creator.name,
            "creator_email": creator.email,
            "creator_instagram": creator.instagram_handle or "",
            "creator_tiktok": creator.tiktok_handle or "",
            "creator_phone": creator.phone_number or "",
            "creator_status": creator.status,
            "brand_id": brand_id,
            "workflow_id": workflow.id,
            "workflow_name": workflow.name,
            "current_date": now.date().isoformat(),
            "current_time": now.strftime("%H:%M:%S"),
        }
        variables.update(extra_context or {})
        return cls(variables=variables)

    def set_variable(self, key: str, value: Any) -> None:
        """Set (or explicitly overwrite) a workflow variable."""
        self.variables[key] = value

    def get_variable(self, key: str, default: Any = None) -> Any:
        """Get a workflow variable."""
        return self.variables.get(key, default)

    def record_output(self, step_id: str, output: Any) -> None:
        """Store a step's output. Each step id can be written only once."""
        if step_id in self.step_outputs:
            raise ValueError(f"Output for step {step_id} was already recorded")
        self.step_outputs[step_id] = output

    def get_step_output(self, step_id: str) -> Any:
        """Get the output of a previously executed step."""
        return self.step_outputs.get(step_id)

    def substitute(self, text: str, keep_unknown: bool = True) -> str:
        """Substitute {VAR} tokens using this context's variables."""
        return substitute_variables(text, self.variables, keep_unknown)

    def to_dict(self) -> dict:
        """Serialize for the execution row."""
        return {
            "variables": dict(self.variables),
            "step_outputs": dict(self.step_outputs),
            "retry_count": self.retry_count,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ExecutionContext":
        """Restore from the execution row."""
        data = data or {}
        return cls(
            variables=dict(data.get("variables", {})),
            step_outputs=dict(data.get("step_outputs", {})),
            retry_count=data.get("retry_count", 0),
            last_error=data.get("last_error"),
        )
