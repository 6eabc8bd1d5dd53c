"""Action catalogue schemas."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List


class ActionInfo(BaseModel):
    """One action type a step's config.action_type may name."""

    action_type: str = Field(description="Value for config.action_type")
    display_name: str
    description: str
    input_schema: Dict[str, Any] = Field(description="JSON schema of config.action_inputs")


class ActionCatalogueResponse(BaseModel):
    step_types: List[str] = Field(description="Valid WorkflowStep.step_type values")
    actions: List[ActionInfo]
