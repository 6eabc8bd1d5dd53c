"""Action catalogue endpoint, used by workflow builders to render a step palette."""

from fastapi import APIRouter

from api.schemas.action import ActionCatalogueResponse, ActionInfo
from core.constants import StepType
from workflow.factory import build_action_registry

router = APIRouter(tags=["actions"])


@router.get("/", response_model=ActionCatalogueResponse)
async def list_actions() -> ActionCatalogueResponse:
    registry = build_action_registry()
    return ActionCatalogueResponse(
        step_types=[t.value for t in StepType],
        actions=[ActionInfo(**entry) for entry in registry.list_all()],
    )
