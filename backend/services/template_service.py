"""Workflow template service: templates, steps and default seeding."""

import logging
from typing import Any, Optional, Sequence
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import (
    ActionType,
    ConditionOperator,
    StepType,
    TaskPriority,
    TriggerEvent,
    WorkflowCategory,
)
from core.exceptions import ConflictError, ValidationError
from db.models import WorkflowStep, WorkflowTemplate
from services.base import BaseService
from workflow.retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_ONBOARDING_NAME = "Complete Creator Onboarding & Script Pipeline"


class TemplateService(BaseService[WorkflowTemplate]):
    """Service for brand-owned workflow templates."""

    label = "Workflow template"

    def __init__(self, db: AsyncSession):
        super().__init__(WorkflowTemplate, db)

    async def create_template(
        self,
        brand_id: str,
        name: str,
        description: str = "",
        category: str = WorkflowCategory.ONBOARDING.value,
        trigger_event: str = TriggerEvent.MANUAL.value,
        is_active: bool = True,
    ) -> WorkflowTemplate:
        """Create a new workflow template."""
        template = await self.create({
            "brand_id": brand_id,
            "name": name,
            "description": description or "",
            "category": category,
            "trigger_event": trigger_event,
            "is_active": is_active,
        })
        logger.info(f"Workflow template created: {template.id} ({name}) for brand {brand_id}")
        return template

    async def set_active(self, template_id: str, brand_id: str, is_active: bool) -> WorkflowTemplate:
        """Activate or deactivate a template. Running executions are unaffected."""
        await self.get_for_brand(template_id, brand_id)
        template = await self.update(template_id, {"is_active": is_active}, brand_id)
        logger.info(f"Workflow template {template_id} is_active={is_active}")
        return template

    async def create_default_onboarding_template(self, brand_id: str) -> WorkflowTemplate:
        """Seed the standard onboarding pipeline for a brand.

        Cold outreach status, then a missing-email review when the creator
        has no address, portfolio review, final approval, and finally a
        script assignment task for the team.
        """
        template = await self.create_template(
            brand_id=brand_id,
            name=DEFAULT_ONBOARDING_NAME,
            description=(
                "Default workflow that handles creator onboarding from submission "
                "to content delivery, including script assignment and approval."
            ),
            category=WorkflowCategory.ONBOARDING.value,
            trigger_event=TriggerEvent.CREATOR_ADDED.value,
        )
        steps = StepService(self.db)
        for step in default_onboarding_steps():
            await steps.add_step(template.id, brand_id, **step)
        return template


def default_onboarding_steps() -> list[dict[str, Any]]:
    """Step definitions for the default onboarding template.

    Ids are assigned up front so condition steps can point at later steps.
    """
    review_id = str(uuid4())

    return [
        {
            "step_order": 0,
            "name": "Update Status to Cold Outreach",
            "description": "Move the new creator into cold outreach",
            "step_type": StepType.ACTION.value,
            "config": {
                "action_id": ActionType.UPDATE_STATUS.value,
                "action_inputs": {"new_status": "Cold Outreach"},
            },
        },
        {
            "step_order": 1,
            "name": "Check Email Availability",
            "description": "Creators with an email go straight to portfolio review",
            "step_type": StepType.CONDITION.value,
            "config": {
                "conditions": [
                    {
                        "field_name": "creator_email",
                        "operator": ConditionOperator.EXISTS.value,
                        "next_step_id": review_id,
                    },
                ],
            },
        },
        {
            "step_order": 2,
            "name": "Human Review - Missing Email",
            "description": "Collect the creator's contact information",
            "step_type": StepType.HUMAN_INTERVENTION.value,
            "config": {
                "intervention_title": "Creator Missing Email Address",
                "intervention_description": (
                    "Creator {creator_name} was added without an email address. "
                    "Please collect their contact information to proceed."
                ),
                "priority": TaskPriority.HIGH.value,
            },
        },
        {
            "id": review_id,
            "step_order": 3,
            "name": "Creator Portfolio Review",
            "description": "Review portfolio and social media; move to Primary Screen if suitable",
            "step_type": StepType.HUMAN_INTERVENTION.value,
            "config": {
                "intervention_title": "Creator Portfolio Review",
                "intervention_description": (
                    "Review {creator_name}'s portfolio and social media. "
                    "Move to Primary Screen if suitable."
                ),
                "priority": TaskPriority.MEDIUM.value,
            },
        },
        {
            "step_order": 4,
            "name": "Final Creator Approval",
            "description": "Approve the creator for script assignments and rate negotiation",
            "step_type": StepType.HUMAN_INTERVENTION.value,
            "config": {
                "intervention_title": "Final Creator Approval",
                "intervention_description": (
                    "Approve {creator_name} for script assignments and rate negotiations."
                ),
                "priority": TaskPriority.MEDIUM.value,
            },
        },
        {
            "step_order": 5,
            "name": "Update Status to Approved",
            "description": "Mark the creator approved for next steps",
            "step_type": StepType.ACTION.value,
            "config": {
                "action_id": ActionType.UPDATE_STATUS.value,
                "action_inputs": {"new_status": "Approved for Next Steps"},
            },
        },
        {
            "step_order": 6,
            "name": "Notify Team",
            "description": "Tell the brand team the creator is ready for scripts",
            "step_type": StepType.ACTION.value,
            "config": {
                "action_id": ActionType.SEND_NOTIFICATION.value,
                "action_inputs": {
                    "message": "{creator_name} is approved and ready for a script",
                    "channel": "in_app",
                },
            },
        },
        {
            "step_order": 7,
            "name": "Create Script Assignment Task",
            "description": "Queue a task for the team to pick a script for the creator",
            "step_type": StepType.ACTION.value,
            "config": {
                "action_id": ActionType.CREATE_TASK.value,
                "action_inputs": {
                    "title": "Assign a script to {creator_name}",
                    "priority": TaskPriority.HIGH.value,
                },
            },
        },
    ]


class StepService(BaseService[WorkflowStep]):
    """Service for the ordered steps of a template."""

    def __init__(self, db: AsyncSession):
        super().__init__(WorkflowStep, db)

    async def list_steps(self, workflow_id: str) -> Sequence[WorkflowStep]:
        result = await self.db.execute(
            select(WorkflowStep)
            .where(WorkflowStep.workflow_id == workflow_id)
            .order_by(WorkflowStep.step_order.asc())
        )
        return result.scalars().all()

    async def add_step(
        self,
        workflow_id: str,
        brand_id: str,
        step_order: int,
        step_type: str,
        name: str,
        config: Optional[dict] = None,
        description: Optional[str] = None,
        id: Optional[str] = None,
    ) -> WorkflowStep:
        """Append a step to a template.

        Raises:
            NotFoundError: Template missing or owned by another brand
            ValidationError: Unknown step type, negative order or bad retry settings
            ConflictError: step_order already used in this template
        """
        await TemplateService(self.db).get_for_brand(workflow_id, brand_id)
        if step_type not in {t.value for t in StepType}:
            raise ValidationError(f"Unknown step type: {step_type}")
        if step_order < 0:
            raise ValidationError("step_order must be >= 0")
        if step_type == StepType.ACTION.value:
            RetryPolicy.from_step_config(config)

        taken = await self.db.execute(
            select(func.count())
            .select_from(WorkflowStep)
            .where(
                WorkflowStep.workflow_id == workflow_id,
                WorkflowStep.step_order == step_order,
            )
        )
        if (taken.scalar() or 0) > 0:
            raise ConflictError(f"Step order {step_order} already exists in workflow {workflow_id}")

        data = {
            "workflow_id": workflow_id,
            "step_order": step_order,
            "step_type": step_type,
            "name": name,
            "description": description,
            "config": config or {},
        }
        if id:
            data["id"] = id
        return await self.create(data)
