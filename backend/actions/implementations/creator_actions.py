"""
Creator pipeline action implementations.

- update_status: move the creator to a new pipeline status
- assign_script: hand a script to the creator
- create_task: put an item in the review queue without pausing the workflow
"""

from typing import Any, Dict

from actions.base_action import ActionContext, BaseAction
from core.constants import TaskPriority
from core.exceptions import WorkflowConfigurationError
from core.utils import parse_datetime, utc_now


class UpdateStatusAction(BaseAction):
    """Set the creator's pipeline status."""

    action_type = "update_status"
    display_name = "Update Status"
    description = "Change the creator's status (e.g. 'Cold Outreach', 'Primary Screen')"
    required_inputs = ("new_status",)

    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        new_status = str(inputs["new_status"])
        old_status = await ctx.repository.update_creator_status(ctx.execution.creator_id, new_status)
        if ctx.creator is not None:
            ctx.creator.status = new_status
        ctx.context.set_variable("creator_status", new_status)
        return {
            "old_status": old_status,
            "new_status": new_status,
            "updated_at": utc_now().isoformat(),
        }


class AssignScriptAction(BaseAction):
    """Record a script assignment for the creator."""

    action_type = "assign_script"
    display_name = "Assign Script"
    description = "Assign a script to the creator, optionally with a due date"
    required_inputs = ("script_id",)

    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        due_date = inputs.get("due_date")
        if due_date:
            try:
                due_date = parse_datetime(str(due_date))
            except ValueError:
                raise WorkflowConfigurationError(f"assign_script: invalid due_date {due_date!r}")

        assignment = await ctx.repository.create_script_assignment(
            creator_id=ctx.execution.creator_id,
            brand_id=ctx.brand_id,
            script_id=str(inputs["script_id"]),
            execution_id=ctx.execution.id,
            due_date=due_date,
            priority=inputs.get("priority", "medium"),
        )
        return {
            "assignment_id": assignment["id"],
            "assigned_at": utc_now().isoformat(),
            "due_date": due_date.isoformat() if due_date else None,
        }


class CreateTaskAction(BaseAction):
    """Queue a review task and keep the workflow running."""

    action_type = "create_task"
    display_name = "Create Task"
    description = "Create a human review task without pausing the workflow"

    async def execute(self, inputs: Dict[str, Any], ctx: ActionContext) -> Dict[str, Any]:
        priority = inputs.get("priority", TaskPriority.MEDIUM.value)
        try:
            TaskPriority(priority)
        except ValueError:
            raise WorkflowConfigurationError(f"create_task: unknown priority {priority!r}")

        task = await ctx.repository.create_intervention_task(
            execution_id=ctx.execution.id,
            step_id=ctx.step.id,
            creator_id=ctx.execution.creator_id,
            brand_id=ctx.brand_id,
            priority=priority,
            title=inputs.get("title") or "Task created by workflow",
            description=inputs.get("description"),
            assigned_to=inputs.get("assignee"),
            context=ctx.context.to_dict(),
        )
        return {
            "task_id": task.id,
            "created_at": (task.created_at or utc_now()).isoformat(),
        }


CREATOR_ACTIONS = {
    "update_status": UpdateStatusAction,
    "assign_script": AssignScriptAction,
    "create_task": CreateTaskAction,
}
