"""Database models for the creator pipeline engine.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.creator import Creator
from db.models.message_template import MessageTemplate
from db.models.workflow_template import WorkflowTemplate
from db.models.workflow_step import WorkflowStep
from db.models.execution import WorkflowExecution
from db.models.step_execution import StepExecution
from db.models.intervention import HumanInterventionTask
from db.models.script_assignment import ScriptAssignment

__all__ = [
    "Creator",
    "MessageTemplate",
    "WorkflowTemplate",
    "WorkflowStep",
    "WorkflowExecution",
    "StepExecution",
    "HumanInterventionTask",
    "ScriptAssignment",
]
