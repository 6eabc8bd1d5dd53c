"""Plain records the engine works with.

The engine never touches ORM instances directly: repositories hand it these
dataclasses and accept them back, so the same engine runs against the
SQLAlchemy store and the in-memory store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass
class WorkflowDefinition:
    """A workflow template as seen by the engine."""

    id: str
    brand_id: str
    name: str
    description: str = ""
    category: str = "onboarding"
    trigger_event: str = "manual"
    is_active: bool = True


@dataclass
class StepDefinition:
    """One typed step of a workflow template."""

    id: str
    workflow_id: str
    step_order: int
    step_type: str
    name: str
    config: dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None


@dataclass
class CreatorProfile:
    """The creator an execution runs against."""

    id: str
    brand_id: str
    name: str
    email: str = ""
    instagram_handle: Optional[str] = None
    tiktok_handle: Optional[str] = None
    phone_number: Optional[str] = None
    status: str = ""


@dataclass
class MessageTemplateRecord:
    """A brand's reusable message body."""

    id: str
    brand_id: str
    name: str
    template_type: str = "email"
    subject: Optional[str] = None
    content: str = ""


@dataclass
class ExecutionRecord:
    """Persistent state of one workflow run."""

    id: str
    workflow_id: str
    creator_id: str
    brand_id: str
    status: str
    context: dict[str, Any] = field(default_factory=dict)
    current_step_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    resume_at: Optional[datetime] = None
    version: int = 1


@dataclass
class StepAttempt:
    """One attempt of one step (a StepExecution row)."""

    id: str
    execution_id: str
    step_id: str
    attempt_number: int
    status: str
    input_data: dict[str, Any] = field(default_factory=dict)
    output_data: Optional[dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


@dataclass
class InterventionTask:
    """A human review item raised by a workflow."""

    id: str
    execution_id: str
    step_id: str
    creator_id: str
    brand_id: str
    title: str
    status: str
    step_execution_id: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: str = "medium"
    context: dict[str, Any] = field(default_factory=dict)
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    created_at: Optional[datetime] = None
