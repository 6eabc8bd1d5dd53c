"""Constants and enums for the creator pipeline engine."""

from enum import Enum


class WorkflowCategory(str, Enum):
    """Pipeline stage a workflow template belongs to."""

    ONBOARDING = "onboarding"
    SCRIPT_PIPELINE = "script_pipeline"
    RATE_NEGOTIATION = "rate_negotiation"
    PRODUCT_SHIPMENT = "product_shipment"
    CONTRACT_SIGNING = "contract_signing"
    CONTENT_DELIVERY = "content_delivery"


class TriggerEvent(str, Enum):
    """Events that start workflow executions for a creator."""

    CREATOR_ADDED = "creator_added"
    STATUS_CHANGE = "status_change"
    MANUAL = "manual"
    TIME_BASED = "time_based"


class StepType(str, Enum):
    """Workflow step types understood by the dispatcher."""

    ACTION = "action"
    CONDITION = "condition"
    WAIT = "wait"
    HUMAN_INTERVENTION = "human_intervention"


class ExecutionStatus(str, Enum):
    """Workflow execution status."""

    RUNNING = "running"
    PAUSED = "paused"
    WAITING_HUMAN = "waiting_human"
    COMPLETED = "completed"
    FAILED = "failed"


class StepExecutionStatus(str, Enum):
    """Status of a single step attempt."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    WAITING = "waiting"


class ActionType(str, Enum):
    """Built-in action handler ids."""

    SEND_EMAIL = "send_email"
    UPDATE_STATUS = "update_status"
    ASSIGN_SCRIPT = "assign_script"
    SCHEDULE_CALL = "schedule_call"
    SEND_NOTIFICATION = "send_notification"
    CREATE_TASK = "create_task"
    AI_GENERATE = "ai_generate"


class ConditionOperator(str, Enum):
    """Operators available to condition steps."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class TaskStatus(str, Enum):
    """Human intervention task status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class TaskPriority(str, Enum):
    """Human intervention task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class MessageTemplateType(str, Enum):
    """Delivery medium of a message template."""

    EMAIL = "email"
    SMS = "sms"
    SLACK = "slack"


class ScriptAssignmentStatus(str, Enum):
    """Status of a script handed to a creator."""

    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    APPROVED = "approved"
