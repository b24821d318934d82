"""soarflow: incident-driven security workflow orchestration."""

from .actions import ActionDispatcher, create_default_dispatcher
from .config import SoarflowConfig, load_config
from .contracts import (
    Execution,
    Incident,
    Integration,
    OperationResult,
    Playbook,
    StepDefinition,
    StepResult,
    TriggerSpec,
    WorkflowDefinition,
)
from .engine import OrchestrationEngine
from .events import EventEmitter, LifecycleEvent
from .execute import ExecutionController
from .persistence import get_repository
from .registry import WorkflowRegistry
from .triggers import matches

__version__ = "0.1.0"
__all__ = [
    "ActionDispatcher",
    "EventEmitter",
    "Execution",
    "ExecutionController",
    "Incident",
    "Integration",
    "LifecycleEvent",
    "OperationResult",
    "OrchestrationEngine",
    "Playbook",
    "SoarflowConfig",
    "StepDefinition",
    "StepResult",
    "TriggerSpec",
    "WorkflowDefinition",
    "WorkflowRegistry",
    "create_default_dispatcher",
    "get_repository",
    "load_config",
    "matches",
]
