"""Exception hierarchy for soarflow."""

from __future__ import annotations

from .constants import TIMEOUT_ERROR


class SoarflowError(Exception):
    """Base class for all soarflow errors."""


class InvalidDefinition(SoarflowError):
    """Raised when a workflow definition is rejected at registration time."""


class WorkflowNotFound(SoarflowError, LookupError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class WorkflowDisabled(SoarflowError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow is disabled: {workflow_id}")
        self.workflow_id = workflow_id


class IncidentNotFound(SoarflowError, LookupError):
    def __init__(self, incident_id: str) -> None:
        super().__init__(f"Incident not found: {incident_id}")
        self.incident_id = incident_id


class InvalidIncident(SoarflowError, ValueError):
    """Raised when incident intake data cannot be turned into an incident."""


class ExecutionNotFound(SoarflowError, LookupError):
    def __init__(self, execution_id: str) -> None:
        super().__init__(f"Execution not found: {execution_id}")
        self.execution_id = execution_id


class InvalidTransition(SoarflowError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, current: str, target: str, subject: str = "execution") -> None:
        super().__init__(f"Illegal {subject} transition: {current} -> {target}")
        self.current = current
        self.target = target


class UnknownAction(SoarflowError):
    def __init__(self, action: str) -> None:
        super().__init__(f"Unknown action: {action}")
        self.action = action


class StepTimeout(SoarflowError):
    """A step handler ran past its allotted time."""

    def __init__(self, action: str, timeout: float) -> None:
        super().__init__(TIMEOUT_ERROR)
        self.action = action
        self.timeout = timeout
