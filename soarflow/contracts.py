"""Core data contracts for the soarflow orchestration engine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_ASSIGNEE, RUNNING, TERMINAL_STATES
from .utils.numbers import rounded_percent

Severity = Literal["low", "medium", "high", "critical"]
IncidentStatus = Literal["open", "investigating", "mitigating", "resolved"]
ExecutionStatus = Literal["running", "paused", "completed", "failed", "stopped"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SoarModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys.

    ``model_dump(by_alias=True)`` yields the camelCase shape dashboards expect.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StepDefinition(SoarModel):
    """Defines one step in a workflow."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str = "action"
    action: str
    timeout: float = Field(default=30, gt=0, description="Seconds")


class TriggerSpec(SoarModel):
    """Decides which incidents fire a workflow."""

    model_config = ConfigDict(frozen=True)

    type: str
    conditions: Dict[str, Any] = Field(default_factory=dict)


class WorkflowDefinition(SoarModel):
    """A trigger plus the ordered steps run when it fires."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    enabled: bool = True
    trigger: TriggerSpec
    steps: List[StepDefinition] = Field(default_factory=list)
    execution_count: int = 0
    success_rate: float = 0.0


class Incident(SoarModel):
    """Security event record that workflows react to."""

    id: str
    title: str
    description: str = ""
    type: str
    severity: Severity
    status: IncidentStatus = "open"
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None
    assigned_to: str = DEFAULT_ASSIGNEE
    affected_assets: List[str] = Field(default_factory=list)
    evidence: List[Any] = Field(default_factory=list)
    automated_actions: List[str] = Field(default_factory=list)
    archived: bool = False


INCIDENT_TRANSITIONS: Dict[str, set[str]] = {
    "open": {"investigating", "mitigating", "resolved"},
    "investigating": {"mitigating", "resolved"},
    "mitigating": {"investigating", "resolved"},
    "resolved": set(),
}


class StepResult(SoarModel):
    """Outcome of a single step; immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    step_id: Optional[str] = None
    action: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class Execution(SoarModel):
    """Runtime record of one workflow run against one incident."""

    id: str
    workflow_id: str
    incident_id: str
    status: ExecutionStatus = RUNNING
    current_step: int = 0
    total_steps: int
    step_results: List[StepResult] = Field(default_factory=list)
    progress: int = 0
    errors: List[str] = Field(default_factory=list)
    params: Dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utcnow)
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def duration(self) -> Optional[float]:
        """Wall-clock seconds from start to the terminal state, if reached."""
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def advance(self) -> None:
        """Move to the next step and recompute progress."""
        if self.current_step >= self.total_steps:
            raise ValueError("Execution has no remaining steps")
        self.current_step += 1
        self.progress = rounded_percent(self.current_step, self.total_steps)


class ActiveExecution(Execution):
    """Execution enriched with its workflow's display fields."""

    name: str = "Unknown Workflow"
    description: str = ""


class Integration(SoarModel):
    """Read-only descriptor of an external security tool."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str
    status: str = "connected"
    capabilities: List[str] = Field(default_factory=list)
    last_sync: datetime = Field(default_factory=utcnow)

    @property
    def is_connected(self) -> bool:
        return self.status == "connected"


class PlaybookAction(SoarModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    type: str = "manual"
    estimated_time: int = Field(default=0, description="Minutes")


class Playbook(SoarModel):
    """Human-readable response procedure; never executed by the engine."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: str
    severity: Severity
    actions: List[PlaybookAction] = Field(default_factory=list)

    @property
    def estimated_time(self) -> int:
        return sum(action.estimated_time for action in self.actions)


class OperationResult(SoarModel):
    """Structured outcome for control operations that never raise."""

    success: bool
    error: Optional[str] = None


class AutomationStatistics(SoarModel):
    """Aggregates derived from the execution history.

    ``automation_rate``, ``average_response_time``, ``fastest_response``,
    ``sla_compliance`` and ``time_saved_hours`` are configured estimates,
    not measurements.
    """

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    stopped_executions: int = 0
    active_executions: int = 0
    success_rate: int = 0
    average_execution_time: int = Field(default=0, description="Seconds")
    automation_rate: int = 0
    average_response_time: int = Field(default=0, description="Minutes")
    fastest_response: int = Field(default=0, description="Minutes")
    sla_compliance: int = 0
    time_saved_hours: int = 0
