"""Shared constants for the soarflow engine."""

from __future__ import annotations

TRIGGER_ALERT = "alert"
TRIGGER_EMAIL_ANALYSIS = "email_analysis"
TRIGGER_AUTHENTICATION = "authentication"
TRIGGER_VULNERABILITY_SCAN = "vulnerability_scan"

SUPPORTED_TRIGGER_TYPES = frozenset(
    {
        TRIGGER_ALERT,
        TRIGGER_EMAIL_ANALYSIS,
        TRIGGER_AUTHENTICATION,
        TRIGGER_VULNERABILITY_SCAN,
    }
)

# Execution lifecycle states
RUNNING = "running"
PAUSED = "paused"
COMPLETED = "completed"
FAILED = "failed"
STOPPED = "stopped"

ACTIVE_STATES = frozenset({RUNNING, PAUSED})
TERMINAL_STATES = frozenset({COMPLETED, FAILED, STOPPED})

# Lifecycle event names published on the engine's emitter
INCIDENT_CREATED = "incidentCreated"
AUTOMATION_TRIGGERED = "automationTriggered"
WORKFLOW_EXECUTED = "workflowExecuted"
WORKFLOW_COMPLETED = "workflowCompleted"
WORKFLOW_FAILED = "workflowFailed"
WORKFLOW_PAUSED = "workflowPaused"
WORKFLOW_RESUMED = "workflowResumed"
WORKFLOW_STOPPED = "workflowStopped"

DEFAULT_ASSIGNEE = "security_team"
TIMEOUT_ERROR = "timeout"
