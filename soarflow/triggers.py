"""Trigger matching: decide whether an incident fires a workflow.

Matching is pure and deterministic. Numeric and boolean sub-conditions
(``cvssScore``, ``phishingScore``, ``exploitAvailable``, ``failedAttempts``,
``timeWindow``) are carried on trigger definitions but not evaluated; only
incident type and severity take part.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping

from .constants import (
    TRIGGER_ALERT,
    TRIGGER_AUTHENTICATION,
    TRIGGER_EMAIL_ANALYSIS,
    TRIGGER_VULNERABILITY_SCAN,
)
from .contracts import Incident, TriggerSpec

Matcher = Callable[[Mapping[str, Any], Incident], bool]


def _match_alert(conditions: Mapping[str, Any], incident: Incident) -> bool:
    severities = conditions.get("severity") or ()
    if isinstance(severities, str):
        severities = (severities,)
    return conditions.get("alertType") == incident.type and incident.severity in severities


def _match_email_analysis(conditions: Mapping[str, Any], incident: Incident) -> bool:
    return incident.type == "Phishing"


def _match_authentication(conditions: Mapping[str, Any], incident: Incident) -> bool:
    return incident.type == "Authentication"


def _match_vulnerability_scan(conditions: Mapping[str, Any], incident: Incident) -> bool:
    return incident.type == "Vulnerability" and incident.severity == "critical"


MATCHERS: Dict[str, Matcher] = {
    TRIGGER_ALERT: _match_alert,
    TRIGGER_EMAIL_ANALYSIS: _match_email_analysis,
    TRIGGER_AUTHENTICATION: _match_authentication,
    TRIGGER_VULNERABILITY_SCAN: _match_vulnerability_scan,
}


def matches(trigger: TriggerSpec, incident: Incident) -> bool:
    """Return ``True`` if ``incident`` satisfies ``trigger``.

    Unknown trigger types and malformed conditions never match.
    """
    matcher = MATCHERS.get(trigger.type)
    if matcher is None:
        return False
    try:
        return bool(matcher(trigger.conditions, incident))
    except TypeError:
        return False
