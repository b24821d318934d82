"""Simulated integration adapters for the default workflow catalog.

Each handler stands in for one call into an EDR, email security, firewall
or threat-intel backend: it sleeps for a representative latency and
returns a details payload shaped like the real tool's response.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from ..contracts import utcnow
from .base import ActionDispatcher

# action name -> integration capability it relies on (None: engine-internal)
BUILTIN_ACTIONS: Dict[str, Optional[str]] = {
    "isolate_endpoint": "endpoint_isolation",
    "collect_forensics": "forensics",
    "analyze_malware": None,
    "update_threat_intelligence": "threat_feeds",
    "send_alert": None,
    "block_domain": "traffic_blocking",
    "quarantine_emails": "email_quarantine",
    "update_email_rules": None,
    "user_notification": None,
    "lock_account": None,
    "block_ip": "traffic_blocking",
    "analyze_behavior": None,
    "user_alert": None,
    "scan_affected_systems": None,
    "emergency_patch": None,
    "verify_patch": None,
    "update_inventory": None,
}


class SimulatedActions:
    """Handlers with simulated latency.

    Args:
        latency_scale: Multiplier applied to every simulated delay; ``0``
            makes all actions return immediately.
    """

    def __init__(self, latency_scale: float = 1.0) -> None:
        self.latency_scale = latency_scale

    async def _simulate(self, seconds: float) -> None:
        if self.latency_scale > 0:
            await asyncio.sleep(seconds * self.latency_scale)

    def register(self, dispatcher: ActionDispatcher) -> ActionDispatcher:
        for name, capability in BUILTIN_ACTIONS.items():
            dispatcher.register(name, getattr(self, name), capability)
        return dispatcher

    # ------------------------------------------------------------------
    # Endpoint / malware
    async def isolate_endpoint(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(2)
        return {
            "success": True,
            "message": "Endpoint isolated successfully",
            "details": {
                "endpoint": params.get("endpoint", "WS-001"),
                "isolatedAt": utcnow().isoformat(),
                "method": "network_quarantine",
            },
        }

    async def collect_forensics(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(5)
        return {
            "success": True,
            "message": "Forensic data collected",
            "details": {
                "dataTypes": ["memory_dump", "disk_image", "network_logs"],
                "collectedAt": utcnow().isoformat(),
                "size": "2.5 GB",
            },
        }

    async def analyze_malware(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(10)
        return {
            "success": True,
            "message": "Malware analysis completed",
            "details": {
                "malwareFamily": "TrojanDownloader",
                "threatLevel": "high",
                "iocs": ["hash123", "domain.evil.com", "192.168.1.100"],
            },
        }

    async def update_threat_intelligence(
        self, incident_id: str, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        await self._simulate(1)
        return {
            "success": True,
            "message": "Threat intelligence updated",
            "details": {"feedsUpdated": ["internal", "commercial", "open_source"], "newIOCs": 15},
        }

    async def send_alert(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(0.5)
        return {
            "success": True,
            "message": "Alert sent to security team",
            "details": {
                "recipients": params.get(
                    "recipients", ["security@company.com", "soc@company.com"]
                ),
                "sentAt": utcnow().isoformat(),
            },
        }

    # ------------------------------------------------------------------
    # Email security
    async def block_domain(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(1)
        return {
            "success": True,
            "message": "Domain blocked successfully",
            "details": {
                "domain": params.get("domain", "phishing.evil.com"),
                "blockedAt": utcnow().isoformat(),
                "method": "dns_blacklist",
            },
        }

    async def quarantine_emails(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(3)
        return {
            "success": True,
            "message": "Emails quarantined",
            "details": {"emailsQuarantined": 47, "quarantinedAt": utcnow().isoformat()},
        }

    async def update_email_rules(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(1.5)
        return {
            "success": True,
            "message": "Email rules updated",
            "details": {"rulesAdded": 3, "updatedAt": utcnow().isoformat()},
        }

    async def user_notification(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(0.5)
        return {
            "success": True,
            "message": "User notification sent",
            "details": {"usersNotified": 1247, "sentAt": utcnow().isoformat()},
        }

    # ------------------------------------------------------------------
    # Identity
    async def lock_account(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(1)
        return {
            "success": True,
            "message": "Account locked successfully",
            "details": {
                "account": params.get("account", "user.suspicious"),
                "lockedAt": utcnow().isoformat(),
            },
        }

    async def block_ip(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(1)
        return {
            "success": True,
            "message": "IP address blocked",
            "details": {
                "ip": params.get("ip", "192.168.1.100"),
                "blockedAt": utcnow().isoformat(),
                "duration": "24 hours",
            },
        }

    async def analyze_behavior(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(5)
        return {
            "success": True,
            "message": "Behavior analysis completed",
            "details": {
                "anomaliesDetected": 3,
                "riskScore": 75,
                "analyzedAt": utcnow().isoformat(),
            },
        }

    async def user_alert(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(0.5)
        return {
            "success": True,
            "message": "User alert sent",
            "details": {"alertType": "security_warning", "sentAt": utcnow().isoformat()},
        }

    # ------------------------------------------------------------------
    # Vulnerability management
    async def scan_affected_systems(
        self, incident_id: str, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        await self._simulate(3)
        return {
            "success": True,
            "message": "Affected systems assessed",
            "details": {
                "systems": params.get("assets", []),
                "scannedAt": utcnow().isoformat(),
            },
        }

    async def emergency_patch(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(8)
        return {
            "success": True,
            "message": "Emergency patches applied",
            "details": {
                "cve": params.get("cve"),
                "patchedAt": utcnow().isoformat(),
                "rebootRequired": False,
            },
        }

    async def verify_patch(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(2)
        return {
            "success": True,
            "message": "Patch verified",
            "details": {"verifiedAt": utcnow().isoformat(), "residualFindings": 0},
        }

    async def update_inventory(self, incident_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._simulate(1)
        return {
            "success": True,
            "message": "Asset inventory updated",
            "details": {"updatedAt": utcnow().isoformat()},
        }
