"""Default workflows, playbooks, integrations and sample incidents."""

from __future__ import annotations

from datetime import timedelta
from typing import List

from .contracts import (
    Incident,
    Integration,
    Playbook,
    PlaybookAction,
    StepDefinition,
    TriggerSpec,
    WorkflowDefinition,
    utcnow,
)


def _steps(*rows: tuple) -> List[StepDefinition]:
    return [
        StepDefinition(id=f"step_{i}", name=name, type=kind, action=action, timeout=timeout)
        for i, (name, kind, action, timeout) in enumerate(rows, start=1)
    ]


def _actions(*rows: tuple) -> List[PlaybookAction]:
    return [
        PlaybookAction(
            id=f"action_{i}", name=name, description=description, type=kind, estimated_time=minutes
        )
        for i, (name, description, kind, minutes) in enumerate(rows, start=1)
    ]


def default_workflows() -> List[WorkflowDefinition]:
    return [
        WorkflowDefinition(
            id="wf_malware_response",
            name="Malware Detection Response",
            description="Automated response to malware detection alerts",
            trigger=TriggerSpec(
                type="alert",
                conditions={"alertType": "malware_detected", "severity": ["high", "critical"]},
            ),
            steps=_steps(
                ("Isolate Affected System", "action", "isolate_endpoint", 30),
                ("Collect Forensic Data", "action", "collect_forensics", 300),
                ("Analyze Sample", "action", "analyze_malware", 600),
                ("Update IOCs", "action", "update_threat_intelligence", 60),
                ("Notify Security Team", "notification", "send_alert", 30),
            ),
            execution_count=42,
            success_rate=94.5,
        ),
        WorkflowDefinition(
            id="wf_phishing_response",
            name="Phishing Email Response",
            description="Automated response to phishing email detection",
            trigger=TriggerSpec(type="email_analysis", conditions={"phishingScore": {"min": 0.8}}),
            steps=_steps(
                ("Block Sender Domain", "action", "block_domain", 30),
                ("Quarantine Similar Emails", "action", "quarantine_emails", 120),
                ("Update Email Filters", "action", "update_email_rules", 60),
                ("User Awareness Alert", "notification", "user_notification", 30),
            ),
            execution_count=156,
            success_rate=98.2,
        ),
        WorkflowDefinition(
            id="wf_failed_login_response",
            name="Failed Login Response",
            description="Response to suspicious failed login attempts",
            trigger=TriggerSpec(
                type="authentication",
                conditions={"failedAttempts": {"min": 5}, "timeWindow": 300},
            ),
            steps=_steps(
                ("Lock User Account", "action", "lock_account", 30),
                ("Block Source IP", "action", "block_ip", 30),
                ("Analyze Login Patterns", "analysis", "analyze_behavior", 180),
                ("Notify User", "notification", "user_alert", 30),
            ),
            execution_count=89,
            success_rate=91.2,
        ),
        WorkflowDefinition(
            id="wf_vulnerability_response",
            name="Critical Vulnerability Response",
            description="Automated response to critical vulnerability detection",
            trigger=TriggerSpec(
                type="vulnerability_scan",
                conditions={"cvssScore": {"min": 9.0}, "exploitAvailable": True},
            ),
            steps=_steps(
                ("Assess Affected Systems", "discovery", "scan_affected_systems", 300),
                ("Apply Emergency Patches", "action", "emergency_patch", 1800),
                ("Verify Patch Success", "verification", "verify_patch", 300),
                ("Update Asset Inventory", "action", "update_inventory", 120),
            ),
            execution_count=23,
            success_rate=87.5,
        ),
    ]


def default_playbooks() -> List[Playbook]:
    return [
        Playbook(
            id="pb_incident_response",
            name="Security Incident Response",
            description="Comprehensive incident response procedures",
            category="Incident Response",
            severity="high",
            actions=_actions(
                ("Initial Assessment", "Assess the scope and impact of the incident", "manual", 15),
                ("Containment", "Contain the incident to prevent further damage", "automated", 5),
                ("Evidence Collection", "Collect and preserve digital evidence", "semi-automated", 30),
                ("Impact Analysis", "Analyze the full impact of the incident", "manual", 45),
                ("Recovery Planning", "Develop and execute recovery plan", "manual", 60),
            ),
        ),
        Playbook(
            id="pb_malware_analysis",
            name="Malware Analysis Protocol",
            description="Standard procedures for malware analysis and response",
            category="Malware",
            severity="critical",
            actions=_actions(
                ("Sample Isolation", "Safely isolate malware sample", "automated", 2),
                ("Static Analysis", "Perform static analysis of the sample", "automated", 10),
                ("Dynamic Analysis", "Execute sample in sandbox environment", "automated", 20),
                ("IOC Extraction", "Extract indicators of compromise", "automated", 5),
                ("Threat Intelligence Update", "Update threat intelligence feeds", "automated", 3),
            ),
        ),
        Playbook(
            id="pb_data_breach",
            name="Data Breach Response",
            description="Response procedures for data breach incidents",
            category="Data Protection",
            severity="critical",
            actions=_actions(
                ("Breach Verification", "Verify and assess the breach", "manual", 30),
                ("Legal Notification", "Notify legal and compliance teams", "manual", 15),
                ("Customer Notification", "Prepare customer notification", "manual", 120),
                ("Regulatory Reporting", "File required regulatory reports", "manual", 180),
            ),
        ),
        Playbook(
            id="pb_ddos_mitigation",
            name="DDoS Attack Mitigation",
            description="Procedures for DDoS attack response and mitigation",
            category="Network Security",
            severity="high",
            actions=_actions(
                ("Traffic Analysis", "Analyze attack traffic patterns", "automated", 5),
                ("Rate Limiting", "Implement rate limiting rules", "automated", 2),
                ("WAF Configuration", "Update WAF rules and filters", "semi-automated", 10),
                ("CDN Activation", "Activate DDoS protection service", "automated", 3),
            ),
        ),
        Playbook(
            id="pb_insider_threat",
            name="Insider Threat Investigation",
            description="Investigation procedures for insider threat incidents",
            category="Insider Threat",
            severity="medium",
            actions=_actions(
                ("User Activity Analysis", "Analyze user activity patterns", "automated", 30),
                ("Access Review", "Review user access permissions", "manual", 45),
                ("Data Access Audit", "Audit data access logs", "semi-automated", 60),
                ("HR Coordination", "Coordinate with HR department", "manual", 30),
            ),
        ),
    ]


def default_integrations() -> List[Integration]:
    return [
        Integration(
            id="siem_splunk",
            name="Splunk SIEM",
            type="SIEM",
            capabilities=["log_ingestion", "alert_generation", "search"],
        ),
        Integration(
            id="edr_crowdstrike",
            name="CrowdStrike EDR",
            type="EDR",
            capabilities=["endpoint_isolation", "forensics", "threat_hunting"],
        ),
        Integration(
            id="email_proofpoint",
            name="Proofpoint Email Security",
            type="Email Security",
            capabilities=["email_quarantine", "url_analysis", "attachment_sandboxing"],
        ),
        Integration(
            id="firewall_paloalto",
            name="Palo Alto Firewall",
            type="Firewall",
            capabilities=["traffic_blocking", "rule_management", "threat_prevention"],
        ),
        Integration(
            id="threat_intel_misp",
            name="MISP Threat Intelligence",
            type="Threat Intelligence",
            capabilities=["ioc_sharing", "threat_feeds", "attribution"],
        ),
    ]


def sample_incidents() -> List[Incident]:
    now = utcnow()
    return [
        Incident(
            id="inc_001",
            title="Malware Detection on Workstation",
            description="Trojan detected on employee workstation in accounting department",
            type="Malware",
            severity="high",
            status="open",
            created_at=now - timedelta(hours=2),
            assigned_to="security_team",
            affected_assets=["WS-ACC-001"],
            automated_actions=["isolate_endpoint", "collect_forensics"],
        ),
        Incident(
            id="inc_002",
            title="Suspicious Failed Login Attempts",
            description="Multiple failed login attempts from foreign IP addresses",
            type="Authentication",
            severity="medium",
            status="investigating",
            created_at=now - timedelta(hours=4),
            assigned_to="soc_analyst",
            affected_assets=["AUTH-SYS-001"],
            automated_actions=["block_ip", "lock_account"],
        ),
        Incident(
            id="inc_003",
            title="Critical Vulnerability Detected",
            description="CVE-2024-1234 detected on production web server",
            type="Vulnerability",
            severity="critical",
            status="open",
            created_at=now - timedelta(minutes=30),
            assigned_to="security_team",
            affected_assets=["WEB-PROD-001"],
            automated_actions=["emergency_patch", "scan_affected_systems"],
        ),
        Incident(
            id="inc_004",
            title="Phishing Email Campaign",
            description="Large-scale phishing campaign targeting employees",
            type="Phishing",
            severity="high",
            status="resolved",
            created_at=now - timedelta(hours=24),
            resolved_at=now - timedelta(hours=20),
            assigned_to="security_team",
            affected_assets=["EMAIL-SYS-001"],
            automated_actions=["block_domain", "quarantine_emails", "user_notification"],
        ),
        Incident(
            id="inc_005",
            title="DDoS Attack in Progress",
            description="Distributed denial of service attack targeting main website",
            type="Network Attack",
            severity="high",
            status="mitigating",
            created_at=now - timedelta(minutes=15),
            assigned_to="network_team",
            affected_assets=["WEB-MAIN-001", "LB-PROD-001"],
            automated_actions=["rate_limiting", "waf_update", "cdn_activation"],
        ),
    ]
