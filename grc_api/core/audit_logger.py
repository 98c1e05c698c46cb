"""
Audit Logger

Structured activity log for the platform: who did what, to which entity,
and how severe it was. Entries are kept newest first in memory and capped
at MAX_ENTRIES; the oldest entry is dropped when the cap is exceeded.

The event bus writes one entry per published event through log().
"""

import logging
import secrets
import string
import time
from datetime import datetime
from typing import Any

from grc_api.models.schemas import AuditEntry, AuditStatistics

logger = logging.getLogger(__name__)

MAX_ENTRIES = 500
DEFAULT_QUERY_LIMIT = 100

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _entry_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"audit-{int(time.time() * 1000)}-{suffix}"


class AuditLogger:

    def __init__(self, max_entries: int = MAX_ENTRIES):
        self.max_entries = max_entries
        self._entries: list[AuditEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def log(self, **fields: Any) -> AuditEntry:
        """Record an entry. Keyword arguments are AuditEntry fields (minus id/timestamp)."""
        entry = AuditEntry(id=_entry_id(), **fields)

        self._entries.insert(0, entry)
        if len(self._entries) > self.max_entries:
            self._entries.pop()

        logger.debug("Audit %s by %s: %s", entry.action, entry.user_id, entry.description)
        return entry

    # ── Convenience loggers ────────────────────────────────────────

    def log_auth(self, user_id: str, action: str, metadata: dict | None = None) -> AuditEntry:
        descriptions = {
            "login": "User logged in",
            "logout": "User logged out",
            "failed_login": "Failed login attempt",
            "password_change": "User changed password",
            "mfa_enabled": "Multi-factor authentication enabled",
        }
        return self.log(
            user_id=user_id,
            action=f"auth.{action}",
            category="auth",
            severity="warning" if action == "failed_login" else "info",
            entity_type="user",
            entity_id=user_id,
            description=descriptions.get(action, action),
            metadata=metadata,
            source="ui",
        )

    def log_agent(
        self,
        user_id: str,
        agent_name: str,
        action: str,
        metadata: dict | None = None,
    ) -> AuditEntry:
        """action is one of started / completed / failed."""
        return self.log(
            user_id=user_id,
            action=f"agent.{action}",
            category="agent",
            severity="error" if action == "failed" else "info",
            entity_type="agent",
            entity_id=agent_name,
            entity_name=agent_name,
            description=f"Agent {agent_name} execution {action}",
            metadata={"agent_name": agent_name, **(metadata or {})},
            source="agent",
        )

    def log_compliance(
        self,
        user_id: str,
        action: str,
        entity_id: str,
        entity_name: str | None = None,
        changes: dict | None = None,
        metadata: dict | None = None,
    ) -> AuditEntry:
        descriptions = {
            "assessment.start": "Assessment started",
            "assessment.complete": "Assessment completed",
            "control.update": "Control status updated",
            "framework.import": "Framework imported",
        }
        return self.log(
            user_id=user_id,
            action=action,
            category="assessment" if action.startswith("assessment") else "framework",
            severity="info",
            entity_type=action.split(".")[0],
            entity_id=entity_id,
            entity_name=entity_name,
            description=descriptions.get(action, action),
            changes=changes,
            metadata=metadata,
            source="ui",
        )

    def log_risk(
        self,
        user_id: str,
        action: str,
        entity_id: str,
        entity_name: str | None = None,
        severity: str = "info",
        metadata: dict | None = None,
    ) -> AuditEntry:
        descriptions = {
            "advisory.update": "Travel advisory updated",
            "risk.assessed": "Risk assessment completed",
            "travel.scored": "Travel risk score calculated",
        }
        return self.log(
            user_id=user_id,
            action=action,
            category="advisory",
            severity=severity,
            entity_type="advisory",
            entity_id=entity_id,
            entity_name=entity_name,
            description=descriptions.get(action, action),
            metadata=metadata,
            source="automation",
        )

    def log_crm(
        self,
        user_id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        entity_name: str | None = None,
        metadata: dict | None = None,
    ) -> AuditEntry:
        descriptions = {
            "create": f"New {entity_type} added to pipeline",
            "update": f"{entity_type} updated",
            "delete": f"{entity_type} deleted",
        }
        return self.log(
            user_id=user_id,
            action=f"crm.{action}",
            category="crm",
            severity="info",
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            description=descriptions.get(action, action),
            metadata=metadata,
            source="ui",
        )

    def log_rbac(
        self,
        user_id: str,
        action: str,
        target_user_id: str,
        changes: dict | None = None,
        metadata: dict | None = None,
    ) -> AuditEntry:
        descriptions = {
            "role.assigned": "Role assigned",
            "permission.granted": "Permission granted",
            "permission.revoked": "Permission revoked",
        }
        # Permission changes are always elevated
        return self.log(
            user_id=user_id,
            action=action,
            category="rbac",
            severity="warning",
            entity_type="user",
            entity_id=target_user_id,
            description=descriptions.get(action, action),
            changes=changes,
            metadata=metadata,
            source="ui",
        )

    def log_report(
        self,
        user_id: str,
        action: str,
        report_type: str,
        entity_id: str,
        metadata: dict | None = None,
    ) -> AuditEntry:
        descriptions = {
            "report.export": "User exported compliance report",
            "report.generated": "Report generated",
            "report.shared": "Report shared with stakeholders",
        }
        return self.log(
            user_id=user_id,
            action=action,
            category="report",
            severity="info",
            entity_type="report",
            entity_id=entity_id,
            entity_name=report_type,
            description=descriptions.get(action, action),
            metadata={"report_type": report_type, **(metadata or {})},
            source="ui",
        )

    # ── Queries ────────────────────────────────────────────────────

    def get_logs(
        self,
        user_id: str | None = None,
        category: str | None = None,
        severity: str | None = None,
        since: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> list[AuditEntry]:
        results = self._entries
        if user_id:
            results = [e for e in results if e.user_id == user_id]
        if category:
            results = [e for e in results if e.category == category]
        if severity:
            results = [e for e in results if e.severity == severity]
        if since:
            results = [e for e in results if e.timestamp >= since]
        return list(results[:limit])

    def get_statistics(self) -> AuditStatistics:
        by_category: dict[str, int] = {}
        by_severity: dict[str, int] = {}
        by_user: dict[str, int] = {}

        for entry in self._entries:
            by_category[entry.category] = by_category.get(entry.category, 0) + 1
            by_severity[entry.severity] = by_severity.get(entry.severity, 0) + 1
            by_user[entry.user_id] = by_user.get(entry.user_id, 0) + 1

        return AuditStatistics(
            total_entries=len(self._entries),
            by_category=by_category,
            by_severity=by_severity,
            by_user=by_user,
        )

    def clear(self) -> None:
        self._entries.clear()
