"""
Notifications and Alerts

NotificationEngine: per-user inbox with read state, filtering and org
broadcast. AlertManager: system-wide alerts that can be dismissed.

Both start with a small demo data set (seed=True) so a fresh server has
something to show; tests construct them with seed=False.
"""

import logging
import secrets
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Any

from grc_api.models.schemas import Alert, Notification, NotificationStats

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = [
    "compliance_alert", "risk_change", "incident_created", "agent_completed",
    "assessment_due", "vendor_risk", "travel_advisory", "system_update",
]
NOTIFICATION_SEVERITIES = ["info", "warning", "critical", "urgent"]

HISTORY_PAGE_SIZE = 50
LIST_PAGE_SIZE = 20

ALERT_PRIORITIES = ["critical", "high", "medium", "low", "info"]
ALERT_HISTORY_SIZE = 1000


class NotificationEngine:

    def __init__(self, seed: bool = True):
        self._notifications: dict[str, Notification] = {}
        self._next_id = 1
        if seed:
            self._seed()

    def __len__(self) -> int:
        return len(self._notifications)

    def _new_id(self) -> str:
        notification_id = f"notif_{self._next_id}"
        self._next_id += 1
        return notification_id

    def send_notification(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        severity: str,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
        org_id: str | None = None,
    ) -> Notification:
        notification = Notification(
            id=self._new_id(),
            user_id=user_id,
            org_id=org_id,
            type=type,
            title=title,
            message=message,
            severity=severity,
            action_url=action_url,
            metadata=metadata,
        )
        self._notifications[notification.id] = notification
        return notification

    def org_users(self, org_id: str) -> list[str]:
        """Distinct users that have received a notification for this org, first-seen order."""
        return list(dict.fromkeys(
            n.user_id for n in self._notifications.values() if n.org_id == org_id
        ))

    def broadcast_to_org(
        self,
        org_id: str,
        type: str,
        title: str,
        message: str,
        severity: str,
        action_url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> list[Notification]:
        sent = [
            self.send_notification(
                user_id, type, title, message, severity,
                action_url=action_url, metadata=metadata, org_id=org_id,
            )
            for user_id in self.org_users(org_id)
        ]
        logger.info("Broadcast %r to %d user(s) in %s", title, len(sent), org_id)
        return sent

    def get_unread_count(self, user_id: str) -> int:
        return sum(1 for n in self._notifications.values() if n.user_id == user_id and not n.read)

    def mark_as_read(self, notification_id: str) -> Notification | None:
        notification = self._notifications.get(notification_id)
        if notification is None:
            return None
        notification.read = True
        notification.read_at = datetime.now(timezone.utc)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        now = datetime.now(timezone.utc)
        count = 0
        for notification in self._notifications.values():
            if notification.user_id == user_id and not notification.read:
                notification.read = True
                notification.read_at = now
                count += 1
        return count

    def _for_user(self, user_id: str) -> list[Notification]:
        # Reversed first so ties on created_at stay newest first
        result = [n for n in reversed(self._notifications.values()) if n.user_id == user_id]
        result.sort(key=lambda n: n.created_at, reverse=True)
        return result

    def get_notification_history(
        self,
        user_id: str,
        type: str | None = None,
        severity: str | None = None,
        read: bool | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Notification]:
        result = self._for_user(user_id)
        if type:
            result = [n for n in result if n.type == type]
        if severity:
            result = [n for n in result if n.severity == severity]
        if read is not None:
            result = [n for n in result if n.read == read]

        limit = limit or HISTORY_PAGE_SIZE
        return result[offset:offset + limit]

    def get_user_notifications(self, user_id: str, limit: int = LIST_PAGE_SIZE, offset: int = 0) -> list[Notification]:
        return self._for_user(user_id)[offset:offset + limit]

    def get_notification_stats(self, user_id: str) -> NotificationStats:
        by_severity = {s: 0 for s in NOTIFICATION_SEVERITIES}
        by_type = {t: 0 for t in NOTIFICATION_TYPES}
        unread = 0
        total = 0

        for notification in self._notifications.values():
            if notification.user_id != user_id:
                continue
            total += 1
            if not notification.read:
                unread += 1
            by_severity[notification.severity] += 1
            by_type[notification.type] += 1

        return NotificationStats(
            unread_count=unread,
            total_count=total,
            by_severity=by_severity,
            by_type=by_type,
        )

    def clear_notifications(self, user_id: str) -> int:
        doomed = [nid for nid, n in self._notifications.items() if n.user_id == user_id]
        for nid in doomed:
            del self._notifications[nid]
        return len(doomed)

    def _seed(self) -> None:
        now = datetime.now(timezone.utc)
        hours = lambda h: now - timedelta(hours=h)  # noqa: E731

        demo = [
            ("user_1", "compliance_alert", "NIST Control Gap Detected",
             "Control AC-2.1 (User Registration) shows 65% compliance status",
             "critical", "/dashboard/compliance/controls/AC-2.1", 2, False,
             {"control_id": "AC-2.1", "compliance": 0.65}),
            ("user_1", "risk_change", "Travel Risk Score Updated",
             "Risk score for destination Singapore changed from 32 to 38 due to new weather advisory",
             "warning", "/dashboard/travel-risk/singapore", 4, False,
             {"destination": "Singapore", "old_score": 32, "new_score": 38}),
            ("user_1", "incident_created", "Critical Incident Registered",
             "New incident: Data breach attempt detected in authentication module",
             "urgent", "/dashboard/incidents/critical_2024_01", 6, False,
             {"incident_id": "critical_2024_01", "module": "auth"}),
            ("user_1", "agent_completed", "Risk Scoring Agent Completed",
             "Risk assessment for Q1 completed in 2.3 seconds with 98.5% confidence",
             "info", "/dashboard/agents/risk-scorer", 8, True,
             {"agent_id": "risk-scorer", "latency": 2300, "confidence": 0.985}),
            ("user_1", "assessment_due", "ISO 27001 Assessment Due Soon",
             "Annual ISO 27001 assessment due in 7 days",
             "warning", "/dashboard/assessments/iso-27001", 24, False,
             {"framework": "ISO 27001", "days_remaining": 7}),
            ("user_2", "compliance_alert", "GDPR Control Missing Documentation",
             "Article 32 (Security of Processing) missing implementation evidence",
             "critical", "/dashboard/compliance/controls/GDPR-32", 3, False,
             {"control_id": "GDPR-32", "framework": "GDPR"}),
            ("user_2", "vendor_risk", "New Vendor Added to High-Risk List",
             "Vendor DataFlow Solutions classified as high-risk due to security concerns",
             "warning", "/dashboard/vendors/dataflow-solutions", 10, False,
             {"vendor_id": "dataflow-solutions", "risk_category": "security"}),
            ("user_2", "travel_advisory", "Travel Warning: Mexico City",
             "Level 3 travel advisory issued for Mexico City - avoid travel",
             "critical", "/dashboard/travel-risk/mexico", 12, False,
             {"country": "Mexico", "region": "Mexico City", "level": 3}),
            ("user_3", "system_update", "Scheduled Maintenance Window",
             "Scheduled maintenance from 2-4 AM UTC",
             "warning", "/settings/maintenance-schedule", 72, False,
             {"duration": "2 hours"}),
        ]

        for user_id, ntype, title, message, severity, url, age, read, metadata in demo:
            notification = self.send_notification(
                user_id, ntype, title, message, severity,
                action_url=url, metadata=metadata, org_id="org_1",
            )
            notification.created_at = hours(age)
            if read:
                notification.read = True
                notification.read_at = hours(age - 1)


def _alert_id() -> str:
    suffix = "".join(secrets.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    return f"alert-{int(time.time() * 1000)}-{suffix}"


class AlertManager:
    """System-wide alerts. Dismissed alerts stay until cleared."""

    def __init__(self, seed: bool = True):
        self._alerts: dict[str, Alert] = {}
        self._history: list[Alert] = []
        if seed:
            self._seed()

    def __len__(self) -> int:
        return len(self._alerts)

    def create_alert(
        self,
        type: str,
        priority: str,
        title: str,
        message: str,
        action_url: str | None = None,
    ) -> Alert:
        alert = Alert(
            id=_alert_id(),
            type=type,
            priority=priority,
            title=title,
            message=message,
            action_url=action_url,
        )
        self._alerts[alert.id] = alert
        self._history.append(alert)
        if len(self._history) > ALERT_HISTORY_SIZE:
            self._history = self._history[-ALERT_HISTORY_SIZE:]

        if priority == "critical":
            logger.warning("Critical alert raised: %s", title)
        return alert

    def dismiss_alert(self, alert_id: str) -> bool:
        alert = self._alerts.get(alert_id)
        if alert is None:
            return False
        alert.dismissed = True
        return True

    def dismiss_alerts_by_priority(self, priority: str) -> int:
        count = 0
        for alert in self._alerts.values():
            if alert.priority == priority:
                alert.dismissed = True
                count += 1
        return count

    @staticmethod
    def _newest_first(alerts) -> list[Alert]:
        return sorted(reversed(list(alerts)), key=lambda a: a.timestamp, reverse=True)

    def get_active_alerts(self) -> list[Alert]:
        return self._newest_first(a for a in self._alerts.values() if not a.dismissed)

    def get_alerts_by_priority(self, priority: str) -> list[Alert]:
        return [a for a in self.get_active_alerts() if a.priority == priority]

    def get_alerts_by_type(self, type: str) -> list[Alert]:
        return [a for a in self.get_active_alerts() if a.type == type]

    def get_dismissed_alerts(self) -> list[Alert]:
        return self._newest_first(a for a in self._alerts.values() if a.dismissed)

    def get_alert(self, alert_id: str) -> Alert | None:
        return self._alerts.get(alert_id)

    def get_all_alerts(self) -> list[Alert]:
        return self._newest_first(self._alerts.values())

    def get_history(self, limit: int | None = None) -> list[Alert]:
        """Every alert ever created, cleared ones included, newest first."""
        history = self._history[::-1]
        return history[:limit] if limit else history

    def get_stats(self) -> dict[str, int]:
        active = self.get_active_alerts()
        stats = {"total": len(active)}
        for priority in ALERT_PRIORITIES:
            stats[priority] = sum(1 for a in active if a.priority == priority)
        return stats

    def clear_dismissed_alerts(self) -> int:
        doomed = [aid for aid, a in self._alerts.items() if a.dismissed]
        for aid in doomed:
            del self._alerts[aid]
        return len(doomed)

    def clear_alert(self, alert_id: str) -> bool:
        return self._alerts.pop(alert_id, None) is not None

    def clear_all_alerts(self) -> None:
        self._alerts.clear()

    def _seed(self) -> None:
        self.create_alert(
            "compliance_breach", "critical", "Compliance Breach Detected",
            "ISO 27001 control A.5.1.1 has not been implemented. Immediate action required.",
            "/dashboard/assessments",
        )
        self.create_alert(
            "travel_advisory", "critical", "High-Risk Travel Destination",
            "Level 4 (Do Not Travel) advisory issued for an upcoming trip destination",
            "/dashboard/travel-risk",
        )
        self.create_alert(
            "risk_change", "high", "Risk Score Increase",
            "Overall GRC risk score increased from 45 to 58 in the past 24 hours",
            "/dashboard",
        )
        self.create_alert(
            "agent_failure", "high", "Agent Execution Failed",
            "The Risk Scoring Agent failed to complete after 3 retries. Last error: Timeout",
            "/dashboard/agents",
        )
        self.create_alert(
            "compliance_breach", "medium", "Upcoming Compliance Deadline",
            "Annual security training certification expires in 7 days for 3 employees",
            "/dashboard/assessments",
        )
        self.create_alert(
            "risk_change", "info", "Routine Agent Run Completed",
            "Analytics Dashboard Agent run completed successfully",
            "/dashboard/agents",
        )
