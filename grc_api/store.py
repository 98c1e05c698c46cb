"""
In-memory singletons shared by every route.

Nothing here survives a restart. Routes read these through the module
(`store.event_bus`, not `from grc_api.store import event_bus`) so that
reset() swaps them out everywhere at once.
"""

from grc_api.core.audit_logger import AuditLogger
from grc_api.core.event_bus import EventBus
from grc_api.core.evidence import EvidenceTrail
from grc_api.core.notifications import AlertManager, NotificationEngine
from grc_api.core.risk_scoring import RiskScoringEngine
from grc_api.core.travel_risk import AdvisoryClient

audit_logger = AuditLogger()
event_bus = EventBus(audit_logger=audit_logger)
evidence_trail = EvidenceTrail()
notification_engine = NotificationEngine()
alert_manager = AlertManager()
risk_engine = RiskScoringEngine()
advisory_client = AdvisoryClient()


def reset(seed: bool = True) -> None:
    """Rebuild every store. Tests call this between cases."""
    global audit_logger, event_bus, evidence_trail, notification_engine, alert_manager, advisory_client

    audit_logger = AuditLogger()
    event_bus = EventBus(audit_logger=audit_logger)
    evidence_trail = EvidenceTrail()
    notification_engine = NotificationEngine(seed=seed)
    alert_manager = AlertManager(seed=seed)
    advisory_client = AdvisoryClient()


def sizes() -> dict[str, int]:
    return {
        "events": len(event_bus),
        "audit_log_entries": len(audit_logger),
        "enhanced_audit_entries": len(evidence_trail.get_all_audit_entries()),
        "evidence": len(evidence_trail.get_all_evidence()),
        "notifications": len(notification_engine),
        "alerts": len(alert_manager),
    }
