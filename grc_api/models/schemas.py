"""
GRC Platform API -- Pydantic Data Models

Every domain record and every request/response body is defined here as a
Pydantic model. The singletons in grc_api/core build and mutate these
records in place; the routes validate incoming JSON against them and
return them inside the standard response envelope.

The Field() calls add descriptions and examples that show up directly
in the interactive docs at /docs.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes from query strings are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Response envelope: every JSON endpoint answers with this shape
# ---------------------------------------------------------------------------

class ApiResponse(BaseModel):
    """Uniform envelope: {success, data, error, timestamp}."""

    success: bool = Field(description="True if the request was handled successfully.")
    data: Any = Field(default=None, description="Endpoint-specific payload.")
    error: str | None = Field(default=None, description="Error message when success is false.")
    timestamp: datetime = Field(default_factory=utcnow, description="Server time of the response (UTC).")


def ok(data: Any = None) -> ApiResponse:
    return ApiResponse(success=True, data=data)


def fail(error: str) -> ApiResponse:
    return ApiResponse(success=False, error=error)


# ---------------------------------------------------------------------------
# Risk scoring
# ---------------------------------------------------------------------------

class RiskCategory(str, Enum):
    """Five fixed buckets. Lower bounds are inclusive: 80, 60, 40, 20."""

    critical = "Critical"
    high = "High"
    medium = "Medium"
    low = "Low"
    minimal = "Minimal"


EntityType = Literal["system", "vendor", "department", "process", "data"]


class RiskEntity(BaseModel):
    """Something we score: an IT system, a vendor, a department..."""

    id: str = Field(min_length=1, examples=["sys-001"])
    name: str = Field(min_length=1, examples=["Customer Data Platform"])
    type: EntityType = Field(examples=["system"])
    inherent_risk: float = Field(
        ge=0, le=100,
        description="Risk before any controls, 0-100.",
        examples=[95],
    )
    control_effectiveness: float = Field(
        ge=0, le=100,
        description="How well controls mitigate the risk, 0-100 (higher is better).",
        examples=[85],
    )
    description: str | None = None


class RiskScore(BaseModel):
    entity_id: str
    entity_name: str
    inherent_risk: float
    control_effectiveness: float
    residual_risk: float = Field(description="inherent x (1 - effectiveness/100), 2 decimals.")
    risk_score: int = Field(ge=0, le=100)
    category: RiskCategory
    recommendations: list[str] = []


class TravelRiskFactors(BaseModel):
    security_rating: float
    health_risk: float
    political_instability: float
    infrastructure_quality: float


class TravelRiskScore(BaseModel):
    destination: str
    risk_score: int = Field(ge=0, le=100)
    category: RiskCategory
    factors: TravelRiskFactors
    recommendations: list[str] = []


class PortfolioRiskSummary(BaseModel):
    portfolio_risk_score: int = Field(ge=0, le=100)
    entities_count: int
    critical_count: int
    high_count: int
    medium_count: int
    low_count: int
    minimal_count: int
    avg_inherent_risk: float
    avg_control_effectiveness: float
    avg_residual_risk: float
    top_risks: list[RiskScore] = []
    recommendations: list[str] = []


class TravelRiskRequest(BaseModel):
    """Factor-weighted travel risk. Values outside 0-100 are clamped."""

    destination: str = Field(min_length=1, examples=["Mexico City"])
    security_rating: float = Field(default=50, examples=[70])
    health_risk: float = Field(default=50, examples=[40])
    political_instability: float = Field(default=50, examples=[55])
    infrastructure_quality: float = Field(default=50, examples=[60])


class PortfolioRequest(BaseModel):
    entities: list[RiskEntity] = Field(default=[], description="Entities to aggregate.")


# ---------------------------------------------------------------------------
# Assessment scoring (control responses)
# ---------------------------------------------------------------------------

RiskLevel = Literal["low", "medium", "high", "critical"]


class ControlScore(BaseModel):
    control_id: str = Field(examples=["AC-2"])
    title: str = Field(default="", examples=["Account Management"])
    response: str = Field(
        description="implemented | partially-implemented | not-implemented. Unknown values score as not implemented.",
        examples=["partially-implemented"],
    )
    category: str | None = Field(default=None, examples=["Access Control"])


class ScoringInput(BaseModel):
    assessment_id: str = Field(examples=["assess-12345"])
    framework_id: str = Field(examples=["nist-csf-2.0"])
    controls: list[ControlScore] = []


class CategoryScore(BaseModel):
    category: str
    score: int = Field(ge=0, le=100)
    weight: float
    control_count: int
    implemented_count: int


class ScoringOutput(BaseModel):
    assessment_id: str
    overall_score: int = Field(ge=0, le=100, description="0 = fully compliant, 100 = critical risk.")
    risk_level: RiskLevel
    category_scores: list[CategoryScore] = []
    timestamp: datetime = Field(default_factory=utcnow)


class AssessmentMetrics(BaseModel):
    total_controls: int
    implemented_controls: int
    compliance_percentage: int


# ---------------------------------------------------------------------------
# Travel advisories
# ---------------------------------------------------------------------------

AdvisoryLevel = Literal[1, 2, 3, 4]


class Advisory(BaseModel):
    """Government travel advisory for one country.

    Levels follow the US State Department scale: 1 = Exercise Normal
    Precautions, 2 = Exercise Increased Caution, 3 = Reconsider Travel,
    4 = Do Not Travel."""

    country_code: str = Field(examples=["JP"])
    country_name: str = Field(examples=["Japan"])
    advisory_level: AdvisoryLevel = Field(examples=[1])
    health_risk_level: int | None = Field(default=None, ge=0, le=5)
    security_risk_level: int | None = Field(default=None, ge=0, le=5)
    last_updated: datetime = Field(default_factory=utcnow)


class AdvisoryRiskFactors(BaseModel):
    advisory_level: str
    health_factors: list[str] = []
    security_factors: list[str] = []
    other_factors: list[str] = []


class AdvisoryRiskOutput(BaseModel):
    destination: str
    score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    factors: AdvisoryRiskFactors
    travel_recommendation: str
    last_updated: datetime


# ---------------------------------------------------------------------------
# Event bus
# ---------------------------------------------------------------------------

class EventType(str, Enum):
    """The eight event types the bus knows about."""

    agent_completed = "agent.completed"
    agent_failed = "agent.failed"
    risk_threshold = "risk.threshold"
    compliance_change = "compliance.change"
    travel_alert = "travel.alert"
    crm_update = "crm.update"
    assessment_due = "assessment.due"
    framework_updated = "framework.updated"


EventSource = Literal["agent", "api", "webhook", "automation", "system"]


class Event(BaseModel):
    id: str = Field(examples=["evt-1708169400000-k3j9x2"])
    type: EventType
    payload: dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=utcnow)
    source: EventSource = "system"
    user_id: str | None = None


class PublishEventRequest(BaseModel):
    type: str = Field(description="One of the eight event types.", examples=["risk.threshold"])
    payload: dict[str, Any] = Field(
        description="Event-specific payload.",
        examples=[{
            "risk_level": "high",
            "previous_level": "medium",
            "risk_score": 78,
            "category": "travel",
            "triggered_by": "destination_advisory_change",
            "metadata": {},
        }],
    )
    source: EventSource = "api"
    user_id: str | None = None


class EventStatistics(BaseModel):
    total_events: int
    by_type: dict[str, int]
    by_source: dict[str, int]
    oldest_event: datetime | None = None
    newest_event: datetime | None = None


# Required payload fields per event type. Extra keys are always allowed.

class _Payload(BaseModel):
    model_config = {"extra": "allow"}


RiskLevelName = Literal["low", "medium", "high", "critical"]


class AgentCompletedPayload(_Payload):
    agent_id: str
    agent_name: str
    execution_id: str
    duration_ms: float
    result_summary: dict[str, Any] = {}


class AgentFailedPayload(_Payload):
    agent_id: str
    agent_name: str
    execution_id: str
    error: str
    duration_ms: float


class RiskThresholdPayload(_Payload):
    risk_level: RiskLevelName
    previous_level: RiskLevelName
    risk_score: float
    category: str
    triggered_by: str
    metadata: dict[str, Any] = {}


class ComplianceChangePayload(_Payload):
    framework_id: str
    framework_name: str
    change_type: Literal["status", "control_update", "assessment_complete"]
    controls_affected: int | None = None
    new_status: str | None = None
    metadata: dict[str, Any] = {}


class TravelAlertPayload(_Payload):
    destination_country: str
    destination_code: str
    alert_type: Literal["advisory_change", "risk_escalation", "health_alert"]
    previous_level: AdvisoryLevel | None = None
    new_level: AdvisoryLevel
    description: str
    affected_travelers: int | None = None


class CrmUpdatePayload(_Payload):
    crm_id: str
    record_type: Literal["prospect", "lead", "opportunity", "account"]
    action: Literal["created", "updated", "deleted"]
    record_name: str
    updated_fields: list[str] = []
    metadata: dict[str, Any] = {}


class AssessmentDuePayload(_Payload):
    assessment_id: str
    assessment_name: str
    framework_id: str
    days_until_due: int
    due_date: datetime
    responsible_user: str | None = None


class FrameworkUpdatedPayload(_Payload):
    framework_id: str
    framework_name: str
    version: str
    update_type: Literal["new_controls", "control_removal", "category_change", "version_bump"]
    controls_added: int | None = None
    controls_removed: int | None = None


EVENT_PAYLOAD_MODELS: dict[EventType, type[BaseModel]] = {
    EventType.agent_completed: AgentCompletedPayload,
    EventType.agent_failed: AgentFailedPayload,
    EventType.risk_threshold: RiskThresholdPayload,
    EventType.compliance_change: ComplianceChangePayload,
    EventType.travel_alert: TravelAlertPayload,
    EventType.crm_update: CrmUpdatePayload,
    EventType.assessment_due: AssessmentDuePayload,
    EventType.framework_updated: FrameworkUpdatedPayload,
}


# ---------------------------------------------------------------------------
# Audit logger (structured activity log)
# ---------------------------------------------------------------------------

AuditSeverity = Literal["info", "warning", "error", "critical"]
AuditCategory = Literal[
    "assessment", "framework", "control", "advisory", "agent",
    "report", "crm", "rbac", "auth", "system", "compliance",
]
AuditSource = Literal["api", "ui", "agent", "automation", "system"]


class AuditEntry(BaseModel):
    """One line of the platform activity log."""

    id: str = Field(examples=["audit-1708169400000-x8f2k1m9q"])
    timestamp: datetime = Field(default_factory=utcnow)
    user_id: str
    user_email: str | None = None
    action: str = Field(examples=["assessment.complete"])
    category: AuditCategory
    severity: AuditSeverity = "info"
    entity_type: str = Field(examples=["assessment"])
    entity_id: str | None = None
    entity_name: str | None = None
    description: str
    changes: dict[str, dict[str, Any]] | None = None
    metadata: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    source: AuditSource | None = None


class AuditStatistics(BaseModel):
    total_entries: int
    by_category: dict[str, int]
    by_severity: dict[str, int]
    by_user: dict[str, int]


# ---------------------------------------------------------------------------
# Evidence trail (SOC 2 Type II style audit evidence)
# ---------------------------------------------------------------------------

EvidenceType = Literal["screenshot", "document", "attestation", "automated-check"]
EvidenceClassification = Literal["public", "confidential", "restricted", "internal"]
CustodyAction = Literal["created", "accessed", "modified", "exported", "archived"]


class CustodyEntry(BaseModel):
    id: str
    timestamp: datetime = Field(default_factory=utcnow)
    action: CustodyAction
    user_id: str
    user_email: str | None = None
    ip_address: str | None = None
    details: str | None = None


class Evidence(BaseModel):
    """An evidence item with its content hash and chain of custody.

    The content itself is not stored, only its SHA-256 digest."""

    id: str
    evidence_type: EvidenceType
    classification: EvidenceClassification = "internal"
    title: str
    description: str | None = None
    content_hash: str
    content_hash_algorithm: str = "SHA-256"
    file_size: int | None = None
    file_name: str | None = None
    mime_type: str | None = None
    collected_at: datetime = Field(default_factory=utcnow)
    collected_by: str
    collected_by_email: str | None = None
    related_control: str | None = None
    related_framework: str | None = None
    tags: list[str] = []
    chain_of_custody: list[CustodyEntry] = []
    expires_at: datetime | None = None
    archived: bool = False
    archived_at: datetime | None = None


class Attestation(BaseModel):
    """Manual statement by a named person that a control is in place."""

    id: str
    statement_text: str
    attested_by: str
    attested_by_email: str | None = None
    position: str | None = None
    department: str | None = None
    attestation_date: datetime = Field(default_factory=utcnow)
    confirms_control: str
    confirms_framework: str
    signature_hash: str | None = None
    witness_email: str | None = None
    evidence_id: str | None = None


class ChangesSummary(BaseModel):
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None


class EnhancedAuditEntry(BaseModel):
    id: str
    timestamp: datetime = Field(default_factory=utcnow)
    action: str
    user_id: str
    user_email: str | None = None
    ip_address: str | None = None
    resource_type: str
    resource_id: str
    description: str
    severity: AuditSeverity = "info"
    evidence_ids: list[str] = []
    changes_summary: ChangesSummary | None = None
    compliance_relevant: bool = False
    related_regulations: list[str] | None = None


class ExportPeriod(BaseModel):
    start_date: datetime
    end_date: datetime


class ExportSummary(BaseModel):
    total_entries: int
    total_evidence: int
    critical_events: int
    controls_covered: list[str] = []


class AuditExportPackage(BaseModel):
    """Everything an auditor needs for one framework over one period."""

    id: str
    generated_at: datetime = Field(default_factory=utcnow)
    generated_by: str
    period: ExportPeriod
    organization: str
    framework: str
    audit_entries: list[EnhancedAuditEntry] = []
    evidence: list[Evidence] = []
    summary: ExportSummary
    integrity_hash: str = ""


class EvidenceInput(BaseModel):
    type: EvidenceType = Field(examples=["document"])
    title: str = Field(min_length=1, examples=["Access review Q1"])
    content: str = Field(default="", description="Raw content; only its SHA-256 hash is kept.")
    description: str | None = None
    file_name: str | None = None
    mime_type: str | None = None
    classification: EvidenceClassification | None = None
    related_control: str | None = None
    related_framework: str | None = None
    tags: list[str] | None = None


class AuditEntryRequest(BaseModel):
    action: str = Field(min_length=1, examples=["control.update"])
    user_id: str = Field(min_length=1, examples=["user_1"])
    resource_type: str = Field(min_length=1, examples=["control"])
    resource_id: str = Field(min_length=1, examples=["CC6.1"])
    description: str = Field(min_length=1, examples=["Quarterly access review completed"])
    user_email: str | None = None
    ip_address: str | None = None
    severity: AuditSeverity = "info"
    compliance_relevant: bool = False
    related_regulations: list[str] | None = None
    changes_summary: ChangesSummary | None = None
    evidence: list[EvidenceInput] | EvidenceInput | None = None


class AuditUpdateRequest(BaseModel):
    """PUT body. `action` selects which of the other fields are required."""

    action: Literal["attestation", "custody", "archive"]
    # attestation
    statement_text: str | None = None
    attested_by: str | None = None
    attested_by_email: str | None = None
    position: str | None = None
    department: str | None = None
    confirms_control: str | None = None
    confirms_framework: str | None = None
    witness_email: str | None = None
    # custody / archive
    evidence_id: str | None = None
    custody_action: CustodyAction | None = None
    user_id: str | None = None
    user_email: str | None = None
    ip_address: str | None = None
    details: str | None = None


class IntegrityCheckRequest(BaseModel):
    evidence_id: str
    content: str | None = Field(default=None, description="Content to hash and compare.")
    content_hash: str | None = Field(default=None, description="Precomputed SHA-256 hex digest.")


# ---------------------------------------------------------------------------
# Notifications & alerts
# ---------------------------------------------------------------------------

NotificationType = Literal[
    "compliance_alert", "risk_change", "incident_created", "agent_completed",
    "assessment_due", "vendor_risk", "travel_advisory", "system_update",
]
NotificationSeverity = Literal["info", "warning", "critical", "urgent"]


class Notification(BaseModel):
    id: str = Field(examples=["notif_17"])
    user_id: str
    org_id: str | None = None
    type: NotificationType
    title: str
    message: str
    severity: NotificationSeverity
    action_url: str | None = None
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    read_at: datetime | None = None
    metadata: dict[str, Any] | None = None


class NotificationStats(BaseModel):
    unread_count: int
    total_count: int
    by_severity: dict[str, int]
    by_type: dict[str, int]


class SendNotificationRequest(BaseModel):
    """Send to one user (user_id) or broadcast to an org (org_id)."""

    user_id: str | None = None
    org_id: str | None = None
    type: NotificationType
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    severity: NotificationSeverity = "info"
    action_url: str | None = None
    metadata: dict[str, Any] | None = None


class MarkReadRequest(BaseModel):
    notification_id: str | None = None
    user_id: str | None = None


AlertType = Literal["risk_change", "compliance_breach", "travel_advisory", "agent_failure", "opportunity_found"]
AlertPriority = Literal["critical", "high", "medium", "low", "info"]


class RelatedEntity(BaseModel):
    type: str
    id: str
    name: str | None = None


class Alert(BaseModel):
    id: str
    type: AlertType
    priority: AlertPriority
    title: str
    message: str
    timestamp: datetime = Field(default_factory=utcnow)
    dismissed: bool = False
    action_url: str | None = None
    related_entity: RelatedEntity | None = None


class CreateAlertRequest(BaseModel):
    type: AlertType
    priority: AlertPriority
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    action_url: str | None = None


class DismissAlertRequest(BaseModel):
    alert_id: str | None = None
    priority: AlertPriority | None = None
