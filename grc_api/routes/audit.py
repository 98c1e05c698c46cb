"""
/api/audit -- Activity log and audit evidence.

  GET  /api/audit/logs             platform activity log (event bus, logins, ...)
  POST /api/audit/enhanced         audit entry, optionally collecting evidence
  GET  /api/audit/enhanced         entries, evidence, or an auditor export package
  PUT  /api/audit/enhanced         attestation, chain-of-custody update, archive
  POST /api/audit/enhanced/verify  check evidence content against its stored hash

Evidence content is never stored, only its SHA-256 hash. The chain of
custody on each evidence item is append-only.
"""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, HTTPException, Query

from grc_api import store
from grc_api.core.evidence import HASH_ALGORITHM, hash_content
from grc_api.models.schemas import (
    ApiResponse,
    AuditCategory,
    AuditEntryRequest,
    AuditSeverity,
    AuditUpdateRequest,
    IntegrityCheckRequest,
    as_utc,
    ok,
)

router = APIRouter()

DEFAULT_EXPORT_FRAMEWORK = "SOC-2"


def _listing(items: list) -> dict:
    return {"items": items, "count": len(items)}


@router.get(
    "/api/audit/logs",
    response_model=ApiResponse,
    summary="Platform activity log",
    description="Newest first, capped at 500 retained entries. Includes statistics over everything retained.",
    tags=["Audit"],
)
async def audit_logs(
    user_id: str | None = None,
    category: AuditCategory | None = None,
    severity: AuditSeverity | None = None,
    since: datetime | None = None,
    limit: int = Query(default=100, ge=1, le=500),
) -> ApiResponse:
    logs = store.audit_logger.get_logs(
        user_id=user_id,
        category=category,
        severity=severity,
        since=as_utc(since),
        limit=limit,
    )
    return ok({
        "logs": logs,
        "total": len(logs),
        "statistics": store.audit_logger.get_statistics(),
    })


@router.post(
    "/api/audit/enhanced",
    response_model=ApiResponse,
    status_code=201,
    summary="Log an audit entry",
    description=(
        "Records an audit entry. `evidence` may be one item or a list; each "
        "item is hashed, stored as evidence and linked to the entry."
    ),
    tags=["Audit"],
)
async def log_audit_entry(request: AuditEntryRequest) -> ApiResponse:
    trail = store.evidence_trail

    items = request.evidence or []
    if not isinstance(items, list):
        items = [items]

    evidence_ids = [
        trail.create_evidence(
            item.type,
            item.title,
            item.content,
            request.user_id,
            description=item.description,
            file_name=item.file_name,
            mime_type=item.mime_type,
            classification=item.classification,
            related_control=item.related_control,
            related_framework=item.related_framework,
            tags=item.tags,
            collected_by_email=request.user_email,
        ).id
        for item in items
    ]

    entry = trail.log_audit_entry(
        request.action,
        request.user_id,
        request.resource_type,
        request.resource_id,
        request.description,
        user_email=request.user_email,
        ip_address=request.ip_address,
        severity=request.severity,
        evidence_ids=evidence_ids,
        changes_summary=request.changes_summary,
        compliance_relevant=request.compliance_relevant,
        related_regulations=request.related_regulations,
    )

    return ok({
        "audit_entry_id": entry.id,
        "timestamp": entry.timestamp,
        "evidence_ids": evidence_ids,
        "evidence_collected": len(evidence_ids),
        "compliance_relevant": entry.compliance_relevant,
    })


@router.get(
    "/api/audit/enhanced",
    response_model=ApiResponse,
    summary="Query audit entries and evidence",
    description=(
        "`type=entries` (by `entry_id`, by `start_date`+`end_date`, or all), "
        "`type=evidence` (by `framework`, by `control`, or all), "
        "`type=export` (auditor package for `framework` between `start_date` and `end_date`)."
    ),
    tags=["Audit"],
)
async def query_audit(
    type: Literal["entries", "evidence", "export"] = "entries",
    entry_id: str | None = None,
    framework: str | None = None,
    control: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    organization: str = "Organization",
    generated_by: str = "system",
) -> ApiResponse:
    trail = store.evidence_trail
    start, end = as_utc(start_date), as_utc(end_date)

    if type == "export":
        if not start or not end:
            raise HTTPException(status_code=400, detail="start_date and end_date are required for export")
        package = trail.generate_export_package(
            framework or DEFAULT_EXPORT_FRAMEWORK, start, end, generated_by, organization
        )
        return ok({"export": package, "format": "JSON", "ready_for_download": True})

    if type == "evidence":
        if framework:
            return ok(_listing(trail.get_evidence_by_framework(framework)))
        if control:
            return ok(_listing(trail.get_evidence_by_control(control)))
        return ok(_listing(trail.get_all_evidence()))

    if entry_id:
        entry = trail.get_audit_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Audit entry '{entry_id}' not found")
        return ok(entry)
    if start or end:
        if not start or not end:
            raise HTTPException(status_code=400, detail="start_date and end_date must be given together")
        return ok(_listing(trail.get_audit_entries_by_date_range(start, end)))
    return ok(_listing(trail.get_all_audit_entries()))


def _require(request: AuditUpdateRequest, *fields: str) -> None:
    missing = [f for f in fields if not getattr(request, f)]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Missing required {request.action} fields: {', '.join(missing)}",
        )


@router.put(
    "/api/audit/enhanced",
    response_model=ApiResponse,
    summary="Attest, update custody, or archive",
    description=(
        "`action=attestation` records a signed statement that a control is in place "
        "(and stores it as confidential evidence). `action=custody` appends to an "
        "evidence item's chain of custody. `action=archive` archives an evidence item."
    ),
    tags=["Audit"],
)
async def update_audit(request: AuditUpdateRequest) -> ApiResponse:
    trail = store.evidence_trail

    if request.action == "attestation":
        _require(request, "statement_text", "attested_by", "confirms_control", "confirms_framework")
        attestation = trail.record_attestation(
            request.statement_text,
            request.attested_by,
            request.attested_by_email,
            request.position,
            request.department,
            request.confirms_control,
            request.confirms_framework,
            witness_email=request.witness_email,
        )
        return ok({
            "attestation_id": attestation.id,
            "evidence_id": attestation.evidence_id,
            "signature_hash": attestation.signature_hash,
            "timestamp": attestation.attestation_date,
        })

    if request.action == "custody":
        _require(request, "evidence_id", "custody_action", "user_id")
        updated = trail.update_chain_of_custody(
            request.evidence_id,
            request.custody_action,
            request.user_id,
            user_email=request.user_email,
            ip_address=request.ip_address,
            details=request.details,
        )
        if not updated:
            raise HTTPException(status_code=404, detail=f"Evidence '{request.evidence_id}' not found")
        evidence = trail.get_evidence(request.evidence_id)
        return ok({
            "evidence_id": evidence.id,
            "action": request.custody_action,
            "custody_length": len(evidence.chain_of_custody),
        })

    _require(request, "evidence_id")
    if not trail.archive_evidence(request.evidence_id):
        raise HTTPException(status_code=404, detail=f"Evidence '{request.evidence_id}' not found")
    evidence = trail.get_evidence(request.evidence_id)
    return ok({"evidence_id": evidence.id, "archived": True, "archived_at": evidence.archived_at})


@router.post(
    "/api/audit/enhanced/verify",
    response_model=ApiResponse,
    summary="Verify evidence integrity",
    description="Send either the original `content` or its SHA-256 `content_hash`.",
    tags=["Audit"],
)
async def verify_evidence(request: IntegrityCheckRequest) -> ApiResponse:
    if request.content is None and not request.content_hash:
        raise HTTPException(status_code=400, detail="Provide content or content_hash")

    evidence = store.evidence_trail.get_evidence(request.evidence_id)
    if evidence is None:
        raise HTTPException(status_code=404, detail=f"Evidence '{request.evidence_id}' not found")

    content_hash = request.content_hash or hash_content(request.content)
    return ok({
        "evidence_id": evidence.id,
        "valid": store.evidence_trail.verify_evidence_integrity(evidence.id, content_hash),
        "algorithm": HASH_ALGORITHM,
    })
