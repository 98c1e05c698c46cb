"""
Evidence Trail

Audit evidence for SOC 2 Type II and similar regulatory audits:

  - evidence items (screenshot, document, attestation, automated-check)
    identified by the SHA-256 hash of their content,
  - an append-only chain of custody per evidence item,
  - manual attestations signed with a hash of who attested and when,
  - audit entries that reference evidence,
  - export packages for auditors with one recomputable integrity hash.

Everything lives in dicts keyed by id. Nothing is persisted.
"""

import hashlib
import hmac
import json
import logging
import time
import uuid
from datetime import datetime

from grc_api.models.schemas import (
    Attestation,
    AuditExportPackage,
    ChangesSummary,
    CustodyEntry,
    EnhancedAuditEntry,
    Evidence,
    ExportPeriod,
    ExportSummary,
)

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "SHA-256"


def hash_content(content: str | bytes) -> str:
    data = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(data).hexdigest()


def compute_export_hash(package: AuditExportPackage) -> str:
    """SHA-256 over the package summary counts, generation time and period."""
    data = json.dumps(
        {
            "totalEntries": package.summary.total_entries,
            "totalEvidence": package.summary.total_evidence,
            "timestamp": package.generated_at.isoformat(),
            "period": {
                "startDate": package.period.start_date.isoformat(),
                "endDate": package.period.end_date.isoformat(),
            },
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _same_hash(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def verify_export_integrity(package: AuditExportPackage) -> bool:
    return _same_hash(package.integrity_hash, compute_export_hash(package))


class EvidenceTrail:

    def __init__(self):
        self._entries: dict[str, EnhancedAuditEntry] = {}
        self._evidence: dict[str, Evidence] = {}
        self._attestations: dict[str, Attestation] = {}

    # ── Evidence ───────────────────────────────────────────────────

    def create_evidence(
        self,
        evidence_type: str,
        title: str,
        content: str | bytes,
        user_id: str,
        description: str | None = None,
        file_name: str | None = None,
        mime_type: str | None = None,
        classification: str | None = None,
        related_control: str | None = None,
        related_framework: str | None = None,
        tags: list[str] | None = None,
        expires_at: datetime | None = None,
        collected_by_email: str | None = None,
    ) -> Evidence:
        data = content.encode("utf-8") if isinstance(content, str) else content

        evidence = Evidence(
            id=str(uuid.uuid4()),
            evidence_type=evidence_type,
            classification=classification or "internal",
            title=title,
            description=description,
            content_hash=hash_content(data),
            content_hash_algorithm=HASH_ALGORITHM,
            file_size=len(data),
            file_name=file_name,
            mime_type=mime_type,
            collected_by=user_id,
            collected_by_email=collected_by_email,
            related_control=related_control,
            related_framework=related_framework,
            tags=tags or [],
            expires_at=expires_at,
            chain_of_custody=[
                CustodyEntry(
                    id=str(uuid.uuid4()),
                    action="created",
                    user_id=user_id,
                    details=f"Evidence created for control {related_control or 'unspecified'}",
                )
            ],
        )

        self._evidence[evidence.id] = evidence
        logger.info("Collected %s evidence %s (%s)", evidence_type, evidence.id, title)
        return evidence

    def update_chain_of_custody(
        self,
        evidence_id: str,
        action: str,
        user_id: str,
        user_email: str | None = None,
        ip_address: str | None = None,
        details: str | None = None,
    ) -> bool:
        evidence = self._evidence.get(evidence_id)
        if evidence is None:
            return False

        evidence.chain_of_custody.append(
            CustodyEntry(
                id=str(uuid.uuid4()),
                action=action,
                user_id=user_id,
                user_email=user_email,
                ip_address=ip_address,
                details=details,
            )
        )
        return True

    def archive_evidence(self, evidence_id: str) -> bool:
        evidence = self._evidence.get(evidence_id)
        if evidence is None:
            return False

        archived = self.update_chain_of_custody(
            evidence_id, "archived", "system", details="Evidence archived"
        )
        evidence.archived = True
        evidence.archived_at = evidence.chain_of_custody[-1].timestamp
        return archived

    def verify_evidence_integrity(self, evidence_id: str, content_hash: str) -> bool:
        evidence = self._evidence.get(evidence_id)
        if evidence is None:
            return False
        return _same_hash(content_hash.lower(), evidence.content_hash)

    # ── Attestations ───────────────────────────────────────────────

    def record_attestation(
        self,
        statement_text: str,
        attested_by: str,
        attested_by_email: str | None,
        position: str | None,
        department: str | None,
        confirms_control: str,
        confirms_framework: str,
        witness_email: str | None = None,
    ) -> Attestation:
        signature = hash_content(f"{attested_by}{attested_by_email or ''}{int(time.time() * 1000)}")

        evidence = self.create_evidence(
            "attestation",
            f"Attestation: {confirms_control}",
            statement_text,
            attested_by,
            description=f"Manual attestation by {position or 'unspecified position'}",
            related_control=confirms_control,
            related_framework=confirms_framework,
            classification="confidential",
            tags=["attestation", "manual-evidence"],
        )

        attestation = Attestation(
            id=str(uuid.uuid4()),
            statement_text=statement_text,
            attested_by=attested_by,
            attested_by_email=attested_by_email,
            position=position,
            department=department,
            confirms_control=confirms_control,
            confirms_framework=confirms_framework,
            signature_hash=signature,
            witness_email=witness_email,
            evidence_id=evidence.id,
        )
        self._attestations[attestation.id] = attestation
        return attestation

    # ── Audit entries ──────────────────────────────────────────────

    def log_audit_entry(
        self,
        action: str,
        user_id: str,
        resource_type: str,
        resource_id: str,
        description: str,
        user_email: str | None = None,
        ip_address: str | None = None,
        severity: str = "info",
        evidence_ids: list[str] | None = None,
        changes_summary: ChangesSummary | dict | None = None,
        compliance_relevant: bool = False,
        related_regulations: list[str] | None = None,
    ) -> EnhancedAuditEntry:
        entry = EnhancedAuditEntry(
            id=str(uuid.uuid4()),
            action=action,
            user_id=user_id,
            user_email=user_email,
            ip_address=ip_address,
            resource_type=resource_type,
            resource_id=resource_id,
            description=description,
            severity=severity,
            evidence_ids=evidence_ids or [],
            changes_summary=changes_summary,
            compliance_relevant=compliance_relevant,
            related_regulations=related_regulations,
        )
        self._entries[entry.id] = entry

        # Referencing evidence counts as accessing it
        for evidence_id in entry.evidence_ids:
            self.update_chain_of_custody(
                evidence_id,
                "accessed",
                user_id,
                user_email=user_email,
                ip_address=ip_address,
                details=f"Referenced in audit entry: {action}",
            )

        return entry

    # ── Lookups ────────────────────────────────────────────────────

    def get_audit_entry(self, entry_id: str) -> EnhancedAuditEntry | None:
        return self._entries.get(entry_id)

    def get_evidence(self, evidence_id: str) -> Evidence | None:
        return self._evidence.get(evidence_id)

    def get_attestation(self, attestation_id: str) -> Attestation | None:
        return self._attestations.get(attestation_id)

    def get_audit_entries_by_date_range(self, start: datetime, end: datetime) -> list[EnhancedAuditEntry]:
        return [e for e in self._entries.values() if start <= e.timestamp <= end]

    def get_evidence_by_framework(self, framework: str) -> list[Evidence]:
        return [e for e in self._evidence.values() if e.related_framework == framework]

    def get_evidence_by_control(self, control: str) -> list[Evidence]:
        return [e for e in self._evidence.values() if e.related_control == control]

    def get_all_audit_entries(self) -> list[EnhancedAuditEntry]:
        return list(self._entries.values())

    def get_all_evidence(self) -> list[Evidence]:
        return list(self._evidence.values())

    def get_all_attestations(self) -> list[Attestation]:
        return list(self._attestations.values())

    # ── Export ─────────────────────────────────────────────────────

    def generate_export_package(
        self,
        framework: str,
        start: datetime,
        end: datetime,
        generated_by: str,
        organization: str,
    ) -> AuditExportPackage:
        entries = [e for e in self.get_audit_entries_by_date_range(start, end) if e.compliance_relevant]
        evidence = [
            e for e in self.get_evidence_by_framework(framework)
            if not e.archived and start <= e.collected_at <= end
        ]

        # dict keeps first-seen order
        controls = list(dict.fromkeys(e.related_control for e in evidence if e.related_control))

        package = AuditExportPackage(
            id=str(uuid.uuid4()),
            generated_by=generated_by,
            period=ExportPeriod(start_date=start, end_date=end),
            organization=organization,
            framework=framework,
            audit_entries=entries,
            evidence=[e.model_copy(deep=True) for e in evidence],
            summary=ExportSummary(
                total_entries=len(entries),
                total_evidence=len(evidence),
                critical_events=sum(1 for e in entries if e.severity == "critical"),
                controls_covered=controls,
            ),
        )
        package.integrity_hash = compute_export_hash(package)

        for item in evidence:
            self.update_chain_of_custody(
                item.id,
                "exported",
                generated_by,
                details=f"Included in {framework} export package {package.id}",
            )

        logger.info(
            "Generated %s export %s: %d entries, %d evidence items",
            framework, package.id, len(entries), len(evidence),
        )
        return package
