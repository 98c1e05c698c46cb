"""Tests for audit evidence, chain of custody and export packages."""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from grc_api.core.evidence import EvidenceTrail, hash_content, verify_export_integrity


@pytest.fixture
def trail():
    return EvidenceTrail()


def window():
    now = datetime.now(timezone.utc)
    return now - timedelta(hours=1), now + timedelta(hours=1)


class TestEvidence:

    def test_content_hash(self, trail):
        evidence = trail.create_evidence("document", "Access review", "reviewed 42 accounts", "user_1")
        assert evidence.content_hash == hashlib.sha256(b"reviewed 42 accounts").hexdigest()
        assert evidence.content_hash_algorithm == "SHA-256"
        assert evidence.file_size == len(b"reviewed 42 accounts")
        assert evidence.classification == "internal"

    def test_bytes_content(self, trail):
        evidence = trail.create_evidence("screenshot", "Console", b"\x89PNG", "user_1")
        assert evidence.content_hash == hashlib.sha256(b"\x89PNG").hexdigest()
        assert evidence.file_size == 4

    def test_first_custody_entry(self, trail):
        evidence = trail.create_evidence("document", "Policy", "text", "user_1", related_control="CC6.1")
        [custody] = evidence.chain_of_custody
        assert custody.action == "created"
        assert custody.user_id == "user_1"

    def test_custody_appends(self, trail):
        evidence = trail.create_evidence("document", "Policy", "text", "user_1")
        assert trail.update_chain_of_custody(evidence.id, "accessed", "user_2", details="review")
        assert [c.action for c in evidence.chain_of_custody] == ["created", "accessed"]

    def test_custody_unknown_evidence(self, trail):
        assert trail.update_chain_of_custody("missing", "accessed", "user_1") is False

    def test_integrity(self, trail):
        evidence = trail.create_evidence("document", "Policy", "original", "user_1")
        assert trail.verify_evidence_integrity(evidence.id, hash_content("original"))
        assert trail.verify_evidence_integrity(evidence.id, hash_content("original").upper())
        assert not trail.verify_evidence_integrity(evidence.id, hash_content("tampered"))
        assert not trail.verify_evidence_integrity("missing", hash_content("original"))

    def test_integrity_non_ascii_hash(self, trail):
        evidence = trail.create_evidence("document", "Policy", "original", "user_1")
        assert trail.verify_evidence_integrity(evidence.id, "\u00e9" * 64) is False

    def test_archive(self, trail):
        evidence = trail.create_evidence("document", "Policy", "text", "user_1")
        assert trail.archive_evidence(evidence.id)
        assert evidence.archived
        assert evidence.archived_at is not None
        assert evidence.chain_of_custody[-1].action == "archived"
        assert evidence.chain_of_custody[-1].user_id == "system"
        assert trail.archive_evidence("missing") is False

    def test_lookups(self, trail):
        a = trail.create_evidence("document", "A", "a", "u", related_framework="SOC-2", related_control="CC6.1")
        trail.create_evidence("document", "B", "b", "u", related_framework="ISO-27001", related_control="A.9")
        assert trail.get_evidence_by_framework("SOC-2") == [a]
        assert trail.get_evidence_by_control("CC6.1") == [a]
        assert len(trail.get_all_evidence()) == 2


class TestAttestation:

    def test_creates_linked_evidence(self, trail):
        attestation = trail.record_attestation(
            "MFA is enforced for all admins", "cfo", "cfo@example.com", "CFO", "Finance",
            "CC6.1", "SOC-2",
        )
        evidence = trail.get_evidence(attestation.evidence_id)
        assert evidence.evidence_type == "attestation"
        assert evidence.classification == "confidential"
        assert evidence.tags == ["attestation", "manual-evidence"]
        assert evidence.content_hash == hash_content("MFA is enforced for all admins")
        assert len(attestation.signature_hash) == 64
        assert trail.get_attestation(attestation.id) == attestation
        assert trail.get_all_attestations() == [attestation]


class TestAuditEntries:

    def test_referenced_evidence_is_accessed(self, trail):
        evidence = trail.create_evidence("document", "Policy", "text", "user_1")
        entry = trail.log_audit_entry(
            "control.update", "user_2", "control", "CC6.1", "Reviewed",
            evidence_ids=[evidence.id, "missing"],
        )
        assert entry.evidence_ids == [evidence.id, "missing"]
        assert evidence.chain_of_custody[-1].action == "accessed"
        assert evidence.chain_of_custody[-1].user_id == "user_2"

    def test_date_range_inclusive(self, trail):
        entry = trail.log_audit_entry("a", "u", "r", "1", "d")
        assert trail.get_audit_entries_by_date_range(entry.timestamp, entry.timestamp) == [entry]
        assert trail.get_audit_entry(entry.id) == entry


class TestExport:

    def build(self, trail):
        ev1 = trail.create_evidence("document", "One", "1", "u", related_framework="SOC-2", related_control="CC6.1")
        ev2 = trail.create_evidence("document", "Two", "2", "u", related_framework="SOC-2", related_control="CC7.2")
        ev3 = trail.create_evidence("document", "Three", "3", "u", related_framework="SOC-2", related_control="CC6.1")
        archived = trail.create_evidence("document", "Old", "4", "u", related_framework="SOC-2")
        trail.archive_evidence(archived.id)
        trail.create_evidence("document", "Other", "5", "u", related_framework="ISO-27001")

        trail.log_audit_entry("a", "u", "r", "1", "relevant", severity="critical", compliance_relevant=True)
        trail.log_audit_entry("b", "u", "r", "2", "relevant", compliance_relevant=True)
        trail.log_audit_entry("c", "u", "r", "3", "noise")
        return ev1, ev2, ev3, archived

    def test_package_contents(self, trail):
        ev1, ev2, ev3, archived = self.build(trail)
        start, end = window()
        package = trail.generate_export_package("SOC-2", start, end, "auditor", "Acme")

        assert package.summary.total_entries == 2
        assert package.summary.total_evidence == 3
        assert package.summary.critical_events == 1
        assert package.summary.controls_covered == ["CC6.1", "CC7.2"]
        assert archived.id not in [e.id for e in package.evidence]
        assert package.organization == "Acme"

    def test_integrity_hash(self, trail):
        self.build(trail)
        start, end = window()
        package = trail.generate_export_package("SOC-2", start, end, "auditor", "Acme")

        assert len(package.integrity_hash) == 64
        assert verify_export_integrity(package)

        package.summary.total_entries += 1
        assert not verify_export_integrity(package)

    def test_integrity_hash_non_ascii(self, trail):
        self.build(trail)
        start, end = window()
        package = trail.generate_export_package("SOC-2", start, end, "auditor", "Acme")
        package.integrity_hash = "\u00e9" * 64
        assert verify_export_integrity(package) is False

    def test_package_is_snapshot(self, trail):
        ev1, *_ = self.build(trail)
        start, end = window()
        package = trail.generate_export_package("SOC-2", start, end, "auditor", "Acme")
        exported = next(e for e in package.evidence if e.id == ev1.id)
        custody_length = len(exported.chain_of_custody)

        trail.update_chain_of_custody(ev1.id, "accessed", "user_2")
        trail.archive_evidence(ev1.id)

        assert len(exported.chain_of_custody) == custody_length
        assert exported.archived is False

    def test_exported_evidence_gets_custody_entry(self, trail):
        ev1, *_ = self.build(trail)
        start, end = window()
        trail.generate_export_package("SOC-2", start, end, "auditor", "Acme")
        last = trail.get_evidence(ev1.id).chain_of_custody[-1]
        assert last.action == "exported"
        assert last.user_id == "auditor"

    def test_outside_period(self, trail):
        self.build(trail)
        past = datetime.now(timezone.utc) - timedelta(days=30)
        package = trail.generate_export_package("SOC-2", past, past + timedelta(days=1), "auditor", "Acme")
        assert package.summary.total_entries == 0
        assert package.summary.total_evidence == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
