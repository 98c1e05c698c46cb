"""Tests for the structured activity log."""

from datetime import datetime, timedelta, timezone

import pytest

from grc_api.core.audit_logger import AuditLogger


@pytest.fixture
def audit():
    return AuditLogger()


class TestLog:

    def test_newest_first(self, audit):
        audit.log_auth("user_1", "login")
        audit.log_auth("user_1", "logout")
        assert [e.action for e in audit.get_logs()] == ["auth.logout", "auth.login"]

    def test_capped(self):
        audit = AuditLogger(max_entries=3)
        for i in range(5):
            audit.log_crm("user_1", "update", "lead", f"lead-{i}")
        logs = audit.get_logs()
        assert len(logs) == 3
        assert [e.entity_id for e in logs] == ["lead-4", "lead-3", "lead-2"]

    def test_ids(self, audit):
        entry = audit.log_auth("user_1", "login")
        assert entry.id.startswith("audit-")


class TestConvenienceLoggers:

    def test_failed_login_is_warning(self, audit):
        assert audit.log_auth("user_1", "failed_login").severity == "warning"
        assert audit.log_auth("user_1", "login").description == "User logged in"

    def test_agent_failure_is_error(self, audit):
        entry = audit.log_agent("user_1", "risk-scorer", "failed", {"error": "timeout"})
        assert entry.severity == "error"
        assert entry.metadata == {"agent_name": "risk-scorer", "error": "timeout"}
        assert entry.source == "agent"

    def test_compliance_category(self, audit):
        assert audit.log_compliance("user_1", "assessment.start", "a-1").category == "assessment"
        assert audit.log_compliance("user_1", "framework.import", "f-1").category == "framework"

    def test_rbac_always_warning(self, audit):
        entry = audit.log_rbac("admin", "role.assigned", "user_2", changes={"role": {"old": "viewer", "new": "admin"}})
        assert entry.severity == "warning"
        assert entry.entity_id == "user_2"

    def test_risk_and_report(self, audit):
        assert audit.log_risk("user_1", "travel.scored", "MX").category == "advisory"
        report = audit.log_report("user_1", "report.export", "SOC 2", "rep-1")
        assert report.metadata["report_type"] == "SOC 2"


class TestQueries:

    def test_filters(self, audit):
        audit.log_auth("user_1", "login")
        audit.log_auth("user_2", "failed_login")
        audit.log_crm("user_2", "create", "lead", "lead-1")

        assert len(audit.get_logs(user_id="user_2")) == 2
        assert len(audit.get_logs(category="crm")) == 1
        assert len(audit.get_logs(severity="warning")) == 1
        assert len(audit.get_logs(limit=1)) == 1

    def test_since(self, audit):
        audit.log_auth("user_1", "login")
        future = datetime.now(timezone.utc) + timedelta(minutes=1)
        assert audit.get_logs(since=future) == []

    def test_statistics(self, audit):
        audit.log_auth("user_1", "login")
        audit.log_auth("user_2", "failed_login")
        stats = audit.get_statistics()
        assert stats.total_entries == 2
        assert stats.by_category == {"auth": 2}
        assert stats.by_severity == {"info": 1, "warning": 1}
        assert stats.by_user == {"user_1": 1, "user_2": 1}

    def test_clear(self, audit):
        audit.log_auth("user_1", "login")
        audit.clear()
        assert len(audit) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
