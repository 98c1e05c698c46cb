"""Tests for webhook signature checks and payload parsing."""

import base64
import hashlib
import hmac

import pytest

from grc_api.core.event_bus import validate_payload
from grc_api.core.webhooks import (
    extract_signature,
    extract_timestamp,
    parse_airtable_payload,
    parse_generic_payload,
    parse_payload,
    parse_slack_payload,
    verify_hmac_signature,
    verify_signature,
)
from grc_api.models.schemas import EventType

SECRET = "s3cret"
BODY = b'{"hello": "world"}'


def hex_mac(message: bytes, secret: str = SECRET, algorithm=hashlib.sha256) -> str:
    return hmac.new(secret.encode(), message, algorithm).hexdigest()


AIRTABLE_BODY = {
    "timestamp": "2025-02-17T12:00:00.000Z",
    "changedTablesById": {
        "tbl123": {
            "createdRecordsById": {"rec1": {}, "rec2": {}},
            "changedMetadata": {"name": "Compliance Controls"},
        },
    },
}


def slack_body(text, type="app_mention"):
    return {
        "type": "event_callback",
        "event": {"type": type, "user": "U123", "text": text, "channel": "C456"},
    }


class TestHmac:

    def test_valid(self):
        assert verify_hmac_signature(BODY, hex_mac(BODY), SECRET)

    def test_wrong_signature(self):
        assert not verify_hmac_signature(BODY, hex_mac(b"other"), SECRET)

    def test_wrong_length(self):
        assert not verify_hmac_signature(BODY, "abc", SECRET)

    def test_missing_secret_or_signature(self):
        assert not verify_hmac_signature(BODY, hex_mac(BODY), None)
        assert not verify_hmac_signature(BODY, None, SECRET)

    def test_sha1(self):
        assert verify_hmac_signature(BODY, hex_mac(BODY, algorithm=hashlib.sha1), SECRET, "sha1")

    def test_str_body(self):
        assert verify_hmac_signature(BODY.decode(), hex_mac(BODY), SECRET)


class TestVerifySignature:

    def test_no_secret_skips_verification(self):
        assert verify_signature("generic", BODY, None, None)

    def test_missing_signature(self):
        assert not verify_signature("generic", BODY, SECRET, None)

    def test_generic(self):
        assert verify_signature("generic", BODY, SECRET, hex_mac(BODY))
        assert not verify_signature("generic", BODY, SECRET, hex_mac(BODY, secret="other"))

    def test_airtable_base64(self):
        digest = hmac.new(SECRET.encode(), BODY, hashlib.sha256).digest()
        assert verify_signature("airtable", BODY, SECRET, base64.b64encode(digest).decode())
        assert not verify_signature("airtable", BODY, SECRET, hex_mac(BODY))

    def test_slack(self):
        signature = "v0=" + hex_mac(b"v0:1708169400:" + BODY)
        assert verify_signature("slack", BODY, SECRET, signature, "1708169400")
        assert not verify_signature("slack", BODY, SECRET, signature, "1708169401")

    def test_slack_needs_timestamp(self):
        signature = "v0=" + hex_mac(b"v0:1708169400:" + BODY)
        assert not verify_signature("slack", BODY, SECRET, signature, None)


class TestHeaders:

    def test_signature_header_precedence(self):
        headers = {"x-signature": "generic", "x-slack-signature": "slack"}
        assert extract_signature(headers) == "slack"
        assert extract_signature({"x-signature": "generic"}) == "generic"
        assert extract_signature({}) is None

    def test_timestamp_header_precedence(self):
        headers = {"x-timestamp": "3", "x-airtable-timestamp": "1"}
        assert extract_timestamp(headers) == "1"


class TestAirtable:

    def test_table_change(self):
        event_type, payload = parse_airtable_payload(AIRTABLE_BODY)
        assert event_type == EventType.compliance_change
        assert payload["framework_id"] == "tbl123"
        assert payload["framework_name"] == "Airtable Table: tbl123"
        assert payload["controls_affected"] == 2
        assert payload["metadata"]["airtable_source"] is True
        validate_payload(event_type, payload)

    def test_without_timestamp(self):
        assert parse_airtable_payload({"changedTablesById": {"tbl1": {}}}) is None

    def test_without_changes(self):
        assert parse_airtable_payload({"timestamp": "now"}) is None


class TestSlack:

    def test_crm_mention(self):
        event_type, payload = parse_slack_payload(slack_body("New lead from the conference"))
        assert event_type == EventType.crm_update
        assert payload["crm_id"] == "slack-C456-U123"
        assert payload["record_name"] == "New lead from the conference"
        validate_payload(event_type, payload)

    def test_crm_wins_over_alert(self):
        event_type, _ = parse_slack_payload(slack_body("alert: opportunity at risk"))
        assert event_type == EventType.crm_update

    def test_critical_alert(self):
        event_type, payload = parse_slack_payload(slack_body("<@U789> Alert: Critical risk detected in travel policies"))
        assert event_type == EventType.risk_threshold
        assert payload["risk_level"] == "critical"
        assert payload["risk_score"] == 90
        validate_payload(event_type, payload)

    def test_plain_alert(self):
        _, payload = parse_slack_payload(slack_body("vendor risk went up", type="message"))
        assert payload["risk_level"] == "high"
        assert payload["risk_score"] == 70

    def test_record_name_truncated(self):
        _, payload = parse_slack_payload(slack_body("lead " + "x" * 200))
        assert len(payload["record_name"]) == 100

    def test_irrelevant(self):
        assert parse_slack_payload(slack_body("good morning")) is None
        assert parse_slack_payload(slack_body("risk", type="reaction_added")) is None
        assert parse_slack_payload({"type": "event_callback"}) is None


class TestGeneric:

    def test_valid(self):
        event_type, payload = parse_generic_payload({
            "eventType": "agent.failed",
            "data": {"agent_id": "a1", "metadata": {"ignored": True}},
            "metadata": {"request_id": "req-1"},
        })
        assert event_type == EventType.agent_failed
        assert payload == {"agent_id": "a1", "metadata": {"request_id": "req-1"}}

    def test_missing_metadata(self):
        _, payload = parse_generic_payload({"eventType": "crm.update", "data": {"crm_id": "1"}})
        assert payload["metadata"] == {}

    def test_unknown_type(self):
        assert parse_generic_payload({"eventType": "nope", "data": {"a": 1}}) is None

    def test_missing_data(self):
        assert parse_generic_payload({"eventType": "crm.update"}) is None
        assert parse_generic_payload(["not", "a", "dict"]) is None

    def test_unknown_source_parsed_as_generic(self):
        parsed = parse_payload("zapier", {"eventType": "crm.update", "data": {"crm_id": "1"}})
        assert parsed[0] == EventType.crm_update


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
