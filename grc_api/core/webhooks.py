"""
Inbound webhooks

Signature checks and payload parsers for the three webhook sources the
platform accepts: Airtable base changes, Slack Events API callbacks and a
generic `{eventType, data, metadata}` JSON shape. A parser returns
`(EventType, payload)` ready for EventBus.publish, or None when the body
does not describe anything we route.
"""

import base64
import hashlib
import hmac
import logging
from collections.abc import Mapping
from typing import Any

from grc_api.models.schemas import EventType

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("x-airtable-content-mac", "x-slack-signature", "x-signature")
TIMESTAMP_HEADERS = ("x-airtable-timestamp", "x-slack-request-timestamp", "x-timestamp")

SLACK_CRM_WORDS = ("crm", "lead", "opportunity")
SLACK_ALERT_WORDS = ("alert", "risk", "critical")
SLACK_RECORD_NAME_LENGTH = 100

ParsedEvent = tuple[EventType, dict[str, Any]]

_ALGORITHMS = {"sha256": hashlib.sha256, "sha1": hashlib.sha1}


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def _digest(secret: str, message: str | bytes, algorithm: str = "sha256") -> bytes:
    return hmac.new(_as_bytes(secret), _as_bytes(message), _ALGORITHMS[algorithm]).digest()


def _same(provided: str, expected: str) -> bool:
    return hmac.compare_digest(_as_bytes(provided), _as_bytes(expected))


def verify_hmac_signature(
    body: str | bytes,
    signature: str | None,
    secret: str | None,
    algorithm: str = "sha256",
) -> bool:
    """Hex HMAC of the raw body. Missing secret or signature never verifies."""
    if not secret or not signature:
        return False
    if algorithm not in _ALGORITHMS:
        raise ValueError(f"Unsupported algorithm: {algorithm}")
    return _same(signature, _digest(secret, body, algorithm).hex())


def verify_signature(
    source: str,
    body: str | bytes,
    secret: str | None,
    signature: str | None,
    timestamp: str | None = None,
) -> bool:
    if not secret:
        logger.warning("No webhook secret configured, skipping signature verification")
        return True
    if not signature:
        logger.warning("Missing signature header")
        return False

    if source == "airtable":
        expected = base64.b64encode(_digest(secret, body)).decode("ascii")
    elif source == "slack":
        if not timestamp:
            return False
        base = b"v0:" + _as_bytes(timestamp) + b":" + _as_bytes(body)
        expected = "v0=" + _digest(secret, base).hex()
    else:
        expected = _digest(secret, body).hex()

    return _same(signature, expected)


def _first_header(headers: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = headers.get(name)
        if value:
            return value
    return None


def extract_signature(headers: Mapping[str, str]) -> str | None:
    return _first_header(headers, SIGNATURE_HEADERS)


def extract_timestamp(headers: Mapping[str, str]) -> str | None:
    return _first_header(headers, TIMESTAMP_HEADERS)


# ── Payload parsers ────────────────────────────────────────────────

def parse_airtable_payload(body: Any) -> ParsedEvent | None:
    """A changed table becomes a compliance.change control update."""
    if not isinstance(body, dict) or not body.get("timestamp"):
        return None

    changed = body.get("changedTablesById")
    if not isinstance(changed, dict) or not changed:
        return None

    table_id = next(iter(changed))
    changes = changed[table_id] or {}
    created = changes.get("createdRecordsById") if isinstance(changes, dict) else None

    return EventType.compliance_change, {
        "framework_id": table_id,
        "framework_name": f"Airtable Table: {table_id}",
        "change_type": "control_update",
        "controls_affected": len(created) if created else 0,
        "metadata": {
            "airtable_source": True,
            "table_id": table_id,
            "changes": changes,
        },
    }


def parse_slack_payload(body: Any) -> ParsedEvent | None:
    """Messages and mentions that talk about CRM records or risk alerts.

    CRM wording wins over alert wording when a message has both."""
    if not isinstance(body, dict) or not isinstance(body.get("event"), dict):
        return None

    event = body["event"]
    if event.get("type") not in ("app_mention", "message"):
        return None

    text = event.get("text") or ""
    lowered = text.lower()
    channel = event.get("channel")
    user = event.get("user")
    slack_meta = {"slack_channel": channel, "slack_user": user, "slack_text": text}

    if any(word in lowered for word in SLACK_CRM_WORDS):
        return EventType.crm_update, {
            "crm_id": f"slack-{channel}-{user}",
            "record_type": "lead",
            "action": "updated",
            "record_name": text[:SLACK_RECORD_NAME_LENGTH],
            "updated_fields": ["slack_mention"],
            "metadata": slack_meta,
        }

    if any(word in lowered for word in SLACK_ALERT_WORDS):
        critical = "critical" in lowered
        return EventType.risk_threshold, {
            "risk_level": "critical" if critical else "high",
            "previous_level": "medium",
            "risk_score": 90 if critical else 70,
            "category": "slack_alert",
            "triggered_by": "slack_notification",
            "metadata": slack_meta,
        }

    return None


def parse_generic_payload(body: Any) -> ParsedEvent | None:
    """`{eventType, data, metadata}`. The top-level metadata replaces data's own."""
    if not isinstance(body, dict):
        return None

    data = body.get("data")
    raw_type = body.get("eventType")
    if not raw_type or not isinstance(data, dict) or not data:
        return None

    try:
        event_type = EventType(raw_type)
    except ValueError:
        return None

    return event_type, {**data, "metadata": body.get("metadata") or {}}


PARSERS = {
    "airtable": parse_airtable_payload,
    "slack": parse_slack_payload,
    "generic": parse_generic_payload,
}


def parse_payload(source: str, body: Any) -> ParsedEvent | None:
    """Unknown sources are parsed as generic."""
    return PARSERS.get(source, parse_generic_payload)(body)
