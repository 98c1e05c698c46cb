"""
POST /api/webhooks/events -- Inbound webhook receiver.

Accepts Airtable, Slack and generic JSON webhooks, verifies the HMAC
signature when a secret is configured, maps the body to a platform event
and publishes it on the event bus with source "webhook".

Headers:
  X-Webhook-Source   airtable | slack | generic (default generic)
  X-Webhook-Secret   shared secret, used only when WEBHOOK_SECRET is unset
  X-User-Id          user that triggered the webhook (optional)
  plus the source's own signature / timestamp headers
"""

import json
import logging
import os

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from grc_api import store
from grc_api.core.webhooks import extract_signature, extract_timestamp, parse_payload, verify_signature
from grc_api.models.schemas import ApiResponse, ok

logger = logging.getLogger(__name__)

WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET", "")

router = APIRouter()


@router.post(
    "/api/webhooks/events",
    response_model=ApiResponse,
    summary="Receive an external webhook",
    description=(
        "Airtable table changes become `compliance.change`; Slack messages about "
        "CRM records become `crm.update`, about alerts or risk `risk.threshold`; "
        "generic bodies name their own `eventType`. 401 on a bad signature, "
        "422 when the body cannot be mapped to an event."
    ),
    tags=["Events"],
)
async def receive_webhook(request: Request) -> ApiResponse:
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON in request body")

    source = (request.headers.get("x-webhook-source") or "generic").lower()
    secret = WEBHOOK_SECRET or request.headers.get("x-webhook-secret")
    user_id = request.headers.get("x-user-id")

    if secret:
        valid = verify_signature(
            source,
            body,
            secret,
            extract_signature(request.headers),
            extract_timestamp(request.headers),
        )
        if not valid:
            logger.warning("Signature verification failed for %s webhook", source)
            raise HTTPException(status_code=401, detail="Signature verification failed")

    # Slack's endpoint handshake expects the challenge echoed back as-is
    if source == "slack" and isinstance(payload, dict) and payload.get("type") == "url_verification":
        return JSONResponse({"challenge": payload.get("challenge")})

    parsed = parse_payload(source, payload)
    if parsed is None:
        logger.warning("Unable to parse payload for source: %s", source)
        raise HTTPException(status_code=422, detail=f"Unable to parse payload for source type: {source}")

    event_type, event_payload = parsed
    event = await store.event_bus.publish(event_type, event_payload, source="webhook", user_id=user_id)

    return ok({
        "event_id": event.id,
        "event_type": event.type,
        "source": source,
        "timestamp": event.timestamp,
    })
