"""
/api/events -- Platform event bus.

GET lists recent events (newest first) with bus statistics.
POST validates a payload against its event type and publishes it to
every subscriber. History is in memory and holds the last 50 events.
"""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query

from grc_api import store
from grc_api.core.event_bus import parse_event_type, validate_payload
from grc_api.models.schemas import ApiResponse, EventSource, PublishEventRequest, as_utc, ok

router = APIRouter()

MAX_LIMIT = 100
DEFAULT_LIMIT = 50


@router.get(
    "/api/events",
    response_model=ApiResponse,
    summary="List recent events",
    description=(
        "Newest first. Filter by type, source and an ISO-8601 `since`. "
        "`limit` is capped at 100; only the last 50 events are retained anyway."
    ),
    tags=["Events"],
)
async def list_events(
    type: str | None = Query(default=None, examples=["risk.threshold"]),
    source: EventSource | None = None,
    since: datetime | None = None,
    limit: int = Query(default=DEFAULT_LIMIT, ge=1),
) -> ApiResponse:
    try:
        event_type = parse_event_type(type) if type else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    events = store.event_bus.get_history(event_type=event_type, since=as_utc(since))
    if source:
        events = [e for e in events if e.source == source]
    events = events[:min(limit, MAX_LIMIT)]

    return ok({
        "events": events,
        "total": len(events),
        "filters": {
            "type": type or "all",
            "source": source or "all",
            "since": since.isoformat() if since else "none",
            "limit": limit,
        },
        "statistics": store.event_bus.get_statistics(),
    })


@router.post(
    "/api/events",
    response_model=ApiResponse,
    status_code=201,
    summary="Publish an event",
    description=(
        "The payload is checked for the fields its event type requires. "
        "Subscribers run in order; a failing subscriber does not stop the others."
    ),
    tags=["Events"],
)
async def publish_event(request: PublishEventRequest) -> ApiResponse:
    try:
        payload = validate_payload(request.type, request.payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    event = await store.event_bus.publish(
        request.type,
        payload,
        source=request.source,
        user_id=request.user_id,
    )

    return ok({
        "event_id": event.id,
        "event_type": event.type,
        "timestamp": event.timestamp,
        "source": event.source,
    })
