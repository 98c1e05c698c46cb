"""
Event Bus

In-process pub/sub for cross-module communication. publish() records the
event in a bounded history, writes an audit entry (best effort), then
hands the event to every subscriber of that type in subscription order.

Delivery is fire-and-forget: a handler that raises is logged and skipped,
there is no retry, and the event is never persisted. History keeps the
newest HISTORY_SIZE events, newest first.
"""

import inspect
import logging
import secrets
import string
import time
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from grc_api.core.audit_logger import AuditLogger
from grc_api.models.schemas import (
    EVENT_PAYLOAD_MODELS,
    Event,
    EventStatistics,
    EventType,
)

logger = logging.getLogger(__name__)

HISTORY_SIZE = 50

EventHandler = Callable[[Event], Awaitable[None] | None]

_ID_ALPHABET = string.ascii_lowercase + string.digits

EVENT_DESCRIPTIONS = {
    EventType.agent_completed: "Agent execution completed",
    EventType.agent_failed: "Agent execution failed",
    EventType.risk_threshold: "Risk threshold triggered",
    EventType.compliance_change: "Compliance status changed",
    EventType.travel_alert: "Travel alert issued",
    EventType.crm_update: "CRM record updated",
    EventType.assessment_due: "Assessment due reminder",
    EventType.framework_updated: "Framework updated",
}

AUDIT_CATEGORIES = {
    EventType.agent_completed: "agent",
    EventType.agent_failed: "agent",
    EventType.compliance_change: "compliance",
    EventType.framework_updated: "compliance",
    EventType.assessment_due: "compliance",
    EventType.risk_threshold: "advisory",
    EventType.travel_alert: "advisory",
    EventType.crm_update: "crm",
}

AUDIT_SEVERITIES = {
    EventType.agent_failed: "warning",
    EventType.risk_threshold: "warning",
    EventType.travel_alert: "critical",
}


def parse_event_type(value: str | EventType) -> EventType:
    """Raises ValueError listing the valid types."""
    try:
        return EventType(value)
    except ValueError:
        valid = ", ".join(t.value for t in EventType)
        raise ValueError(f"Invalid event type: {value}. Must be one of: {valid}") from None


def validate_payload(event_type: str | EventType, payload: dict[str, Any]) -> dict[str, Any]:
    """Check the required fields for an event type.

    Returns the payload with values coerced to their declared types.
    Raises ValueError with a readable message on failure."""
    event_type = parse_event_type(event_type)
    model = EVENT_PAYLOAD_MODELS[event_type]
    try:
        return model.model_validate(payload).model_dump(mode="json")
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ValueError(f"Invalid payload for {event_type.value}: {problems}") from None


def _event_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"evt-{int(time.time() * 1000)}-{suffix}"


class EventBus:

    def __init__(self, audit_logger: AuditLogger | None = None, history_size: int = HISTORY_SIZE):
        self.audit_logger = audit_logger
        self._handlers: dict[EventType, list[EventHandler]] = {t: [] for t in EventType}
        # Newest first; deque drops from the right once full
        self._history: deque[Event] = deque(maxlen=history_size)

    # ── Subscriptions ──────────────────────────────────────────────

    def subscribe(self, event_type: str | EventType, handler: EventHandler) -> Callable[[], None]:
        """Register a handler. Returns a function that removes it again."""
        handlers = self._handlers[parse_event_type(event_type)]
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscribe_multiple(
        self,
        event_types: list[str | EventType],
        handler: EventHandler,
    ) -> Callable[[], None]:
        unsubscribers = [self.subscribe(t, handler) for t in event_types]

        def unsubscribe_all() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return unsubscribe_all

    def subscriber_count(self, event_type: str | EventType) -> int:
        return len(self._handlers[parse_event_type(event_type)])

    # ── Publishing ─────────────────────────────────────────────────

    async def publish(
        self,
        event_type: str | EventType,
        payload: dict[str, Any],
        source: str = "system",
        user_id: str | None = None,
    ) -> Event:
        event = Event(
            id=_event_id(),
            type=parse_event_type(event_type),
            payload=payload,
            source=source,
            user_id=user_id,
        )

        self._history.appendleft(event)

        try:
            self._log_to_audit(event)
        except Exception as e:
            logger.warning("Failed to log event %s to audit: %s", event.id, e)

        # Snapshot so handlers may unsubscribe while being called
        for handler in list(self._handlers[event.type]):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in handler for %s", event.type.value)

        logger.info("Published %s (%s) from %s", event.type.value, event.id, event.source)
        return event

    def _log_to_audit(self, event: Event) -> None:
        if self.audit_logger is None:
            return

        self.audit_logger.log(
            user_id=event.user_id or "system",
            action=event.type.value,
            category=AUDIT_CATEGORIES.get(event.type, "system"),
            severity=AUDIT_SEVERITIES.get(event.type, "info"),
            entity_type=event.type.value.split(".")[0],
            description=EVENT_DESCRIPTIONS[event.type],
            metadata={
                "event_id": event.id,
                "event_source": event.source,
                **event.payload,
            },
            # The audit log has no webhook source; inbound webhooks are API traffic
            source="api" if event.source == "webhook" else event.source,
        )

    # ── History ────────────────────────────────────────────────────

    def get_history(
        self,
        event_type: str | EventType | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[Event]:
        """Newest first. limit keeps the newest N matching events."""
        history = list(self._history)

        if event_type:
            wanted = parse_event_type(event_type)
            history = [e for e in history if e.type == wanted]
        if since:
            history = [e for e in history if e.timestamp >= since]
        if limit:
            history = history[:limit]

        return history

    def get_event(self, event_id: str) -> Event | None:
        return next((e for e in self._history if e.id == event_id), None)

    def clear_history(self) -> None:
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)

    def get_statistics(self) -> EventStatistics:
        by_type = {t.value: 0 for t in EventType}
        by_source: dict[str, int] = {}

        for event in self._history:
            by_type[event.type.value] += 1
            by_source[event.source] = by_source.get(event.source, 0) + 1

        return EventStatistics(
            total_events=len(self._history),
            by_type=by_type,
            by_source=by_source,
            oldest_event=self._history[-1].timestamp if self._history else None,
            newest_event=self._history[0].timestamp if self._history else None,
        )
