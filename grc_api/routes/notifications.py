"""
/api/notifications -- Per-user notification inbox.

GET lists a user's notifications (newest first) with unread count and
stats, POST sends to one user or broadcasts to an org, PATCH marks one
or all as read, DELETE clears a user's inbox.
"""

from fastapi import APIRouter, HTTPException, Query

from grc_api import store
from grc_api.core.notifications import LIST_PAGE_SIZE
from grc_api.models.schemas import (
    ApiResponse,
    MarkReadRequest,
    NotificationSeverity,
    NotificationType,
    SendNotificationRequest,
    ok,
)

router = APIRouter()


@router.get(
    "/api/notifications",
    response_model=ApiResponse,
    summary="List a user's notifications",
    description="Filter by type, severity and read state. Paged with limit (default 20) and offset.",
    tags=["Notifications"],
)
async def list_notifications(
    user_id: str = Query(min_length=1, examples=["user_1"]),
    type: NotificationType | None = None,
    severity: NotificationSeverity | None = None,
    read: bool | None = None,
    limit: int = Query(default=LIST_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> ApiResponse:
    engine = store.notification_engine
    notifications = engine.get_notification_history(
        user_id, type=type, severity=severity, read=read, limit=limit, offset=offset
    )
    return ok({
        "notifications": notifications,
        "unread_count": engine.get_unread_count(user_id),
        "stats": engine.get_notification_stats(user_id),
        "pagination": {"limit": limit, "offset": offset, "returned": len(notifications)},
    })


@router.post(
    "/api/notifications",
    response_model=ApiResponse,
    status_code=201,
    summary="Send or broadcast a notification",
    description=(
        "With `user_id`, sends to that user (tagged with `org_id` if given). "
        "With only `org_id`, sends one copy to every user already known in that org."
    ),
    tags=["Notifications"],
)
async def send_notification(request: SendNotificationRequest) -> ApiResponse:
    engine = store.notification_engine

    if request.user_id:
        notification = engine.send_notification(
            request.user_id,
            request.type,
            request.title,
            request.message,
            request.severity,
            action_url=request.action_url,
            metadata=request.metadata,
            org_id=request.org_id,
        )
        return ok(notification)

    if request.org_id:
        sent = engine.broadcast_to_org(
            request.org_id,
            request.type,
            request.title,
            request.message,
            request.severity,
            action_url=request.action_url,
            metadata=request.metadata,
        )
        return ok({"org_id": request.org_id, "sent": len(sent), "notifications": sent})

    raise HTTPException(status_code=400, detail="Provide user_id or org_id")


@router.patch(
    "/api/notifications",
    response_model=ApiResponse,
    summary="Mark notifications read",
    description="`notification_id` marks one notification; `user_id` alone marks all of that user's.",
    tags=["Notifications"],
)
async def mark_read(request: MarkReadRequest) -> ApiResponse:
    engine = store.notification_engine

    if request.notification_id:
        notification = engine.mark_as_read(request.notification_id)
        if notification is None:
            raise HTTPException(
                status_code=404,
                detail=f"Notification '{request.notification_id}' not found",
            )
        return ok(notification)

    if request.user_id:
        return ok({"user_id": request.user_id, "marked_read": engine.mark_all_read(request.user_id)})

    raise HTTPException(status_code=400, detail="Provide notification_id or user_id")


@router.delete(
    "/api/notifications",
    response_model=ApiResponse,
    summary="Clear a user's notifications",
    tags=["Notifications"],
)
async def clear_notifications(user_id: str = Query(min_length=1)) -> ApiResponse:
    return ok({"user_id": user_id, "cleared": store.notification_engine.clear_notifications(user_id)})
