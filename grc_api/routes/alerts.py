"""
/api/alerts -- System-wide alerts.

Alerts are not per user. Dismissing hides an alert from the active list
but keeps it until it is cleared.
"""

from fastapi import APIRouter, HTTPException, Query

from grc_api import store
from grc_api.models.schemas import (
    AlertPriority,
    AlertType,
    ApiResponse,
    CreateAlertRequest,
    DismissAlertRequest,
    ok,
)

router = APIRouter()


@router.get(
    "/api/alerts",
    response_model=ApiResponse,
    summary="List active alerts",
    description="Newest first, with counts per priority over all active alerts.",
    tags=["Alerts"],
)
async def list_alerts(
    priority: AlertPriority | None = None,
    type: AlertType | None = None,
    limit: int = Query(default=50, ge=1),
) -> ApiResponse:
    manager = store.alert_manager
    alerts = manager.get_active_alerts()
    if priority:
        alerts = [a for a in alerts if a.priority == priority]
    if type:
        alerts = [a for a in alerts if a.type == type]
    page = alerts[:limit]

    return ok({
        "alerts": page,
        "stats": manager.get_stats(),
        "total": len(alerts),
        "returned": len(page),
        "filters": {"priority": priority or "all", "type": type or "all", "limit": limit},
    })


@router.post(
    "/api/alerts",
    response_model=ApiResponse,
    status_code=201,
    summary="Raise an alert",
    tags=["Alerts"],
)
async def create_alert(request: CreateAlertRequest) -> ApiResponse:
    alert = store.alert_manager.create_alert(
        request.type,
        request.priority,
        request.title,
        request.message,
        action_url=request.action_url,
    )
    return ok(alert)


@router.patch(
    "/api/alerts",
    response_model=ApiResponse,
    summary="Dismiss alerts",
    description="Dismiss one alert by `alert_id`, or every alert of a `priority`.",
    tags=["Alerts"],
)
async def dismiss_alerts(request: DismissAlertRequest) -> ApiResponse:
    manager = store.alert_manager

    if request.alert_id:
        if not manager.dismiss_alert(request.alert_id):
            raise HTTPException(status_code=404, detail=f"Alert '{request.alert_id}' not found")
        return ok({"alert_id": request.alert_id, "dismissed": True})

    if request.priority:
        count = manager.dismiss_alerts_by_priority(request.priority)
        return ok({"priority": request.priority, "dismissed": count})

    raise HTTPException(status_code=400, detail="Provide alert_id or priority")


@router.delete(
    "/api/alerts",
    response_model=ApiResponse,
    summary="Clear alerts",
    description="`alert_id` removes one alert, `dismissed=true` removes every dismissed alert, `all=true` removes everything.",
    tags=["Alerts"],
)
async def clear_alerts(
    alert_id: str | None = None,
    dismissed: bool = False,
    clear_all: bool = Query(default=False, alias="all"),
) -> ApiResponse:
    manager = store.alert_manager

    if clear_all:
        manager.clear_all_alerts()
        return ok({"action": "clear_all", "cleared": True})
    if dismissed:
        return ok({"action": "clear_dismissed", "cleared": manager.clear_dismissed_alerts()})
    if alert_id:
        return ok({"action": "delete_alert", "alert_id": alert_id, "deleted": manager.clear_alert(alert_id)})

    raise HTTPException(status_code=400, detail="Provide alert_id, dismissed=true or all=true")
