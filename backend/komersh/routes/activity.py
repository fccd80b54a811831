# Overview: Flask API routes for the activity log and per-user notifications.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..services import activity_service, notification_service

activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity-log")
notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@activity_bp.get("")
@require_auth
@require_capability("VIEW_ACTIVITY")
def list_activity():
    limit = request.args.get("limit", default=activity_service.ACTIVITY_LIMIT, type=int)
    return activity_service.list_recent(limit)


@notifications_bp.get("")
@require_auth
def list_notifications():
    return notification_service.list_for_user(g.current_user.id)


@notifications_bp.get("/unread-count")
@require_auth
def unread_count():
    return {"count": notification_service.unread_count(g.current_user.id)}


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read(notification_id: int):
    return notification_service.mark_read(notification_id, g.current_user.id)


@notifications_bp.post("/mark-all-read")
@require_auth
def mark_all_read():
    return {"updated": notification_service.mark_all_read(g.current_user.id)}
