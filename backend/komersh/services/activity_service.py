# Overview: Service-layer operations for the activity log.

from __future__ import annotations

from ..extensions import db
from ..models import ActivityLog

# GET /api/activity-log returns at most this many entries
ACTIVITY_LIMIT = 100


def record(
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: str | None = None,
    user_id: int | None = None,
) -> ActivityLog:
    """
    Stage an activity entry in the current transaction.

    Does not commit; the caller's transaction commits the entry together
    with the change it describes.
    """
    entry = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        user_id=user_id,
    )
    db.session.add(entry)
    return entry


def list_recent(limit: int = ACTIVITY_LIMIT) -> list[dict]:
    limit = max(1, min(limit, ACTIVITY_LIMIT))
    rows = (
        db.session.query(ActivityLog)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
    return [r.to_dict() for r in rows]
