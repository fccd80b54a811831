# Overview: Service-layer operations for in-app notifications.

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Notification, User

NOTIFICATION_LIMIT = 50


def notify(
    user_id: int,
    type: str,
    title: str,
    message: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
) -> Notification:
    """Stage a notification for one user. The caller commits."""
    note = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        entity_type=entity_type,
        entity_id=entity_id,
        is_read=False,
    )
    db.session.add(note)
    return note


def notify_team(
    *,
    exclude_user_id: int | None,
    type: str,
    title: str,
    message: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
) -> int:
    """Stage the same notification for every active user except the actor."""
    query = db.session.query(User.id).filter(User.is_active.is_(True))
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)

    count = 0
    for (user_id,) in query.all():
        notify(user_id, type, title, message, entity_type, entity_id)
        count += 1
    return count


def list_for_user(user_id: int, limit: int = NOTIFICATION_LIMIT) -> list[dict]:
    rows = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )
    return [r.to_dict() for r in rows]


def unread_count(user_id: int) -> int:
    return (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(notification_id: int, user_id: int) -> dict:
    note = db.session.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
    if note is None:
        raise NotFoundError("Notification not found")
    note.is_read = True
    db.session.commit()
    return note.to_dict()


def mark_all_read(user_id: int) -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated
