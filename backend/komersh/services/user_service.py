# Overview: Service-layer operations for user administration and self-service account changes.

from __future__ import annotations

import logging

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import ROLE_VALUES
from . import activity_service, auth_service, session_service

logger = logging.getLogger(__name__)

PROFILE_MUTABLE_FIELDS = {"first_name", "last_name", "profile_image_url"}


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(include_inactive: bool = True) -> list[dict]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return [u.to_dict() for u in query.order_by(User.id.asc()).all()]


def change_role(user_id: int, role: str, actor: User) -> dict:
    if role not in ROLE_VALUES:
        raise ValidationError(f"role must be one of: {', '.join(ROLE_VALUES)}", field="role")
    user = get_user(user_id)
    previous = user.role
    user.role = role
    activity_service.record("role_changed", "user", user.id, f"{previous} -> {role}", actor.id)
    db.session.commit()
    return user.to_dict()


def deactivate_user(user_id: int, actor: User) -> dict:
    """Deactivate an account and revoke all of its sessions. Admins cannot deactivate themselves."""
    if user_id == actor.id:
        raise ValidationError("You cannot deactivate your own account")
    user = get_user(user_id)
    user.is_active = False
    activity_service.record("deactivated", "user", user.id, user.email, actor.id)
    db.session.commit()

    revoked = session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
    logger.info("Deactivated user %s, revoked %s sessions", user.id, revoked)
    return user.to_dict()


def reactivate_user(user_id: int, actor: User) -> dict:
    user = get_user(user_id)
    user.is_active = True
    activity_service.record("reactivated", "user", user.id, user.email, actor.id)
    db.session.commit()
    return user.to_dict()


def update_profile(user: User, patch: dict) -> dict:
    for k, v in patch.items():
        if k in PROFILE_MUTABLE_FIELDS:
            setattr(user, k, v)
    db.session.commit()
    return user.to_dict()


def change_password(
    user: User,
    *,
    current_password: str | None,
    new_password: str | None,
    confirm_password: str | None,
    keep_token: str | None = None,
) -> None:
    """
    Set a new local password. The current password is required when the
    account already has one. Other sessions of the user are revoked.
    """
    if user.password_hash is not None and not auth_service.verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect", field="currentPassword")
    auth_service.validate_password_strength(new_password, field="newPassword")
    if new_password != confirm_password:
        raise ValidationError("Passwords do not match", field="confirmPassword")

    user.password_hash = auth_service.hash_password(new_password, field="newPassword")
    activity_service.record("password_changed", "user", user.id, None, user.id)
    db.session.commit()

    session_service.revoke_all_user_sessions(user.id, reason="Password changed", keep_token=keep_token)
