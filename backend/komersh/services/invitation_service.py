# Overview: Service-layer operations for email invitations.

"""
Invitations.

An admin invites an email address with a role. The emailed token is random;
only its SHA-256 is stored. Accepting creates (or reactivates) the user with
the invitation's role. Redemption is a conditional UPDATE on used = false,
so a replayed or concurrently redeemed token fails.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy import update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Invitation, User
from ..permissions import ROLE_VALUES
from ..time_utils import utcnow
from . import activity_service, auth_service, email_service
from .concurrency import atomic
from .session_service import generate_token, hash_token

logger = logging.getLogger(__name__)


def _lifetime() -> timedelta:
    return timedelta(days=current_app.config.get("INVITATION_LIFETIME_DAYS", 7))


def _validate_role(role: str | None) -> str:
    if role not in ROLE_VALUES:
        raise ValidationError(f"role must be one of: {', '.join(ROLE_VALUES)}", field="role")
    return role


def _inviter_name(user: User | None) -> str | None:
    if user is None:
        return None
    full = " ".join(p for p in (user.first_name, user.last_name) if p)
    return full or user.email


def _send(invitation: Invitation, token: str, invited_by: User | None) -> bool:
    sent = email_service.send_invitation_email(invitation.email, token, invitation.role, _inviter_name(invited_by))
    if not sent:
        logger.error("Invitation email to %s was not delivered", invitation.email)
    return sent


def list_invitations() -> list[dict]:
    rows = db.session.query(Invitation).order_by(Invitation.created_at.desc(), Invitation.id.desc()).all()
    return [r.to_dict() for r in rows]


def create_invitation(email: str, role: str, invited_by: User | None = None) -> dict:
    """
    Invite an email address. A previous used or expired invitation for the
    same address is reissued; a still-pending one is a conflict.
    """
    email = auth_service.normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid email is required", field="email")
    role = _validate_role(role)

    existing_user = db.session.query(User).filter_by(email=email).first()
    if existing_user is not None and existing_user.is_active:
        raise ConflictError("A user with this email already exists", field="email")

    token = generate_token()
    invitation = db.session.query(Invitation).filter_by(email=email).first()
    if invitation is not None and invitation.status == "pending":
        raise ConflictError("An invitation is already pending for this email", field="email")

    if invitation is None:
        invitation = Invitation(email=email)
        db.session.add(invitation)

    invitation.role = role
    invitation.invited_by_user_id = invited_by.id if invited_by else None
    invitation.token_hash = hash_token(token)
    invitation.used = False
    invitation.used_at = None
    invitation.expires_at = utcnow() + _lifetime()
    db.session.flush()

    activity_service.record("invited", "invitation", invitation.id, f"{email} as {role}",
                            invited_by.id if invited_by else None)
    db.session.commit()

    sent = _send(invitation, token, invited_by)
    return {**invitation.to_dict(), "emailSent": sent}


def resend_invitation(invitation_id: int, invited_by: User | None = None) -> dict:
    """Issue a fresh token and expiry; the old link stops working."""
    invitation = db.session.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.used:
        raise ConflictError("Invitation has already been used")

    token = generate_token()
    invitation.token_hash = hash_token(token)
    invitation.expires_at = utcnow() + _lifetime()
    activity_service.record("invitation_resent", "invitation", invitation.id, invitation.email,
                            invited_by.id if invited_by else None)
    db.session.commit()

    sent = _send(invitation, token, invited_by)
    return {**invitation.to_dict(), "emailSent": sent}


def delete_invitation(invitation_id: int, user_id: int | None = None) -> None:
    invitation = db.session.get(Invitation, invitation_id)
    if invitation is None:
        raise NotFoundError("Invitation not found")
    activity_service.record("invitation_revoked", "invitation", invitation.id, invitation.email, user_id)
    db.session.delete(invitation)
    db.session.commit()


def get_pending_by_token(token: str | None) -> Invitation:
    if not token:
        raise ValidationError("token is required", field="token")
    if not isinstance(token, str):
        raise ValidationError("token must be a string", field="token")
    invitation = db.session.query(Invitation).filter_by(token_hash=hash_token(token)).first()
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.used:
        raise ConflictError("Invitation has already been used")
    if invitation.is_expired:
        raise ConflictError("Invitation has expired")
    return invitation


def verify_invitation(token: str | None) -> dict:
    invitation = get_pending_by_token(token)
    return {
        "email": invitation.email,
        "role": invitation.role,
        "expiresAt": invitation.to_dict()["expiresAt"],
    }


def _mark_used(invitation: Invitation) -> bool:
    """Conditional flip of used; False if someone else got there first or it expired."""
    now = utcnow()
    result = db.session.execute(
        update(Invitation)
        .where(
            Invitation.id == invitation.id,
            Invitation.used.is_(False),
            Invitation.expires_at > now,
        )
        .values(used=True, used_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def accept_invitation(
    token: str | None,
    password: str | None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """Redeem an invitation with a local password. Returns the (new or reactivated) user."""
    auth_service.validate_password_strength(password)

    with atomic():
        invitation = get_pending_by_token(token)
        if not _mark_used(invitation):
            raise ConflictError("Invitation has already been used")

        user = db.session.query(User).filter_by(email=invitation.email).first()
        if user is None:
            user = auth_service.create_user(
                invitation.email,
                password=password,
                role=invitation.role,
                first_name=first_name,
                last_name=last_name,
            )
        else:
            user.password_hash = auth_service.hash_password(password)
            user.role = invitation.role
            user.is_active = True
            user.first_name = first_name or user.first_name
            user.last_name = last_name or user.last_name

        activity_service.record("invitation_accepted", "user", user.id, user.email, user.id)

    logger.info("Invitation %s accepted by %s", invitation.id, invitation.email)
    return user


def redeem_for_email(email: str) -> Invitation | None:
    """
    Redeem the pending invitation for an email during identity-provider login.
    Returns the invitation if this call redeemed it. Does not commit.
    """
    invitation = (
        db.session.query(Invitation)
        .filter(Invitation.email == email, Invitation.used.is_(False), Invitation.expires_at > utcnow())
        .first()
    )
    if invitation is None or not _mark_used(invitation):
        return None
    return invitation
