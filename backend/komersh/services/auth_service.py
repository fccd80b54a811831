# Overview: Service-layer operations for auth; passwords, local login and per-request identity.

"""
Authentication.

Passwords are hashed with bcrypt (BCRYPT_ROUNDS, default 12) and must be at
least 8 characters. resolve_identity() turns a session cookie token into an
Identity (source, user, claims) for the current request, refreshing provider
tokens on OIDC sessions whose access token has expired.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import bcrypt
from flask import current_app

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import DEFAULT_ROLE, capabilities_for_role
from ..time_utils import utcnow
from . import oidc_service, session_service

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet the length rule."""


@dataclass(frozen=True)
class Identity:
    """Who is making the request, and through which credential source."""
    source: str
    user: User
    claims: dict

    @property
    def capabilities(self) -> frozenset:
        return capabilities_for_role(self.user.role)

    def to_dict(self) -> dict:
        user = self.user
        return {
            "id": user.id,
            "email": user.email,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "profileImageUrl": user.profile_image_url,
            "role": user.role,
            "isActive": user.is_active,
            "authSource": self.source,
            "capabilities": sorted(self.capabilities),
        }


def normalize_email(email: str | None) -> str:
    if not isinstance(email, str):
        return ""
    return email.strip().lower()


def validate_password_strength(password: str | None, field: str = "password") -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long", field=field
        )


def hash_password(password: str, field: str = "password") -> str:
    """Validate then bcrypt-hash a password for storage."""
    validate_password_strength(password, field)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not isinstance(password, str) or not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        logger.warning("Unreadable password hash encountered")
        return False


def authenticate(email: str, password: str) -> User | None:
    """
    Check local credentials. Returns the user, or None for unknown email,
    wrong password, password-less (OIDC-only) or deactivated accounts.
    """
    user = db.session.query(User).filter_by(email=normalize_email(email), is_active=True).first()
    if user is None or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def create_user(
    email: str,
    password: str | None = None,
    role: str = DEFAULT_ROLE.value,
    first_name: str | None = None,
    last_name: str | None = None,
    oidc_subject: str | None = None,
) -> User:
    """Create a user. Raises ConflictError on duplicate email. Does not commit."""
    email = normalize_email(email)
    if not email:
        raise ValidationError("email is required", field="email")
    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise ConflictError("A user with this email already exists", field="email")

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        oidc_subject=oidc_subject,
        password_hash=hash_password(password) if password else None,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def local_claims(user: User) -> dict:
    return {
        "sub": str(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "profile_image_url": user.profile_image_url,
    }


def resolve_identity(token: str | None) -> Identity | None:
    """
    Resolve a session cookie token to an Identity, or None.

    Inactive users resolve to None (and their session is revoked). An OIDC
    session whose access token has expired is refreshed; if refreshing is
    impossible or fails, the session is revoked and None is returned.
    """
    session = session_service.get_active_session(token)
    if session is None:
        return None

    user = session.user
    if user is None or not user.is_active:
        session_service.revoke(session, "User account deactivated")
        return None

    if session.source == "oidc":
        if session.token_expires_at is not None and time.time() >= session.token_expires_at:
            if not session.refresh_token:
                session_service.revoke(session, "Access token expired")
                return None
            try:
                token_set = oidc_service.refresh_tokens(session.refresh_token)
            except oidc_service.OidcError:
                logger.warning("Token refresh failed for session %s", session.id, exc_info=True)
                session_service.revoke(session, "Token refresh failed")
                return None
            session_service.apply_token_set(session, token_set)
        claims = dict(session.claims or {})
    else:
        claims = local_claims(user)

    session_service.touch(session)
    return Identity(source=session.source, user=user, claims=claims)


def upsert_oidc_user(claims: dict) -> User:
    """
    Find or create the user behind provider claims.

    Matches on subject first, then on email (linking the subject). A pending
    invitation for the email is redeemed and its role applied. Does not commit.
    """
    from . import invitation_service

    subject = claims.get("sub")
    if not subject:
        raise ValidationError("Identity token has no subject")
    email = normalize_email(claims.get("email"))

    user = db.session.query(User).filter_by(oidc_subject=subject).first()
    if user is None and email:
        user = db.session.query(User).filter_by(email=email).first()
        if user is not None:
            user.oidc_subject = subject

    if user is None:
        if not email:
            raise ValidationError("Identity token has no email")
        user = User(email=email, oidc_subject=subject, role=DEFAULT_ROLE.value, is_active=True)
        db.session.add(user)
    elif email and user.email != email:
        user.email = email

    user.first_name = claims.get("first_name") or user.first_name
    user.last_name = claims.get("last_name") or user.last_name
    user.profile_image_url = claims.get("profile_image_url") or user.profile_image_url
    user.last_login_at = utcnow()

    if email:
        invitation = invitation_service.redeem_for_email(email)
        if invitation is not None:
            user.role = invitation.role
            user.is_active = True

    db.session.flush()
    return user
