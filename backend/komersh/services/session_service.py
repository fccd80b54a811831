# Overview: Service-layer operations for server-side auth sessions.

"""
Session token management.

The browser holds a random token in the komersh.sid cookie; the database
holds only its SHA-256 hash. A session row is backed by exactly one
credential source:

- 'local': email/password login, no provider tokens stored
- 'oidc': identity-provider login, carries the provider token set

Sessions expire after SESSION_LIFETIME_DAYS and are revocable on logout,
deactivation, password change or a failed token refresh.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import AuthSession
from ..time_utils import utcnow

SESSION_SOURCES = ("oidc", "local")


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _lifetime() -> timedelta:
    return timedelta(days=current_app.config.get("SESSION_LIFETIME_DAYS", 7))


def create_session(user_id: int, source: str, token_set=None) -> tuple[AuthSession, str]:
    """
    Create a session for a user.

    OIDC sessions require a token set; local sessions must not have one.
    Returns (session_record, plaintext_token).
    """
    if source not in SESSION_SOURCES:
        raise ValueError(f"Unknown session source: {source}")
    if source == "oidc" and token_set is None:
        raise ValueError("OIDC sessions require a token set")
    if source == "local" and token_set is not None:
        raise ValueError("Local sessions cannot carry provider tokens")

    plaintext_token = generate_token()
    now = utcnow()

    session = AuthSession(
        token_hash=hash_token(plaintext_token),
        source=source,
        user_id=user_id,
        created_at=now,
        last_used_at=now,
        expires_at=now + _lifetime(),
        is_revoked=False,
    )
    if token_set is not None:
        apply_token_set(session, token_set)

    db.session.add(session)
    db.session.commit()
    return session, plaintext_token


def apply_token_set(session: AuthSession, token_set) -> None:
    """Copy a provider token set onto the session. A refresh without new claims keeps the old ones."""
    if token_set.claims is not None:
        session.claims = dict(token_set.claims)
    session.access_token = token_set.access_token
    if token_set.refresh_token:
        session.refresh_token = token_set.refresh_token
    if token_set.id_token:
        session.id_token = token_set.id_token
    session.token_expires_at = token_set.expires_at


def get_active_session(token: str | None) -> AuthSession | None:
    """Session for a cookie token, or None if unknown, revoked or expired."""
    if not token:
        return None

    session = db.session.query(AuthSession).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if session is None:
        return None

    if session.expires_at < utcnow():
        return None
    return session


def touch(session: AuthSession) -> None:
    session.last_used_at = utcnow()
    db.session.commit()


def revoke(session: AuthSession, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def revoke_session(token: str | None, reason: str = "User logout") -> AuthSession | None:
    """
    Revoke the session behind a cookie token.

    Returns the revoked session (so callers can read its provider tokens), or None.
    """
    session = get_active_session(token)
    if session is None:
        return None
    revoke(session, reason)
    return session


def revoke_all_user_sessions(user_id: int, reason: str, keep_token: str | None = None) -> int:
    """Revoke every active session for a user, optionally sparing the caller's own."""
    query = db.session.query(AuthSession).filter_by(user_id=user_id, is_revoked=False)
    if keep_token:
        query = query.filter(AuthSession.token_hash != hash_token(keep_token))

    now = utcnow()
    count = 0
    for session in query.all():
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason
        count += 1

    db.session.commit()
    return count


def cleanup_expired_sessions(retention_days: int = 30) -> int:
    """Delete expired or revoked sessions older than the retention window."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(AuthSession).filter(
        db.or_(
            AuthSession.expires_at < utcnow(),
            AuthSession.is_revoked.is_(True),
        ),
        AuthSession.created_at < cutoff,
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
