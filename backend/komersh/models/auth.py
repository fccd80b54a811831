from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    A person who can sign in.

    A user may have a local password (password_hash), an identity-provider
    subject (oidc_subject), or both. Deactivated users keep their rows so
    history stays attributable, but can no longer authenticate.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.UniqueConstraint("oidc_subject", name="uq_users_oidc_subject"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(128), nullable=True)
    last_name = db.Column(db.String(128), nullable=True)
    profile_image_url = db.Column(db.String(1024), nullable=True)

    # Bcrypt hashed password; null for identity-provider-only accounts
    password_hash = db.Column(db.String(255), nullable=True)
    oidc_subject = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(32), nullable=False, default="viewer")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "profileImageUrl": self.profile_image_url,
            "role": self.role,
            "isActive": self.is_active,
            "hasPassword": self.password_hash is not None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "lastLoginAt": to_utc_z(self.last_login_at),
        }


class Invitation(db.Model):
    """
    Email invitation to join with a given role.

    Only the SHA-256 of the emailed token is stored. Redemption flips used
    with a conditional UPDATE so a token can be redeemed at most once.
    """
    __tablename__ = "invitations"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_invitations_email"),
        db.UniqueConstraint("token_hash", name="uq_invitations_token_hash"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="viewer")
    invited_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    token_hash = db.Column(db.String(64), nullable=False)
    used = db.Column(db.Boolean, nullable=False, default=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invited_by = db.relationship("User", foreign_keys=[invited_by_user_id])

    @property
    def is_expired(self) -> bool:
        return self.expires_at < utcnow()

    @property
    def status(self) -> str:
        if self.used:
            return "accepted"
        if self.is_expired:
            return "expired"
        return "pending"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "invitedByUserId": self.invited_by_user_id,
            "used": self.used,
            "usedAt": to_utc_z(self.used_at),
            "expiresAt": to_utc_z(self.expires_at),
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
        }


class AuthSession(db.Model):
    """
    Server-side session referenced by the komersh.sid cookie.

    source is 'oidc' or 'local'. OIDC sessions carry the provider token set
    (claims, access/refresh/id tokens, access-token expiry as epoch seconds);
    local sessions leave those columns null.
    """
    __tablename__ = "auth_sessions"
    __table_args__ = (
        db.Index("ix_auth_sessions_user_revoked", "user_id", "is_revoked"),
        db.CheckConstraint("source IN ('oidc', 'local')", name="ck_auth_sessions_source"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    source = db.Column(db.String(8), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    claims = db.Column(db.JSON, nullable=True)
    access_token = db.Column(db.Text, nullable=True)
    refresh_token = db.Column(db.Text, nullable=True)
    id_token = db.Column(db.Text, nullable=True)
    token_expires_at = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user = db.relationship("User", backref=db.backref("auth_sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "userId": self.user_id,
            "createdAt": to_utc_z(self.created_at),
            "lastUsedAt": to_utc_z(self.last_used_at),
            "expiresAt": to_utc_z(self.expires_at),
            "isRevoked": self.is_revoked,
        }
