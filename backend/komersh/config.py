# backend/komersh/config.py
from __future__ import annotations
import os


class ConfigError(RuntimeError):
    """Raised at startup when a required setting is missing."""


# Settings the app refuses to start without, mapped to the env var that feeds them
REQUIRED_SETTINGS = {
    "SECRET_KEY": "SESSION_SECRET",
    "SQLALCHEMY_DATABASE_URI": "DATABASE_URL",
}


def _normalize_database_url(url: str | None) -> str | None:
    # Heroku/Railway style URLs still use the legacy scheme
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


class Config:
    """
    Environment-backed settings.

    Values are read when the object is instantiated (inside create_app), so
    tests and CLI invocations see the environment as it is at startup.
    """

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 10MB request ceiling (multer limit in the old Node server)
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    AUTH_COOKIE_NAME = "komersh.sid"
    SESSION_LIFETIME_DAYS = 7
    INVITATION_LIFETIME_DAYS = 7

    def __init__(self):
        self.SECRET_KEY = os.environ.get("SESSION_SECRET")
        self.SQLALCHEMY_DATABASE_URI = _normalize_database_url(os.environ.get("DATABASE_URL"))

        self.APP_ENV = os.environ.get("APP_ENV", "development")
        self.APP_URL = os.environ.get("APP_URL", "http://localhost:5000")
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

        # Cookie policy applies to both the auth cookie and Flask's own session
        self.SESSION_COOKIE_HTTPONLY = True
        self.SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
        self.SESSION_COOKIE_SECURE = self.APP_ENV == "production"

        self.BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

        # OIDC identity provider (login disabled when no client id)
        self.OIDC_ISSUER_URL = os.environ.get("OIDC_ISSUER_URL", "https://replit.com/oidc")
        self.OIDC_CLIENT_ID = os.environ.get("OIDC_CLIENT_ID")
        self.OIDC_CLIENT_SECRET = os.environ.get("OIDC_CLIENT_SECRET")
        self.OIDC_REDIRECT_URI = os.environ.get("OIDC_REDIRECT_URI")

        self.UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.abspath("uploads"))

        # Transactional email over HTTP (Postmark-compatible payload)
        self.EMAIL_API_URL = os.environ.get("EMAIL_API_URL", "https://api.postmarkapp.com/email")
        self.EMAIL_API_TOKEN = os.environ.get("EMAIL_API_TOKEN")
        self.MAIL_FROM = os.environ.get("MAIL_FROM", "Komersh <noreply@komersh.ae>")


def ensure_required_settings(config) -> None:
    """Fail fast when a required setting is absent or blank."""
    missing = [env for key, env in REQUIRED_SETTINGS.items() if not config.get(key)]
    if missing:
        raise ConfigError(f"{', '.join(missing)} must be set")
