# Overview: Health, version and uploaded-file endpoints.

"""
System endpoints.

/health checks the database, the session table and the upload folder.
/uploads/<name> serves stored files from UPLOAD_FOLDER.
"""

import os
import sys
import time

from flask import Blueprint, current_app, send_from_directory

from .. import __version__
from ..extensions import db
from ..models import AuthSession, User
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"users": user_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_session_health() -> dict:
    start_time = time.time()
    try:
        active_sessions = db.session.query(AuthSession).filter(
            AuthSession.is_revoked.is_(False),
            AuthSession.expires_at >= utcnow(),
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"active_sessions": active_sessions},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        db.session.rollback()
        current_app.logger.exception("Session health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session store error",
        }


def check_upload_folder() -> dict:
    folder = current_app.config["UPLOAD_FOLDER"]
    if os.path.isdir(folder) and os.access(folder, os.W_OK):
        return {"status": "healthy"}
    # Created lazily on first upload
    return {"status": "degraded", "warning": "Upload folder missing or not writable"}


@system_bp.get("/health")
def health():
    """
    200 when healthy or degraded, 503 when a dependency is unhealthy.
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "sessions": check_session_health(),
        "uploads": check_upload_folder(),
    }
    statuses = [c["status"] for c in checks.values()]

    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    return {
        "api_version": __version__,
        "environment": current_app.config.get("APP_ENV"),
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }


@system_bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
