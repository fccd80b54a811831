# Overview: Flask API routes for the signed-in user's own profile and password.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..models import User
from ..services import user_service
from ..validation import ModelValidationPolicy, reject_unknown, validate_payload

PROFILE_POLICY = ModelValidationPolicy(writable_fields={"firstName", "lastName", "profileImageUrl"})

account_bp = Blueprint("account", __name__, url_prefix="/api/account")


@account_bp.put("/profile")
@require_auth
def update_profile():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=User, payload=payload, policy=PROFILE_POLICY, partial=True)
    return user_service.update_profile(g.current_user, patch)


@account_bp.put("/password")
@require_auth
def change_password():
    """Body: currentPassword, newPassword (min 8 chars), confirmPassword. Other sessions are signed out."""
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, {"currentPassword", "newPassword", "confirmPassword"})
    user_service.change_password(
        g.current_user,
        current_password=payload.get("currentPassword"),
        new_password=payload.get("newPassword"),
        confirm_password=payload.get("confirmPassword"),
        keep_token=g.session_token,
    )
    return {"message": "Password updated"}
