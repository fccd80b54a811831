# Overview: Flask API routes for user administration.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..services import user_service
from ..validation import reject_unknown, require_fields

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_capability("MANAGE_USERS")
def list_users():
    include_inactive = request.args.get("includeInactive", "true").lower() != "false"
    return user_service.list_users(include_inactive=include_inactive)


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_capability("MANAGE_USERS")
def change_role(user_id: int):
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, {"role"})
    require_fields(payload, "role")
    return user_service.change_role(user_id, payload["role"], actor=g.current_user)


@users_bp.post("/<int:user_id>/deactivate")
@require_auth
@require_capability("MANAGE_USERS")
def deactivate_user(user_id: int):
    return user_service.deactivate_user(user_id, actor=g.current_user)


@users_bp.post("/<int:user_id>/reactivate")
@require_auth
@require_capability("MANAGE_USERS")
def reactivate_user(user_id: int):
    return user_service.reactivate_user(user_id, actor=g.current_user)
