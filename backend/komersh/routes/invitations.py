# Overview: Flask API routes for invitations; verify and accept are public.

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_capability
from ..services import invitation_service, session_service
from ..validation import optional_str, reject_unknown, require_fields
from .auth import set_session_cookie

invitations_bp = Blueprint("invitations", __name__, url_prefix="/api/invitations")


@invitations_bp.get("")
@require_auth
@require_capability("MANAGE_USERS")
def list_invitations():
    return invitation_service.list_invitations()


@invitations_bp.post("")
@require_auth
@require_capability("MANAGE_USERS")
def create_invitation():
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, {"email", "role"})
    require_fields(payload, "email", "role")
    created = invitation_service.create_invitation(payload["email"], payload["role"], invited_by=g.current_user)
    return created, 201


@invitations_bp.post("/<int:invitation_id>/resend")
@require_auth
@require_capability("MANAGE_USERS")
def resend_invitation(invitation_id: int):
    return invitation_service.resend_invitation(invitation_id, invited_by=g.current_user)


@invitations_bp.delete("/<int:invitation_id>")
@require_auth
@require_capability("MANAGE_USERS")
def delete_invitation(invitation_id: int):
    invitation_service.delete_invitation(invitation_id, user_id=g.current_user.id)
    return "", 204


@invitations_bp.get("/verify")
def verify_invitation():
    return invitation_service.verify_invitation(request.args.get("token"))


@invitations_bp.post("/accept")
def accept_invitation():
    """
    Redeem an invitation with a local password and sign the new user in.

    Body: token, password (min 8 chars), optional firstName, lastName.
    """
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, {"token", "password", "firstName", "lastName"})
    require_fields(payload, "token", "password")

    user = invitation_service.accept_invitation(
        payload["token"],
        payload["password"],
        first_name=optional_str(payload, "firstName", 128),
        last_name=optional_str(payload, "lastName", 128),
    )
    _, token = session_service.create_session(user.id, "local")
    current_app.logger.info("User %s joined via invitation", user.id)

    response = current_app.make_response(({"user": user.to_dict()}, 201))
    set_session_cookie(response, token)
    return response
