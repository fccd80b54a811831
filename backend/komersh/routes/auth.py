# Overview: Flask API routes for authentication: local login, identity-provider login, logout, current user.

"""
Authentication routes.

Two blueprints share the komersh.sid cookie:
- auth_bp (/api/auth): local email/password login, logout, current user
- oidc_bp (/api): identity-provider redirect, callback and logout

The cookie carries an opaque token; the server-side AuthSession row decides
who the caller is.
"""

import secrets

from flask import Blueprint, current_app, g, jsonify, redirect, request, session

from ..decorators import require_auth, session_token
from ..errors import ValidationError
from ..extensions import db
from ..services import auth_service, oidc_service, session_service
from ..validation import reject_unknown, require_fields

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
oidc_bp = Blueprint("oidc", __name__, url_prefix="/api")


def set_session_cookie(response, token: str) -> None:
    config = current_app.config
    response.set_cookie(
        config["AUTH_COOKIE_NAME"],
        token,
        max_age=config["SESSION_LIFETIME_DAYS"] * 24 * 60 * 60,
        httponly=True,
        secure=config["SESSION_COOKIE_SECURE"],
        samesite=config["SESSION_COOKIE_SAMESITE"],
        path="/",
    )


def clear_session_cookie(response) -> None:
    config = current_app.config
    response.delete_cookie(
        config["AUTH_COOKIE_NAME"],
        path="/",
        httponly=True,
        secure=config["SESSION_COOKIE_SECURE"],
        samesite=config["SESSION_COOKIE_SAMESITE"],
    )


@auth_bp.post("/login")
def login_route():
    """
    Local email/password login.

    Any session already referenced by the cookie is revoked first, so one
    browser never holds two live sessions.
    """
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, {"email", "password"})
    require_fields(payload, "email", "password")

    session_service.revoke_session(session_token(), reason="Replaced by local login")

    user = auth_service.authenticate(payload["email"], payload["password"])
    if user is None:
        current_app.logger.warning("Failed local login for %s", auth_service.normalize_email(payload["email"]))
        return jsonify({"message": "Invalid email or password"}), 401

    _, token = session_service.create_session(user.id, "local")
    identity = auth_service.Identity(source="local", user=user, claims=auth_service.local_claims(user))

    response = jsonify(identity.to_dict())
    set_session_cookie(response, token)
    return response


@auth_bp.post("/logout")
def logout_route():
    revoked = session_service.revoke_session(session_token(), reason="User logout")

    body = {"message": "Logged out"}
    if revoked is not None and revoked.source == "oidc" and oidc_service.is_enabled():
        body["redirectUrl"] = oidc_service.end_session_url(revoked.id_token)

    response = jsonify(body)
    clear_session_cookie(response)
    return response


@auth_bp.get("/user")
@require_auth
def current_user_route():
    response = jsonify(g.identity.to_dict())
    response.headers["Cache-Control"] = "no-store"
    return response


@oidc_bp.get("/login")
def oidc_login():
    if not oidc_service.is_enabled():
        return jsonify({"message": "Identity provider login is not configured"}), 400

    state = secrets.token_urlsafe(32)
    nonce = secrets.token_urlsafe(32)
    verifier, challenge = oidc_service.new_pkce_pair()

    try:
        url = oidc_service.build_authorization_url(state=state, nonce=nonce, code_challenge=challenge)
    except oidc_service.OidcError:
        current_app.logger.exception("Failed to start identity provider login")
        return jsonify({"message": "Identity provider unavailable"}), 502

    session["oidc_state"] = state
    session["oidc_nonce"] = nonce
    session["oidc_verifier"] = verifier
    return redirect(url)


@oidc_bp.get("/callback")
def callback():
    """
    Provider redirect target. On success a session is created and the
    browser goes to '/'; any failure sends it back to /api/login.
    """
    expected_state = session.pop("oidc_state", None)
    nonce = session.pop("oidc_nonce", None)
    verifier = session.pop("oidc_verifier", None)

    code = request.args.get("code")
    if request.args.get("error") or not code or not expected_state or request.args.get("state") != expected_state:
        current_app.logger.warning("Rejected identity provider callback: %s", request.args.get("error") or "state mismatch")
        return redirect("/api/login")

    try:
        token_set = oidc_service.exchange_code(code=code, code_verifier=verifier, nonce=nonce)
        user = auth_service.upsert_oidc_user(token_set.claims)
    except (oidc_service.OidcError, ValidationError):
        db.session.rollback()
        current_app.logger.warning("Identity provider login failed", exc_info=True)
        return redirect("/api/login")

    if not user.is_active:
        db.session.commit()
        return jsonify({"message": "Account is deactivated"}), 403

    session_service.revoke_session(session_token(), reason="Replaced by identity provider login")
    _, token = session_service.create_session(user.id, "oidc", token_set=token_set)

    response = redirect("/")
    set_session_cookie(response, token)
    return response


@oidc_bp.get("/logout")
def oidc_logout():
    revoked = session_service.revoke_session(session_token(), reason="User logout")

    target = "/"
    if revoked is not None and revoked.source == "oidc" and oidc_service.is_enabled():
        target = oidc_service.end_session_url(revoked.id_token) or "/"

    response = redirect(target)
    clear_session_cookie(response)
    return response
