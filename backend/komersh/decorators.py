# Overview: Request and capability decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .services import auth_service


def session_token() -> str | None:
    return request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])


def _is_authenticated() -> bool:
    return getattr(g, "identity", None) is not None


def require_auth(f):
    """
    Require a valid session and establish the request identity.

    Sets the following Flask g attributes:
    - g.identity: the resolved Identity (source, user, claims)
    - g.current_user: the authenticated User
    - g.session_token: the raw cookie token (for logout / password change)

    Returns 401 if the cookie is missing, unknown, revoked, expired, if the
    user is deactivated, or if an OIDC refresh fails.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = session_token()
        if not token:
            return jsonify({"message": "Unauthorized"}), 401

        identity = auth_service.resolve_identity(token)
        if identity is None:
            return jsonify({"message": "Unauthorized"}), 401

        g.identity = identity
        g.current_user = identity.user
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_capability(capability: str):
    """Require the current identity's role to grant a capability."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"message": "Unauthorized"}), 401

            if capability not in g.identity.capabilities:
                current_app.logger.warning(
                    "Capability %s denied to user %s (%s) on %s %s",
                    capability, g.current_user.id, g.current_user.role, request.method, request.path,
                )
                return jsonify({
                    "message": "Forbidden",
                    "requiredCapability": capability,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
