# Overview: Flask API routes for dashboard totals and display settings.

from flask import Blueprint, request

from ..currency import DEFAULT_CURRENCY, is_supported, settings_payload
from ..decorators import require_auth, require_capability
from ..errors import ValidationError
from ..services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")
settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@dashboard_bp.get("/stats")
@require_auth
@require_capability("VIEW_FINANCIALS")
def dashboard_stats():
    currency = request.args.get("currency", DEFAULT_CURRENCY).upper()
    if not is_supported(currency):
        raise ValidationError(f"Unsupported currency: {currency}", field="currency")
    return dashboard_service.get_stats(currency)


@settings_bp.get("")
@require_auth
def get_settings():
    return settings_payload()
