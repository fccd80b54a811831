# Overview: Flask API routes for sales orders (created by selling; only payout status and notes change).

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..models import PAYOUT_STATUSES, SalesOrder
from ..services import sales_service
from ..validation import ModelValidationPolicy, validate_payload

SALES_ORDER_POLICY = ModelValidationPolicy(
    writable_fields={"payoutStatus", "notes"},
    choices={"payoutStatus": PAYOUT_STATUSES},
)

sales_orders_bp = Blueprint("sales_orders", __name__, url_prefix="/api/sales-orders")


@sales_orders_bp.get("")
@require_auth
@require_capability("VIEW_SALES")
def list_sales_orders():
    return sales_service.list_orders(
        inventory_id=request.args.get("inventoryId", type=int),
        payout_status=request.args.get("payoutStatus"),
    )


@sales_orders_bp.get("/<int:order_id>")
@require_auth
@require_capability("VIEW_SALES")
def get_sales_order(order_id: int):
    return sales_service.get_order(order_id)


@sales_orders_bp.put("/<int:order_id>")
@require_auth
@require_capability("MANAGE_SALES")
def update_sales_order(order_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=SalesOrder, payload=payload, policy=SALES_ORDER_POLICY, partial=True)
    return sales_service.update_order(order_id, patch, user_id=g.current_user.id)
