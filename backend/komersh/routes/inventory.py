# Overview: Flask API routes for inventory lots, including the sell transition.

from flask import Blueprint, g, request

from ..currency import CURRENCIES
from ..decorators import require_auth, require_capability
from ..models import INVENTORY_STATUSES, InventoryItem
from ..services import inventory_service, upload_service
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_inventory,
    optional_date,
    optional_decimal,
    optional_str,
    parse_decimal,
    parse_int,
    reject_unknown,
    require_fields,
    validate_payload,
)

# Lots are created by buying; there is no POST on the collection
INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "sku",
        "imageUrl",
        "quantity",
        "quantityAvailable",
        "unitCost",
        "totalCost",
        "currency",
        "status",
        "purchaseDate",
        "supplierOrderId",
        "warehouseLocation",
        "trackingNumber",
        "notes",
    },
    choices={"currency": CURRENCIES, "status": INVENTORY_STATUSES},
)

SELL_FIELDS = {
    "channel",
    "quantitySold",
    "sellingPricePerUnit",
    "marketplaceFees",
    "shippingCost",
    "saleDate",
    "notes",
}

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_capability("VIEW_INVENTORY")
def list_inventory():
    low_stock = request.args.get("lowStock", "").lower() in ("1", "true", "yes")
    return inventory_service.list_items(status=request.args.get("status"), low_stock=low_stock)


@inventory_bp.get("/<int:item_id>")
@require_auth
@require_capability("VIEW_INVENTORY")
def get_inventory_item(item_id: int):
    return inventory_service.get_item(item_id).to_dict()


@inventory_bp.put("/<int:item_id>")
@require_auth
@require_capability("MANAGE_INVENTORY")
def update_inventory_item(item_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=InventoryItem, payload=payload, policy=INVENTORY_POLICY, partial=True)
    enforce_rules_inventory(patch)
    return inventory_service.update_item(item_id, patch, user_id=g.current_user.id)


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_capability("MANAGE_INVENTORY")
def delete_inventory_item(item_id: int):
    inventory_service.delete_item(item_id, user_id=g.current_user.id)
    return "", 204


@inventory_bp.post("/<int:item_id>/sell")
@require_auth
@require_capability("SELL_INVENTORY")
def sell_inventory_item(item_id: int):
    """
    Record a sale against a lot.

    Body: channel, quantitySold (int > 0), sellingPricePerUnit, optional
    marketplaceFees, shippingCost, saleDate, notes. 409 when the lot cannot
    cover quantitySold.
    """
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, SELL_FIELDS)
    require_fields(payload, "channel", "quantitySold", "sellingPricePerUnit")

    order = inventory_service.sell_inventory_item(
        item_id,
        channel=optional_str(payload, "channel", 64),
        quantity_sold=parse_int(payload["quantitySold"], "quantitySold"),
        selling_price_per_unit=parse_decimal(payload["sellingPricePerUnit"], "sellingPricePerUnit"),
        marketplace_fees=optional_decimal(payload, "marketplaceFees"),
        shipping_cost=optional_decimal(payload, "shippingCost"),
        sale_date=optional_date(payload, "saleDate"),
        notes=optional_str(payload, "notes"),
        user_id=g.current_user.id,
    )
    return order, 201


@inventory_bp.post("/<int:item_id>/image")
@require_auth
@require_capability("MANAGE_INVENTORY")
def upload_inventory_image(item_id: int):
    inventory_service.get_item(item_id)
    url = upload_service.save_image(request.files.get("image"))
    return inventory_service.set_image(item_id, url, user_id=g.current_user.id)
