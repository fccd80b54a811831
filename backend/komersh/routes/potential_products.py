# Overview: Flask API routes for potential products, including the buy transition.

from flask import Blueprint, g, request

from ..currency import CURRENCIES
from ..decorators import require_auth, require_capability
from ..models import PRODUCT_STATUSES, PotentialProduct
from ..services import catalog_service, inventory_service, upload_service
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_potential_product,
    optional_date,
    optional_decimal,
    optional_str,
    parse_decimal,
    parse_int,
    reject_unknown,
    require_fields,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "sku",
        "supplierLink",
        "supplierName",
        "marketplace",
        "costPerUnit",
        "suggestedQuantity",
        "estimatedShipping",
        "targetSellingPrice",
        "currency",
        "status",
        "buyRating",
        "imageUrl",
        "notes",
    },
    required_on_create={"name", "costPerUnit"},
    choices={"currency": CURRENCIES, "status": PRODUCT_STATUSES},
)

BUY_FIELDS = {"quantity", "unitCost", "shippingCost", "supplierOrderId", "purchaseDate"}

potential_products_bp = Blueprint("potential_products", __name__, url_prefix="/api/potential-products")


@potential_products_bp.get("")
@require_auth
@require_capability("VIEW_PRODUCTS")
def list_products():
    return catalog_service.list_products(status=request.args.get("status"))


@potential_products_bp.get("/<int:product_id>")
@require_auth
@require_capability("VIEW_PRODUCTS")
def get_product(product_id: int):
    return catalog_service.get_product(product_id).to_dict()


@potential_products_bp.post("")
@require_auth
@require_capability("MANAGE_PRODUCTS")
def create_product():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=PotentialProduct, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_potential_product(patch)
    return catalog_service.create_product(patch, user_id=g.current_user.id), 201


@potential_products_bp.put("/<int:product_id>")
@require_auth
@require_capability("MANAGE_PRODUCTS")
def update_product(product_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=PotentialProduct, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_potential_product(patch)
    return catalog_service.update_product(product_id, patch, user_id=g.current_user.id)


@potential_products_bp.delete("/<int:product_id>")
@require_auth
@require_capability("MANAGE_PRODUCTS")
def delete_product(product_id: int):
    catalog_service.delete_product(product_id, user_id=g.current_user.id)
    return "", 204


@potential_products_bp.post("/<int:product_id>/buy")
@require_auth
@require_capability("BUY_PRODUCTS")
def buy_product(product_id: int):
    """
    Buy a potential product into inventory.

    Body: quantity (int > 0), unitCost (> 0), optional shippingCost,
    supplierOrderId, purchaseDate. Returns the created or topped-up lot.
    """
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, BUY_FIELDS)
    require_fields(payload, "quantity", "unitCost")

    item = inventory_service.buy_potential_product(
        product_id,
        quantity=parse_int(payload["quantity"], "quantity"),
        unit_cost=parse_decimal(payload["unitCost"], "unitCost"),
        shipping_cost=optional_decimal(payload, "shippingCost"),
        supplier_order_id=optional_str(payload, "supplierOrderId", 128),
        purchase_date=optional_date(payload, "purchaseDate"),
        user_id=g.current_user.id,
    )
    return item, 201


@potential_products_bp.post("/<int:product_id>/image")
@require_auth
@require_capability("MANAGE_PRODUCTS")
def upload_product_image(product_id: int):
    catalog_service.get_product(product_id)
    url = upload_service.save_image(request.files.get("image"))
    return catalog_service.set_image(product_id, url, user_id=g.current_user.id)
