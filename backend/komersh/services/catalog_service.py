# Overview: Service-layer operations for potential products (pre-purchase research).

from __future__ import annotations

import logging

from ..errors import NotFoundError
from ..extensions import db
from ..models import PotentialProduct
from . import activity_service, upload_service

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "sku",
    "supplier_link",
    "supplier_name",
    "marketplace",
    "cost_per_unit",
    "suggested_quantity",
    "estimated_shipping",
    "target_selling_price",
    "currency",
    "status",
    "buy_rating",
    "image_url",
    "notes",
}


def apply_product_patch(p: PotentialProduct, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def get_product(product_id: int) -> PotentialProduct:
    product = db.session.get(PotentialProduct, product_id)
    if product is None:
        raise NotFoundError("Potential product not found")
    return product


def list_products(status: str | None = None) -> list[dict]:
    query = db.session.query(PotentialProduct)
    if status:
        query = query.filter(PotentialProduct.status == status)
    rows = query.order_by(PotentialProduct.created_at.desc(), PotentialProduct.id.desc()).all()
    return [r.to_dict() for r in rows]


def create_product(patch: dict, user_id: int | None = None) -> dict:
    product = PotentialProduct(created_by_user_id=user_id)
    apply_product_patch(product, patch)
    if product.currency is None:
        product.currency = "USD"
    db.session.add(product)
    db.session.flush()

    activity_service.record("created", "potential_product", product.id, product.name, user_id)
    db.session.commit()
    return product.to_dict()


def update_product(product_id: int, patch: dict, user_id: int | None = None) -> dict:
    product = get_product(product_id)
    apply_product_patch(product, patch)
    activity_service.record("updated", "potential_product", product.id, product.name, user_id)
    db.session.commit()
    return product.to_dict()


def set_image(product_id: int, image_url: str, user_id: int | None = None) -> dict:
    product = get_product(product_id)
    previous = product.image_url
    product.image_url = image_url
    activity_service.record("image_uploaded", "potential_product", product.id, image_url, user_id)
    db.session.commit()
    if previous != image_url:
        upload_service.release_image(previous)
    return product.to_dict()


def delete_product(product_id: int, user_id: int | None = None) -> None:
    product = get_product(product_id)
    activity_service.record("deleted", "potential_product", product.id, product.name, user_id)
    db.session.delete(product)
    db.session.commit()
    logger.info("Deleted potential product %s", product_id)

