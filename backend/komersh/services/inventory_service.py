# Overview: Service-layer operations for inventory; the buy and sell transitions live here.

"""
Inventory transitions.

buy_potential_product: PotentialProduct -> InventoryItem lot (create or top up).
sell_inventory_item: InventoryItem -> SalesOrder, decrementing stock with a
single conditional UPDATE so two concurrent sales can never oversell a lot.

Both run as one transaction; any failure leaves no partial state behind.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import case, update

from ..currency import CENTS
from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, PotentialProduct, SalesOrder
from ..time_utils import utcnow
from . import activity_service, notification_service, upload_service
from .concurrency import atomic, lock_for_update

logger = logging.getLogger(__name__)

INVENTORY_MUTABLE_FIELDS = {
    "name",
    "sku",
    "image_url",
    "quantity",
    "quantity_available",
    "unit_cost",
    "total_cost",
    "status",
    "purchase_date",
    "supplier_order_id",
    "warehouse_location",
    "tracking_number",
    "notes",
}

ZERO = Decimal("0")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def get_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError("Inventory item not found")
    return item


def list_items(status: str | None = None, low_stock: bool = False) -> list[dict]:
    query = db.session.query(InventoryItem)
    if status:
        query = query.filter(InventoryItem.status == status)
    rows = query.order_by(InventoryItem.created_at.desc(), InventoryItem.id.desc()).all()
    if low_stock:
        rows = [r for r in rows if r.low_stock]
    return [r.to_dict() for r in rows]


def buy_potential_product(
    product_id: int,
    *,
    quantity: int,
    unit_cost: Decimal,
    shipping_cost: Decimal | None = None,
    supplier_order_id: str | None = None,
    purchase_date: date | None = None,
    user_id: int | None = None,
) -> dict:
    """
    Buy `quantity` units of a potential product.

    An open lot of the same product, unit cost and currency is topped up;
    otherwise a new lot is created with status 'ordered'. The product is
    marked 'bought'. Returns the lot.
    """
    if quantity <= 0:
        raise ValidationError("quantity must be greater than 0", field="quantity")
    if unit_cost <= 0:
        raise ValidationError("unitCost must be greater than 0", field="unitCost")
    shipping_cost = shipping_cost if shipping_cost is not None else ZERO
    if shipping_cost < 0:
        raise ValidationError("shippingCost must be >= 0", field="shippingCost")

    unit_cost = _money(unit_cost)
    line_cost = _money(unit_cost * quantity + shipping_cost)

    with atomic():
        product = lock_for_update(
            db.session.query(PotentialProduct).filter(PotentialProduct.id == product_id)
        ).first()
        if product is None:
            raise NotFoundError("Potential product not found")

        lot = lock_for_update(
            db.session.query(InventoryItem).filter(
                InventoryItem.potential_product_id == product.id,
                InventoryItem.unit_cost == unit_cost,
                InventoryItem.currency == product.currency,
                InventoryItem.status != "sold_out",
            ).order_by(InventoryItem.id.asc())
        ).first()

        if lot is not None:
            lot.quantity = lot.quantity + quantity
            lot.quantity_available = lot.quantity_available + quantity
            lot.total_cost = lot.total_cost + line_cost
            if supplier_order_id:
                lot.supplier_order_id = supplier_order_id
            action = "restocked"
        else:
            lot = InventoryItem(
                potential_product_id=product.id,
                name=product.name,
                sku=product.sku,
                image_url=product.image_url,
                quantity=quantity,
                quantity_available=quantity,
                unit_cost=unit_cost,
                total_cost=line_cost,
                currency=product.currency,
                status="ordered",
                purchase_date=purchase_date or utcnow().date(),
                supplier_order_id=supplier_order_id,
            )
            db.session.add(lot)
            action = "bought"

        product.status = "bought"
        db.session.flush()

        activity_service.record(
            action,
            "inventory",
            lot.id,
            f"{action.capitalize()} {quantity} x {product.name} at {unit_cost} {product.currency}",
            user_id,
        )

    logger.info("Bought %s x product %s into lot %s", quantity, product_id, lot.id)
    return lot.to_dict()


def sell_inventory_item(
    item_id: int,
    *,
    channel: str,
    quantity_sold: int,
    selling_price_per_unit: Decimal,
    marketplace_fees: Decimal | None = None,
    shipping_cost: Decimal | None = None,
    sale_date: date | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> dict:
    """
    Record a sale of `quantity_sold` units from a lot.

    Stock is decremented by a conditional UPDATE guarded on
    quantity_available >= quantity_sold; zero affected rows means the lot
    cannot cover the sale and nothing is written. Reaching zero marks the lot
    'sold_out'. Returns the created sales order.
    """
    if not channel:
        raise ValidationError("channel is required", field="channel")
    if quantity_sold <= 0:
        raise ValidationError("quantitySold must be greater than 0", field="quantitySold")
    if selling_price_per_unit < 0:
        raise ValidationError("sellingPricePerUnit must be >= 0", field="sellingPricePerUnit")
    fees = marketplace_fees if marketplace_fees is not None else ZERO
    shipping = shipping_cost if shipping_cost is not None else ZERO
    if fees < 0:
        raise ValidationError("marketplaceFees must be >= 0", field="marketplaceFees")
    if shipping < 0:
        raise ValidationError("shippingCost must be >= 0", field="shippingCost")

    with atomic():
        item = get_item(item_id)

        result = db.session.execute(
            update(InventoryItem)
            .where(
                InventoryItem.id == item_id,
                InventoryItem.quantity_available >= quantity_sold,
            )
            .values(
                quantity_available=InventoryItem.quantity_available - quantity_sold,
                status=case(
                    (InventoryItem.quantity_available - quantity_sold == 0, "sold_out"),
                    else_=InventoryItem.status,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(item)

        if result.rowcount == 0:
            logger.warning(
                "Rejected sale of %s from lot %s: %s available",
                quantity_sold, item_id, item.quantity_available,
            )
            raise ConflictError(
                f"Insufficient stock: only {item.quantity_available} available",
                field="quantitySold",
            )

        # Derived fields use the stored cent values:
        # profit == totalRevenue - cogs - marketplaceFees - shippingCost
        price = _money(selling_price_per_unit)
        fees = _money(fees)
        shipping = _money(shipping)
        total_revenue = price * quantity_sold
        cogs = _money(Decimal(item.unit_cost)) * quantity_sold
        net_revenue = total_revenue - fees - shipping
        profit = net_revenue - cogs

        order = SalesOrder(
            inventory_id=item.id,
            channel=channel,
            quantity_sold=quantity_sold,
            selling_price_per_unit=price,
            total_revenue=total_revenue,
            marketplace_fees=fees,
            shipping_cost=shipping,
            net_revenue=net_revenue,
            cogs=cogs,
            profit=profit,
            currency=item.currency,
            sale_date=sale_date or utcnow().date(),
            payout_status="pending",
            notes=notes,
        )
        db.session.add(order)
        db.session.flush()

        activity_service.record(
            "sold",
            "sales_order",
            order.id,
            f"Sold {quantity_sold} x {item.name} on {channel} for {total_revenue} {item.currency}",
            user_id,
        )
        notification_service.notify_team(
            exclude_user_id=user_id,
            type="sale_created",
            title="New sale",
            message=f"{quantity_sold} x {item.name} sold on {channel}",
            entity_type="sales_order",
            entity_id=order.id,
        )
        if item.status == "sold_out" or item.low_stock:
            notification_service.notify_team(
                exclude_user_id=user_id,
                type="inventory_update",
                title="Sold out" if item.status == "sold_out" else "Low stock",
                message=f"{item.name}: {item.quantity_available} left",
                entity_type="inventory",
                entity_id=item.id,
            )

    logger.info("Sold %s from lot %s as order %s", quantity_sold, item_id, order.id)
    return order.to_dict()


def update_item(item_id: int, patch: dict, user_id: int | None = None) -> dict:
    item = get_item(item_id)

    quantity = patch.get("quantity", item.quantity)
    available = patch.get("quantity_available", item.quantity_available)
    if available > quantity:
        raise ValidationError("quantityAvailable cannot exceed quantity", field="quantityAvailable")

    for k, v in patch.items():
        if k in INVENTORY_MUTABLE_FIELDS:
            setattr(item, k, v)

    activity_service.record("updated", "inventory", item.id, item.name, user_id)
    db.session.commit()
    return item.to_dict()


def set_image(item_id: int, image_url: str, user_id: int | None = None) -> dict:
    item = get_item(item_id)
    previous = item.image_url
    item.image_url = image_url
    activity_service.record("image_uploaded", "inventory", item.id, image_url, user_id)
    db.session.commit()
    if previous != image_url:
        upload_service.release_image(previous)
    return item.to_dict()


def delete_item(item_id: int, user_id: int | None = None) -> None:
    item = get_item(item_id)
    has_sales = db.session.query(SalesOrder.id).filter(SalesOrder.inventory_id == item.id).first() is not None
    if has_sales:
        raise ConflictError("Inventory with recorded sales cannot be deleted")
    activity_service.record("deleted", "inventory", item.id, item.name, user_id)
    db.session.delete(item)
    db.session.commit()
