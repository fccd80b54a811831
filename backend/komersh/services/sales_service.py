# Overview: Service-layer operations for sales orders (read and payout tracking).

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import SalesOrder
from . import activity_service

# Everything else on an order is fixed at sale time
SALES_ORDER_MUTABLE_FIELDS = {"payout_status", "notes"}


def list_orders(inventory_id: int | None = None, payout_status: str | None = None) -> list[dict]:
    query = db.session.query(SalesOrder)
    if inventory_id is not None:
        query = query.filter(SalesOrder.inventory_id == inventory_id)
    if payout_status:
        query = query.filter(SalesOrder.payout_status == payout_status)
    rows = query.order_by(SalesOrder.sale_date.desc(), SalesOrder.id.desc()).all()
    return [r.to_dict() for r in rows]


def get_order(order_id: int) -> dict:
    order = db.session.get(SalesOrder, order_id)
    if order is None:
        raise NotFoundError("Sales order not found")
    return order.to_dict()


def update_order(order_id: int, patch: dict, user_id: int | None = None) -> dict:
    order = db.session.get(SalesOrder, order_id)
    if order is None:
        raise NotFoundError("Sales order not found")

    previous = order.payout_status
    for k, v in patch.items():
        if k in SALES_ORDER_MUTABLE_FIELDS:
            setattr(order, k, v)

    if order.payout_status != previous:
        activity_service.record(
            "payout_" + order.payout_status, "sales_order", order.id, None, user_id
        )
    db.session.commit()
    return order.to_dict()
