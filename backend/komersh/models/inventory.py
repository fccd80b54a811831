from __future__ import annotations

from ..extensions import db
from ..currency import to_money_str
from ..time_utils import to_iso_date, to_utc_z


INVENTORY_STATUSES = ("ordered", "shipped", "received", "in_stock", "sold_out")
PAYOUT_STATUSES = ("pending", "received")

# quantityAvailable at or below this is flagged as low stock
LOW_STOCK_THRESHOLD = 5


class InventoryItem(db.Model):
    """
    One purchased lot of a product.

    quantity is what was bought; quantity_available is what is left to sell.
    The CHECK constraints keep 0 <= quantity_available <= quantity even if a
    caller bypasses the service layer.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_nonneg"),
        db.CheckConstraint("quantity_available >= 0", name="ck_inventory_items_available_nonneg"),
        db.CheckConstraint("quantity_available <= quantity", name="ck_inventory_items_available_le_quantity"),
        db.Index("ix_inventory_items_product_status", "potential_product_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    potential_product_id = db.Column(
        db.Integer, db.ForeignKey("potential_products.id", ondelete="SET NULL"), nullable=True, index=True
    )

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    quantity_available = db.Column(db.Integer, nullable=False, default=0)
    unit_cost = db.Column(db.Numeric(12, 2), nullable=False)
    total_cost = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    status = db.Column(db.String(32), nullable=False, default="ordered")
    purchase_date = db.Column(db.Date, nullable=True)
    supplier_order_id = db.Column(db.String(128), nullable=True)
    warehouse_location = db.Column(db.String(128), nullable=True)
    tracking_number = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    potential_product = db.relationship("PotentialProduct", backref=db.backref("inventory_items", lazy=True))

    @property
    def low_stock(self) -> bool:
        return self.quantity_available <= LOW_STOCK_THRESHOLD and self.status != "sold_out"

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} available={self.quantity_available}/{self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "potentialProductId": self.potential_product_id,
            "name": self.name,
            "sku": self.sku,
            "imageUrl": self.image_url,
            "quantity": self.quantity,
            "quantityAvailable": self.quantity_available,
            "unitCost": to_money_str(self.unit_cost),
            "totalCost": to_money_str(self.total_cost),
            "currency": self.currency,
            "status": self.status,
            "lowStock": self.low_stock,
            "purchaseDate": to_iso_date(self.purchase_date),
            "supplierOrderId": self.supplier_order_id,
            "warehouseLocation": self.warehouse_location,
            "trackingNumber": self.tracking_number,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class SalesOrder(db.Model):
    """
    A recorded sale against one inventory lot.

    Monetary fields are computed once at sale time and never recomputed;
    only payout_status and notes change afterwards.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.CheckConstraint("quantity_sold > 0", name="ck_sales_orders_quantity_positive"),
        db.Index("ix_sales_orders_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    channel = db.Column(db.String(64), nullable=False)
    quantity_sold = db.Column(db.Integer, nullable=False)
    selling_price_per_unit = db.Column(db.Numeric(12, 2), nullable=False)

    total_revenue = db.Column(db.Numeric(12, 2), nullable=False)
    marketplace_fees = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    net_revenue = db.Column(db.Numeric(12, 2), nullable=False)
    cogs = db.Column(db.Numeric(12, 2), nullable=False)
    profit = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    sale_date = db.Column(db.Date, nullable=False)
    payout_status = db.Column(db.String(16), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    inventory_item = db.relationship("InventoryItem", backref=db.backref("sales_orders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventoryId": self.inventory_id,
            "channel": self.channel,
            "quantitySold": self.quantity_sold,
            "sellingPricePerUnit": to_money_str(self.selling_price_per_unit),
            "totalRevenue": to_money_str(self.total_revenue),
            "marketplaceFees": to_money_str(self.marketplace_fees),
            "shippingCost": to_money_str(self.shipping_cost),
            "netRevenue": to_money_str(self.net_revenue),
            "cogs": to_money_str(self.cogs),
            "profit": to_money_str(self.profit),
            "currency": self.currency,
            "saleDate": to_iso_date(self.sale_date),
            "payoutStatus": self.payout_status,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
        }
