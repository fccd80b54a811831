from __future__ import annotations

from ..extensions import db
from ..currency import to_money_str
from ..time_utils import to_utc_z


PRODUCT_STATUSES = ("researching", "ready_to_buy", "bought", "rejected")


class PotentialProduct(db.Model):
    """
    A product under research, before any money is spent on it.

    Buying it (inventory_service.buy_potential_product) creates or tops up an
    InventoryItem lot and flips status to 'bought'.
    """
    __tablename__ = "potential_products"
    __table_args__ = (
        db.Index("ix_potential_products_status", "status"),
        db.CheckConstraint("buy_rating >= 0 AND buy_rating <= 5", name="ck_potential_products_buy_rating"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    supplier_link = db.Column(db.String(1024), nullable=True)
    supplier_name = db.Column(db.String(255), nullable=True)
    marketplace = db.Column(db.String(64), nullable=True)

    cost_per_unit = db.Column(db.Numeric(12, 2), nullable=False)
    suggested_quantity = db.Column(db.Integer, nullable=True)
    estimated_shipping = db.Column(db.Numeric(12, 2), nullable=True)
    target_selling_price = db.Column(db.Numeric(12, 2), nullable=True)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    status = db.Column(db.String(32), nullable=False, default="researching")
    buy_rating = db.Column(db.Integer, nullable=False, default=0)

    image_url = db.Column(db.String(1024), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<PotentialProduct id={self.id} name={self.name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "supplierLink": self.supplier_link,
            "supplierName": self.supplier_name,
            "marketplace": self.marketplace,
            "costPerUnit": to_money_str(self.cost_per_unit),
            "suggestedQuantity": self.suggested_quantity,
            "estimatedShipping": to_money_str(self.estimated_shipping),
            "targetSellingPrice": to_money_str(self.target_selling_price),
            "currency": self.currency,
            "status": self.status,
            "buyRating": self.buy_rating,
            "imageUrl": self.image_url,
            "notes": self.notes,
            "createdByUserId": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
