from __future__ import annotations

from ..extensions import db
from ..currency import to_money_str
from ..time_utils import to_iso_date, to_utc_z


ACCOUNT_TYPES = ("bank", "cash", "operating", "payout_pending")
ADJUSTMENT_TYPES = ("add", "subtract")


class BankAccount(db.Model):
    """
    A money location (bank, cash box, marketplace payout holding).

    The balance may go negative; there is no overdraft floor.
    """
    __tablename__ = "bank_accounts"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    type = db.Column(db.String(32), nullable=False, default="bank")
    balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "balance": to_money_str(self.balance),
            "currency": self.currency,
            "createdAt": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_date", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    date = db.Column(db.Date, nullable=False)
    description = db.Column(db.Text, nullable=True)
    paid_by = db.Column(db.String(128), nullable=True)
    payment_method = db.Column(db.String(64), nullable=True)
    bank_account_id = db.Column(
        db.Integer, db.ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    bank_account = db.relationship("BankAccount", backref=db.backref("expenses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "amount": to_money_str(self.amount),
            "currency": self.currency,
            "date": to_iso_date(self.date),
            "description": self.description,
            "paidBy": self.paid_by,
            "paymentMethod": self.payment_method,
            "bankAccountId": self.bank_account_id,
            "createdAt": to_utc_z(self.created_at),
        }
