# Overview: Idempotent starter data for a fresh database.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import BankAccount, PotentialProduct, Task

BANK_ACCOUNTS = [
    {"name": "UAE Bank", "type": "bank", "balance": Decimal("5000"), "currency": "AED"},
    {"name": "Germany Bank", "type": "bank", "balance": Decimal("3000"), "currency": "EUR"},
    {"name": "Cash", "type": "cash", "balance": Decimal("500"), "currency": "USD"},
    {"name": "Amazon Payouts", "type": "payout_pending", "balance": Decimal("0"), "currency": "AED"},
    {"name": "Noon Payouts", "type": "payout_pending", "balance": Decimal("0"), "currency": "AED"},
]

POTENTIAL_PRODUCTS = [
    {
        "name": "Wireless Earbuds Pro",
        "sku": "WEP-001",
        "supplier_name": "Shenzhen Audio Co.",
        "marketplace": "amazon",
        "cost_per_unit": Decimal("12.50"),
        "suggested_quantity": 100,
        "estimated_shipping": Decimal("150.00"),
        "target_selling_price": Decimal("39.99"),
        "currency": "USD",
        "status": "researching",
        "buy_rating": 4,
    },
    {
        "name": "Portable Phone Stand",
        "sku": "PPS-002",
        "supplier_name": "Guangzhou Accessories",
        "marketplace": "noon",
        "cost_per_unit": Decimal("2.10"),
        "suggested_quantity": 200,
        "estimated_shipping": Decimal("60.00"),
        "target_selling_price": Decimal("12.99"),
        "currency": "USD",
        "status": "ready_to_buy",
        "buy_rating": 3,
    },
]

TASKS = [
    {"title": "Research Summer Products", "status": "open", "priority": "medium", "labels": ["research"]},
    {"title": "Launch Komersh.ae Website", "status": "in_progress", "priority": "high", "labels": ["website"]},
    {"title": "Setup Facebook Ads", "status": "planned", "priority": "medium", "labels": ["marketing"]},
]


def _seed(model, rows: list[dict], key: str) -> int:
    created = 0
    for row in rows:
        if db.session.query(model).filter(getattr(model, key) == row[key]).first() is not None:
            continue
        db.session.add(model(**row))
        created += 1
    return created


def seed_demo_data() -> dict:
    """Insert starter accounts, products and tasks that are not already present."""
    counts = {
        "bankAccounts": _seed(BankAccount, BANK_ACCOUNTS, "name"),
        "potentialProducts": _seed(PotentialProduct, POTENTIAL_PRODUCTS, "name"),
        "tasks": _seed(Task, TASKS, "title"),
    }
    db.session.commit()
    return counts
