# Overview: Service-layer aggregation for the dashboard totals.

"""
Dashboard statistics.

Every amount is converted from its own currency into the requested display
currency with the static rate table, then summed. Results are floats rounded
to cents for display.
"""

from __future__ import annotations

from ..currency import DEFAULT_CURRENCY, convert
from ..extensions import db
from ..models import BankAccount, Expense, InventoryItem, SalesOrder
from ..time_utils import utcnow


def _sum(rows, attr: str, currency: str) -> float:
    return sum(convert(getattr(r, attr), r.currency, currency) for r in rows)


def get_stats(currency: str = DEFAULT_CURRENCY) -> dict:
    items = db.session.query(InventoryItem).all()
    orders = db.session.query(SalesOrder).all()
    expenses = db.session.query(Expense).all()
    accounts = db.session.query(BankAccount).all()

    today = utcnow().date()
    month_start = today.replace(day=1)
    month_orders = [o for o in orders if o.sale_date and o.sale_date >= month_start]
    month_expenses = [e for e in expenses if e.date and e.date >= month_start]

    inventory_value = sum(
        convert(i.unit_cost * i.quantity_available, i.currency, currency) for i in items
    )
    total_revenue = _sum(orders, "total_revenue", currency)
    total_profit = _sum(orders, "profit", currency)
    total_expenses = _sum(expenses, "amount", currency)

    monthly_revenue = _sum(month_orders, "total_revenue", currency)
    monthly_profit = _sum(month_orders, "profit", currency)
    monthly_expenses = _sum(month_expenses, "amount", currency)

    pending = [o for o in orders if o.payout_status == "pending"]

    return {
        "currency": currency,
        "inventoryValue": round(inventory_value, 2),
        "totalRevenue": round(total_revenue, 2),
        "totalProfit": round(total_profit, 2),
        "totalExpenses": round(total_expenses, 2),
        "netProfit": round(total_profit - total_expenses, 2),
        "monthlyRevenue": round(monthly_revenue, 2),
        "monthlyProfit": round(monthly_profit, 2),
        "monthlyExpenses": round(monthly_expenses, 2),
        "monthlyNetProfit": round(monthly_profit - monthly_expenses, 2),
        "inventoryCount": sum(i.quantity_available for i in items),
        "lowStockCount": sum(1 for i in items if i.low_stock),
        "pendingPayouts": round(_sum(pending, "net_revenue", currency), 2),
        "totalBankBalance": round(_sum(accounts, "balance", currency), 2),
        "salesCount": len(orders),
    }
