# Overview: Flask API routes for expenses.

from flask import Blueprint, g, request

from ..currency import CURRENCIES
from ..decorators import require_auth, require_capability
from ..models import Expense
from ..services import finance_service
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, validate_payload

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={
        "category",
        "amount",
        "currency",
        "date",
        "description",
        "paidBy",
        "paymentMethod",
        "bankAccountId",
    },
    required_on_create={"category", "amount"},
    choices={"currency": CURRENCIES},
)

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_capability("VIEW_FINANCIALS")
def list_expenses():
    return finance_service.list_expenses(category=request.args.get("category"))


@expenses_bp.post("")
@require_auth
@require_capability("MANAGE_FINANCIALS")
def create_expense():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    if patch.get("date") is None:
        patch["date"] = utcnow().date()
    return finance_service.create_expense(patch, user_id=g.current_user.id), 201


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_capability("MANAGE_FINANCIALS")
def update_expense(expense_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
    return finance_service.update_expense(expense_id, patch, user_id=g.current_user.id)


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_capability("MANAGE_FINANCIALS")
def delete_expense(expense_id: int):
    finance_service.delete_expense(expense_id, user_id=g.current_user.id)
    return "", 204
