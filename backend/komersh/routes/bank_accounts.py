# Overview: Flask API routes for bank accounts and manual balance adjustment.

from flask import Blueprint, g, request

from ..currency import CURRENCIES
from ..decorators import require_auth, require_capability
from ..models import ACCOUNT_TYPES, ADJUSTMENT_TYPES, BankAccount
from ..services import finance_service
from ..validation import (
    ModelValidationPolicy,
    optional_str,
    parse_decimal,
    reject_unknown,
    require_fields,
    validate_payload,
)
from ..errors import ValidationError

ACCOUNT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "balance", "currency"},
    required_on_create={"name"},
    choices={"type": ACCOUNT_TYPES, "currency": CURRENCIES},
)

ADJUST_FIELDS = {"amount", "type", "description"}

bank_accounts_bp = Blueprint("bank_accounts", __name__, url_prefix="/api/bank-accounts")


@bank_accounts_bp.get("")
@require_auth
@require_capability("VIEW_FINANCIALS")
def list_accounts():
    return finance_service.list_accounts()


@bank_accounts_bp.post("")
@require_auth
@require_capability("MANAGE_FINANCIALS")
def create_account():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=BankAccount, payload=payload, policy=ACCOUNT_POLICY, partial=False)
    return finance_service.create_account(patch, user_id=g.current_user.id), 201


@bank_accounts_bp.put("/<int:account_id>")
@require_auth
@require_capability("MANAGE_FINANCIALS")
def update_account(account_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=BankAccount, payload=payload, policy=ACCOUNT_POLICY, partial=True)
    return finance_service.update_account(account_id, patch, user_id=g.current_user.id)


@bank_accounts_bp.delete("/<int:account_id>")
@require_auth
@require_capability("MANAGE_FINANCIALS")
def delete_account(account_id: int):
    finance_service.delete_account(account_id, user_id=g.current_user.id)
    return "", 204


@bank_accounts_bp.post("/<int:account_id>/adjust")
@require_auth
@require_capability("MANAGE_FINANCIALS")
def adjust_balance(account_id: int):
    """Body: amount (positive decimal), type ('add' | 'subtract'), optional description."""
    payload = request.get_json(silent=True) or {}
    reject_unknown(payload, ADJUST_FIELDS)
    require_fields(payload, "amount", "type")
    if payload["type"] not in ADJUSTMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(ADJUSTMENT_TYPES)}", field="type")

    return finance_service.adjust_balance(
        account_id,
        amount=parse_decimal(payload["amount"], "amount"),
        type=payload["type"],
        description=optional_str(payload, "description", 500),
        user_id=g.current_user.id,
    )
