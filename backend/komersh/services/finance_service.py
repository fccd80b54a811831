# Overview: Service-layer operations for bank accounts and expenses.

from __future__ import annotations

import logging
from decimal import Decimal

from ..currency import CENTS, convert_decimal
from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import BankAccount, Expense
from . import activity_service, notification_service
from .concurrency import atomic, lock_for_update

logger = logging.getLogger(__name__)

ACCOUNT_MUTABLE_FIELDS = {"name", "type", "balance", "currency"}
EXPENSE_MUTABLE_FIELDS = {
    "category",
    "amount",
    "currency",
    "date",
    "description",
    "paid_by",
    "payment_method",
    "bank_account_id",
}


def _get_account(account_id: int) -> BankAccount:
    account = db.session.get(BankAccount, account_id)
    if account is None:
        raise NotFoundError("Bank account not found")
    return account


def list_accounts() -> list[dict]:
    rows = db.session.query(BankAccount).order_by(BankAccount.id.asc()).all()
    return [r.to_dict() for r in rows]


def create_account(patch: dict, user_id: int | None = None) -> dict:
    account = BankAccount()
    for k, v in patch.items():
        if k in ACCOUNT_MUTABLE_FIELDS:
            setattr(account, k, v)
    if account.balance is None:
        account.balance = Decimal("0")
    db.session.add(account)
    db.session.flush()
    activity_service.record("created", "bank_account", account.id, account.name, user_id)
    db.session.commit()
    return account.to_dict()


def update_account(account_id: int, patch: dict, user_id: int | None = None) -> dict:
    account = _get_account(account_id)
    for k, v in patch.items():
        if k in ACCOUNT_MUTABLE_FIELDS:
            setattr(account, k, v)
    activity_service.record("updated", "bank_account", account.id, account.name, user_id)
    db.session.commit()
    return account.to_dict()


def delete_account(account_id: int, user_id: int | None = None) -> None:
    account = _get_account(account_id)
    activity_service.record("deleted", "bank_account", account.id, account.name, user_id)
    db.session.delete(account)
    db.session.commit()


def adjust_balance(
    account_id: int,
    *,
    amount: Decimal,
    type: str,
    description: str | None = None,
    user_id: int | None = None,
) -> dict:
    """
    Add to or subtract from an account balance under a row lock.

    The resulting balance may be negative.
    """
    if type not in ("add", "subtract"):
        raise ValidationError("type must be one of: add, subtract", field="type")
    if amount <= 0:
        raise ValidationError("amount must be greater than 0", field="amount")
    amount = amount.quantize(CENTS)

    with atomic():
        account = lock_for_update(
            db.session.query(BankAccount).filter(BankAccount.id == account_id)
        ).first()
        if account is None:
            raise NotFoundError("Bank account not found")

        if type == "add":
            account.balance = account.balance + amount
            action = "deposit"
        else:
            account.balance = account.balance - amount
            action = "withdrawal"

        detail = f"{action.capitalize()} of {amount} {account.currency}"
        if description:
            detail = f"{detail}: {description}"
        activity_service.record(action, "bank_account", account.id, detail, user_id)

    logger.info("Adjusted account %s: %s %s", account_id, type, amount)
    return account.to_dict()


def list_expenses(category: str | None = None) -> list[dict]:
    query = db.session.query(Expense)
    if category:
        query = query.filter(Expense.category == category)
    rows = query.order_by(Expense.date.desc(), Expense.id.desc()).all()
    return [r.to_dict() for r in rows]


def create_expense(patch: dict, user_id: int | None = None) -> dict:
    """
    Record an expense. When it is linked to a bank account, the amount
    (converted into the account's currency) is subtracted from that account
    in the same transaction.
    """
    if patch.get("amount") is not None and patch["amount"] <= 0:
        raise ValidationError("amount must be greater than 0", field="amount")

    with atomic():
        expense = Expense()
        for k, v in patch.items():
            if k in EXPENSE_MUTABLE_FIELDS:
                setattr(expense, k, v)
        if expense.currency is None:
            expense.currency = "USD"

        if expense.bank_account_id is not None:
            account = lock_for_update(
                db.session.query(BankAccount).filter(BankAccount.id == expense.bank_account_id)
            ).first()
            if account is None:
                raise ValidationError("Bank account not found", field="bankAccountId")
            debit = convert_decimal(expense.amount, expense.currency, account.currency)
            account.balance = account.balance - debit

        db.session.add(expense)
        db.session.flush()

        activity_service.record(
            "created",
            "expense",
            expense.id,
            f"{expense.category}: {expense.amount} {expense.currency}",
            user_id,
        )
        notification_service.notify_team(
            exclude_user_id=user_id,
            type="expense_added",
            title="Expense added",
            message=f"{expense.category}: {expense.amount} {expense.currency}",
            entity_type="expense",
            entity_id=expense.id,
        )

    return expense.to_dict()


def update_expense(expense_id: int, patch: dict, user_id: int | None = None) -> dict:
    """Edit an expense. Balances already debited are not readjusted."""
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense not found")
    if patch.get("amount") is not None and patch["amount"] <= 0:
        raise ValidationError("amount must be greater than 0", field="amount")
    for k, v in patch.items():
        if k in EXPENSE_MUTABLE_FIELDS:
            setattr(expense, k, v)
    activity_service.record("updated", "expense", expense.id, expense.category, user_id)
    db.session.commit()
    return expense.to_dict()


def delete_expense(expense_id: int, user_id: int | None = None) -> None:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense not found")
    activity_service.record("deleted", "expense", expense.id, expense.category, user_id)
    db.session.delete(expense)
    db.session.commit()
