from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .currency import CENTS, CURRENCIES
from .errors import ValidationError
from .time_utils import parse_iso_date, parse_iso_datetime


# Maximum money value that fits Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def camel_to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer, keyed by JSON (camelCase) field names:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: closed vocabularies (status, priority, role, ...)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, tuple[str, ...]] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Accept numeric strings or JSON numbers in whole cents; reject bools, blanks and NaN."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a number", field=field_name)
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field_name} is too large", field=field_name)
    if amount != amount.quantize(CENTS):
        raise ValidationError(f"{field_name} must have at most 2 decimal places", field=field_name)
    return amount


def parse_int(value: Any, field_name: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation and decimals ("1e3", "12.5")
        if stripped and "e" not in stripped.lower() and "." not in stripped:
            try:
                return int(stripped)
            except ValueError:
                pass
    raise ValidationError(f"{field_name} must be an integer", field=field_name)


def _coerce_value(col, value: Any, field_name: str):
    coltype = col.type

    if isinstance(coltype, Integer):
        return parse_int(value, field_name)

    if isinstance(coltype, Numeric):
        return parse_decimal(value, field_name)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{field_name} must be true or false", field=field_name)

    # Datetime must be checked before Date
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                dt = None
            if dt is not None:
                return dt
        raise ValidationError(f"{field_name} must be an ISO-8601 datetime", field=field_name)

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                d = None
            if d is not None:
                return d
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)", field=field_name)

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{field_name} must be a string", field=field_name)
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes an incoming JSON body against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - the policy allowlist, required fields and choices
    Returns a patch dict keyed by column attribute (snake_case).

    partial=False: create semantics (enforce required_on_create)
    partial=True: update semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        for name in sorted(policy.required_on_create):
            if payload.get(name) in (None, ""):
                raise ValidationError(f"{name} is required", field=name)

    cols = _columns_by_key(model)

    for name in payload:
        if name not in policy.writable_fields or camel_to_snake(name) not in cols:
            raise ValidationError(f"Field not allowed: {name}", field=name)

    patch: dict = {}

    for name, raw in payload.items():
        key = camel_to_snake(name)
        col = cols[key]

        if raw is None or (raw == "" and not isinstance(col.type, (String, Text))):
            if not col.nullable:
                raise ValidationError(f"{name} cannot be null", field=name)
            patch[key] = None
            continue

        val = _coerce_value(col, raw, name)

        if isinstance(col.type, (String, Text)) and val == "":
            if not col.nullable:
                raise ValidationError(f"{name} cannot be blank", field=name)
            val = None

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{name} exceeds max length {col.type.length}", field=name)

        allowed = policy.choices.get(name)
        if allowed is not None and val not in allowed:
            raise ValidationError(f"{name} must be one of: {', '.join(allowed)}", field=name)

        patch[key] = val

    return patch


# Business rules that are not captured by column metadata alone.

def enforce_non_negative(patch: dict, *keys: str) -> None:
    for key in keys:
        value = patch.get(key)
        if value is not None and value < 0:
            name = snake_to_camel(key)
            raise ValidationError(f"{name} must be >= 0", field=name)


def enforce_rules_potential_product(patch: dict) -> None:
    enforce_non_negative(patch, "cost_per_unit", "estimated_shipping", "target_selling_price", "suggested_quantity")
    rating = patch.get("buy_rating")
    if rating is not None and not 0 <= rating <= 5:
        raise ValidationError("buyRating must be between 0 and 5", field="buyRating")


def enforce_rules_inventory(patch: dict) -> None:
    enforce_non_negative(patch, "quantity", "quantity_available", "unit_cost", "total_cost")
    qty = patch.get("quantity")
    available = patch.get("quantity_available")
    if qty is not None and available is not None and available > qty:
        raise ValidationError("quantityAvailable cannot exceed quantity", field="quantityAvailable")


def require_fields(payload: dict, *names: str) -> None:
    for name in names:
        if payload.get(name) in (None, ""):
            raise ValidationError(f"{name} is required", field=name)


CURRENCY_CHOICES = CURRENCIES


def reject_unknown(payload: dict, allowed: set[str]) -> None:
    for name in payload:
        if name not in allowed:
            raise ValidationError(f"Field not allowed: {name}", field=name)


def optional_decimal(payload: dict, name: str) -> Decimal | None:
    value = payload.get(name)
    if value in (None, ""):
        return None
    return parse_decimal(value, name)


def optional_date(payload: dict, name: str) -> date | None:
    value = payload.get(name)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)", field=name)
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)", field=name)


def optional_str(payload: dict, name: str, max_length: int | None = None) -> str | None:
    value = payload.get(name)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", field=name)
    value = value.strip()
    if max_length and len(value) > max_length:
        raise ValidationError(f"{name} exceeds max length {max_length}", field=name)
    return value or None


def clean_labels(value: Any) -> list[str] | None:
    """Task labels: a list of non-empty strings, deduplicated in order."""
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError("labels must be a list of strings", field="labels")
    seen: list[str] = []
    for label in (v.strip() for v in value):
        if label and label not in seen:
            seen.append(label)
    return seen
