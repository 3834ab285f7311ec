from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text

from .services.pricing_service import validate_percent
from .errors import InvalidDiscount


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - allow_null_fields: nulls the service layer replaces with a default
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    # Non-nullable columns the service fills in when the client sends null
    allow_null_fields: set[str] | None = None


def _columns_by_key(model) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    allow_null = policy.allow_null_fields or set()

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        val = _coerce_value(col, raw)

        # Blank optional strings are stored as NULL
        if isinstance(val, str) and val == "" and col.nullable:
            val = None

        # NULL handling
        if val is None:
            if not col.nullable and k not in allow_null:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and k not in allow_null:
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for key in ("price_cents", "capital_price_cents"):
        if key in patch and patch[key] is not None:
            price = patch[key]
            if price < 0:
                raise ValidationError(f"{key} must be >= 0")
            if price > MAX_PRICE_CENTS:
                raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f})")

    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")


def parse_discount_rules(raw) -> list[tuple[int, int]]:
    """
    Validate a JSON list of {"min_quantity", "percent"} objects.

    Returns (min_quantity, percent_bps) tuples in the submitted order.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("discount_rules must be a list")

    rules = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"discount_rules[{i}] must be an object")
        if "min_quantity" not in item or "percent" not in item:
            raise ValidationError(f"discount_rules[{i}] requires min_quantity and percent")
        min_quantity = _coerce_int(f"discount_rules[{i}].min_quantity", item["min_quantity"])
        if min_quantity < 1:
            raise ValidationError(f"discount_rules[{i}].min_quantity must be >= 1")
        try:
            percent_bps = validate_percent(item["percent"])
        except InvalidDiscount as exc:
            raise ValidationError(f"discount_rules[{i}]: {exc.reason}")
        rules.append((min_quantity, percent_bps))
    return rules


def parse_checkout_lines(raw) -> list[dict]:
    """
    Validate the `lines` array of a checkout request.

    Each entry: {"product_id": int, "quantity": int >= 1,
                 "manual_price_cents": int | null (optional)}
    """
    if not isinstance(raw, list) or not raw:
        raise ValidationError("lines must be a non-empty list")

    lines = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"lines[{i}] must be an object")
        if "product_id" not in item or "quantity" not in item:
            raise ValidationError(f"lines[{i}] requires product_id and quantity")
        quantity = _coerce_int(f"lines[{i}].quantity", item["quantity"])
        if quantity < 1:
            raise ValidationError(f"lines[{i}].quantity must be >= 1")
        manual = item.get("manual_price_cents")
        lines.append({
            "product_id": _coerce_int(f"lines[{i}].product_id", item["product_id"]),
            "quantity": quantity,
            "manual_price_cents": None if manual is None else _coerce_int(f"lines[{i}].manual_price_cents", manual),
        })
    return lines


def optional_cents(payload: dict, key: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    value = _coerce_int(key, value)
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    return value
