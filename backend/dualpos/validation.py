from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from dualpos.time_utils import parse_iso_datetime


# Maximum amount: 9,999,999.99 in either currency (999,999,999 cents)
# This prevents database overflow issues and nonsensical totals
MAX_AMOUNT_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem (bad field, short stock, short payment)."""


class NotFoundError(LookupError):
    """404-level: product, credit or transaction unknown for the store."""


class StorageError(RuntimeError):
    """500-level: the database failed underneath a service call."""


@dataclass(frozen=True)
class LineItemRequest:
    """One requested line: which product (within the store) and how many."""
    product_id: int
    quantity: int


def require_store(store: Any) -> str:
    """Store is a required, case-sensitive partition key; only edge whitespace is trimmed."""
    if store is None or not isinstance(store, str) or not store.strip():
        raise ValidationError("Store is required")
    return store.strip()


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion. Rejects bools, floats with a fraction,
    decimals and scientific notation in strings.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def coerce_cents(value: Any, field: str) -> int:
    cents = coerce_int(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def coerce_optional_cents(value: Any, field: str) -> int | None:
    if value is None:
        return None
    return coerce_cents(value, field)


def coerce_rate(value: Any, field: str = "rate") -> Decimal:
    """A finite, strictly positive exchange rate (LRD per USD)."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Invalid {field}. Please provide a positive number.")
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}. Please provide a positive number.")
    if not rate.is_finite() or rate <= 0:
        raise ValidationError(f"Invalid {field}. Please provide a positive number.")
    return rate


def coerce_optional_rate(value: Any, field: str = "rate") -> Decimal | None:
    if value is None:
        return None
    return coerce_rate(value, field)


def parse_line_items(raw: Any, *, allow_empty: bool = False) -> list[LineItemRequest]:
    """
    Validate requested lines: a list of {"product_id", "quantity"} objects,
    each quantity a positive integer.
    """
    if raw is None:
        raw = []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("line_items must be a list")
    if not raw and not allow_empty:
        raise ValidationError("At least one line item is required")

    items: list[LineItemRequest] = []
    for index, entry in enumerate(raw):
        if isinstance(entry, LineItemRequest):
            product_id, quantity = entry.product_id, entry.quantity
        elif isinstance(entry, dict):
            product_id = entry.get("product_id")
            quantity = entry.get("quantity")
        else:
            raise ValidationError(f"line_items[{index}] must be an object")

        if product_id is None:
            raise ValidationError(f"line_items[{index}].product_id is required")
        product_id = coerce_int(product_id, f"line_items[{index}].product_id")

        if quantity is None:
            raise ValidationError(f"Invalid quantity for product {product_id}")
        quantity = coerce_int(quantity, f"line_items[{index}].quantity")
        if quantity <= 0:
            raise ValidationError(f"Invalid quantity for product {product_id}")

        items.append(LineItemRequest(product_id=product_id, quantity=quantity))
    return items


def coerce_optional_datetime(value: Any, field: str = "occurred_at") -> datetime | None:
    """ISO-8601 string to UTC-naive datetime; None or blank means 'now' to the caller."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime string")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value}")
