# Overview: Service-layer payment rules for single- and split-currency tenders.

"""
Payment Sufficiency Rules

WHY: A sale (or a settled tab) may be paid in LRD, in USD, or split across
both. The rules decide whether the tender covers the amount due and
normalize what gets stored on the Transaction.

RULES:
- LRD:  amount_received_lrd >= total_lrd
- USD:  amount_received_usd >= total_usd
- BOTH: both amounts present, and
        amount_received_lrd + amount_received_usd * rate >= total_lrd

The rate is always passed in explicitly. Callers resolve it from the
request override or the DEFAULT_LRD_PER_USD setting; nothing in here
reads config.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Any

from flask import current_app

from ..validation import ValidationError, coerce_optional_cents, coerce_optional_rate


# =============================================================================
# CURRENCIES (CONSTANTS)
# =============================================================================

CURRENCY_LRD = "LRD"
CURRENCY_USD = "USD"
CURRENCY_BOTH = "BOTH"

PAYMENT_CURRENCIES = [CURRENCY_LRD, CURRENCY_USD, CURRENCY_BOTH]
SINGLE_CURRENCIES = [CURRENCY_LRD, CURRENCY_USD]


@dataclass(frozen=True)
class PaymentOutcome:
    """Normalized tender, ready to be written onto a Transaction."""
    currency: str
    amount_received_lrd_cents: int
    amount_received_usd_cents: int
    change_cents: int
    change_currency: str


def require_currency(value: Any, *, allowed: list[str] = PAYMENT_CURRENCIES, field: str = "currency") -> str:
    if not isinstance(value, str) or value.strip().upper() not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value.strip().upper()


def resolve_rate(rate_override: Any) -> Decimal:
    """Caller-supplied rate when given, otherwise the configured fallback."""
    rate = coerce_optional_rate(rate_override)
    if rate is not None:
        return rate
    return Decimal(current_app.config["DEFAULT_LRD_PER_USD"])


def validate_payment(
    *,
    currency: Any,
    amount_received_lrd_cents: Any,
    amount_received_usd_cents: Any,
    total_lrd_cents: int,
    total_usd_cents: int,
    change_currency: Any = None,
    rate: Decimal,
) -> PaymentOutcome:
    """
    Check that the tender covers the amount due and compute change.

    Change is the overpayment, returned in the change currency. For split
    payments the overpayment is measured in LRD and converted at `rate`
    (rounded down when paid out in USD).

    Raises:
        ValidationError: unknown currency, missing amount, or short payment
    """
    currency = require_currency(currency)
    lrd = coerce_optional_cents(amount_received_lrd_cents, "amount_received_lrd_cents")
    usd = coerce_optional_cents(amount_received_usd_cents, "amount_received_usd_cents")

    if currency == CURRENCY_LRD:
        if lrd is None or lrd < total_lrd_cents:
            raise ValidationError("Amount received in LRD must be greater than or equal to the total")
        return PaymentOutcome(
            currency=currency,
            amount_received_lrd_cents=lrd,
            amount_received_usd_cents=0,
            change_cents=lrd - total_lrd_cents,
            change_currency=CURRENCY_LRD,
        )

    if currency == CURRENCY_USD:
        if usd is None or usd < total_usd_cents:
            raise ValidationError("Amount received in USD must be greater than or equal to the total")
        return PaymentOutcome(
            currency=currency,
            amount_received_lrd_cents=0,
            amount_received_usd_cents=usd,
            change_cents=usd - total_usd_cents,
            change_currency=CURRENCY_USD,
        )

    # BOTH
    if lrd is None or usd is None:
        raise ValidationError("Both LRD and USD amounts must be provided for split payment")
    if change_currency is None:
        change_currency = CURRENCY_LRD
    change_currency = require_currency(change_currency, allowed=SINGLE_CURRENCIES, field="change_currency")

    tendered_lrd = Decimal(lrd) + Decimal(usd) * rate
    if tendered_lrd < total_lrd_cents:
        raise ValidationError("Combined payment amount is insufficient")

    excess_lrd = tendered_lrd - total_lrd_cents
    if change_currency == CURRENCY_LRD:
        change = int(excess_lrd.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    else:
        change = int((excess_lrd / rate).quantize(Decimal("1"), rounding=ROUND_DOWN))

    return PaymentOutcome(
        currency=currency,
        amount_received_lrd_cents=lrd,
        amount_received_usd_cents=usd,
        change_cents=change,
        change_currency=change_currency,
    )
