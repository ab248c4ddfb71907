# Overview: Service-layer operations for the shared LRD/USD exchange rate.

"""
Currency Rate Store

A single shared rate (LRD per USD) used for two things:
- deriving every product's LRD price from its USD price
- the default for split (BOTH) payment checks, via config

Updating the rate re-prices the whole catalog in the same call. The
cascade is not isolated from concurrent sales; a sale sees either the
old or the new LRD price of each product, and snapshots whichever it saw.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import CurrencyRate
from ..validation import coerce_rate
from dualpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


def lrd_from_usd(usd_cents: int, rate: Decimal) -> int:
    """Convert USD cents to LRD cents at rate, rounding half-up to the cent."""
    return int((Decimal(usd_cents) * Decimal(rate)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def default_rate() -> Decimal:
    return Decimal(current_app.config["DEFAULT_LRD_PER_USD"])


def get_current_rate() -> CurrencyRate:
    """
    Return the singleton rate, creating it with the configured default
    when none exists yet.
    """
    def _op():
        rate = db.session.query(CurrencyRate).order_by(CurrencyRate.id.asc()).first()
        if rate is None:
            rate = CurrencyRate(lrd_per_usd=default_rate(), updated_at=utcnow())
            db.session.add(rate)
            db.session.commit()
            current_app.logger.info("Currency rate initialized to %s LRD/USD", rate.lrd_per_usd)
        return rate

    return run_with_retry(_op)


def update_rate(new_rate: Any) -> tuple[CurrencyRate, int]:
    """
    Persist a new rate and re-price the catalog.

    Returns:
        (rate record, number of products whose LRD price was recomputed)

    Raises:
        ValidationError: rate is not a finite positive number
    """
    rate_value = coerce_rate(new_rate)

    def _op():
        rate = lock_for_update(
            db.session.query(CurrencyRate).order_by(CurrencyRate.id.asc())
        ).first()
        if rate is None:
            rate = CurrencyRate(lrd_per_usd=rate_value, updated_at=utcnow())
            db.session.add(rate)
        else:
            rate.lrd_per_usd = rate_value
            rate.updated_at = utcnow()
        db.session.commit()
        return rate

    current_app.logger.info("Updating rate to %s. Recalculating product LRD prices...", rate_value)
    rate = run_with_retry(_op)

    from .inventory_service import update_prices_for_rate
    repriced = update_prices_for_rate(rate_value)

    current_app.logger.info("Rate %s applied; %d products re-priced", rate_value, repriced)
    return rate, repriced
