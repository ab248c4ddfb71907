# Overview: Service-layer operations for customer tabs (pay-later sales).

"""
Credit (Tab) Engine

WHY: Regular customers take goods now and settle later. The goods leave
the shelf immediately, so stock is taken when the tab is opened; the
money arrives as an ordinary sale Transaction when the tab is paid.

LIFECYCLE:
1. create_credit (pending) - stock taken, prices snapshotted, no payment check
2. pay_credit (pending -> paid) - payment validated against the tab totals,
   sale Transaction created with the tab's lines, tab linked and stamped

There is no cancel or write-off; a paid tab is final.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Credit, CreditLine, Transaction, TransactionLine
from ..validation import (
    ValidationError,
    NotFoundError,
    require_store,
    coerce_optional_cents,
    parse_line_items,
)
from dualpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import take_lines
from .payment_service import (
    CURRENCY_LRD,
    CURRENCY_USD,
    SINGLE_CURRENCIES,
    require_currency,
    resolve_rate,
    validate_payment,
)
from .transaction_service import KIND_SALE, business_range, sum_lines


# =============================================================================
# CREDIT STATUS CONSTANTS
# =============================================================================

CREDIT_STATUS_PENDING = "pending"
CREDIT_STATUS_PAID = "paid"

VALID_CREDIT_STATUSES = [CREDIT_STATUS_PENDING, CREDIT_STATUS_PAID]


def _status_filter(status: Any) -> str | None:
    """Unknown or empty status filters are ignored, matching the list endpoints."""
    if isinstance(status, str) and status in VALID_CREDIT_STATUSES:
        return status
    return None


# =============================================================================
# CREDIT CREATION
# =============================================================================

def create_credit(
    *,
    store: Any,
    customer_name: Any,
    line_items: Any,
    total_lrd_cents: Any = None,
    total_usd_cents: Any = None,
    preferred_currency: Any = None,
    occurred_at: datetime | None = None,
) -> Credit:
    """
    Open a tab for a customer.

    Stock is taken exactly as for a sale. Totals default to the sum of the
    priced lines. No payment is checked; the debt stays open until paid.

    Raises:
        ValidationError: missing store or customer, bad lines, short stock
        NotFoundError: a product is not in this store
    """
    store = require_store(store)
    if not isinstance(customer_name, str) or not customer_name.strip():
        raise ValidationError("Customer name is required")
    customer_name = customer_name.strip()
    items = parse_line_items(line_items)
    total_lrd = coerce_optional_cents(total_lrd_cents, "total_lrd_cents")
    total_usd = coerce_optional_cents(total_usd_cents, "total_usd_cents")
    preferred = require_currency(
        preferred_currency or CURRENCY_LRD,
        allowed=SINGLE_CURRENCIES,
        field="preferred_currency",
    )

    def _op():
        lines = take_lines(CreditLine, store, items, preferred)
        line_lrd, line_usd = sum_lines(lines)

        credit = Credit(
            store=store,
            customer_name=customer_name,
            total_lrd_cents=total_lrd if total_lrd is not None else line_lrd,
            total_usd_cents=total_usd if total_usd is not None else line_usd,
            status=CREDIT_STATUS_PENDING,
            preferred_currency=preferred,
            occurred_at=occurred_at or utcnow(),
            lines=lines,
        )
        db.session.add(credit)
        db.session.commit()

        current_app.logger.info(
            "Credit %s opened for %r in store %s", credit.id, customer_name, store
        )
        return credit

    return run_with_retry(_op)


# =============================================================================
# CREDIT SETTLEMENT
# =============================================================================

def pay_credit(
    *,
    credit_id: int,
    store: Any,
    currency: Any,
    amount_received_lrd_cents: Any = None,
    amount_received_usd_cents: Any = None,
    change_currency: Any = None,
    rate: Any = None,
    occurred_at: datetime | None = None,
) -> tuple[Credit, Transaction]:
    """
    Settle a pending tab.

    Payment rules are the same as for a sale, with the tab's stored totals
    as the amount due. Stock is not touched again.

    Returns:
        (updated credit, new sale Transaction)

    Raises:
        NotFoundError: no pending credit with this id in this store
        ValidationError: bad currency or short payment
    """
    store = require_store(store)
    currency = require_currency(currency)
    effective_rate = resolve_rate(rate)

    def _op():
        credit = lock_for_update(
            db.session.query(Credit).filter_by(
                id=credit_id,
                store=store,
                status=CREDIT_STATUS_PENDING,
            )
        ).first()
        if credit is None:
            raise NotFoundError("Pending credit not found")

        payment = validate_payment(
            currency=currency,
            amount_received_lrd_cents=amount_received_lrd_cents,
            amount_received_usd_cents=amount_received_usd_cents,
            total_lrd_cents=credit.total_lrd_cents,
            total_usd_cents=credit.total_usd_cents,
            change_currency=change_currency,
            rate=effective_rate,
        )

        paid_at = occurred_at or utcnow()
        transaction = Transaction(
            kind=KIND_SALE,
            store=store,
            currency=payment.currency,
            amount_received_lrd_cents=payment.amount_received_lrd_cents,
            amount_received_usd_cents=payment.amount_received_usd_cents,
            change_cents=payment.change_cents,
            change_currency=payment.change_currency,
            total_lrd_cents=credit.total_lrd_cents,
            total_usd_cents=credit.total_usd_cents,
            note=f"Payment for credit {credit.id}",
            occurred_at=paid_at,
            lines=[
                TransactionLine(
                    position=line.position,
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price_usd_cents=line.unit_price_usd_cents,
                    unit_price_lrd_cents=line.unit_price_lrd_cents,
                )
                for line in credit.lines
            ],
        )
        db.session.add(transaction)
        db.session.flush()

        # Claim the tab with a guarded UPDATE; a concurrent payment that
        # already flipped it leaves zero rows here.
        claimed = db.session.query(Credit).filter(
            Credit.id == credit.id,
            Credit.status == CREDIT_STATUS_PENDING,
        ).update(
            {
                Credit.status: CREDIT_STATUS_PAID,
                Credit.paid_at: paid_at,
                Credit.payment_transaction_id: transaction.id,
            },
            synchronize_session=False,
        )
        if claimed == 0:
            raise NotFoundError("Pending credit not found")
        db.session.commit()

        current_app.logger.info(
            "Credit %s paid in store %s by transaction %s", credit.id, store, transaction.id
        )
        return credit, transaction

    return run_with_retry(_op)


# =============================================================================
# CREDIT QUERIES
# =============================================================================

def _newest_first(query):
    return query.order_by(Credit.occurred_at.desc(), Credit.id.desc())


def get_credits(store: Any, status: Any = None) -> list[Credit]:
    store = require_store(store)
    query = db.session.query(Credit).filter_by(store=store)
    status = _status_filter(status)
    if status:
        query = query.filter_by(status=status)
    return _newest_first(query).all()


def get_credit(credit_id: int, store: Any) -> Credit:
    store = require_store(store)
    credit = db.session.query(Credit).filter_by(id=credit_id, store=store).first()
    if credit is None:
        raise NotFoundError("Credit not found")
    return credit


def get_credits_by_customer(store: Any, customer_name: Any) -> list[Credit]:
    """Case-insensitive partial match on the customer name."""
    store = require_store(store)
    if not isinstance(customer_name, str) or not customer_name.strip():
        raise ValidationError("Customer name parameter is required")
    pattern = f"%{customer_name.strip()}%"
    return _newest_first(
        db.session.query(Credit).filter(
            Credit.store == store,
            Credit.customer_name.ilike(pattern),
        )
    ).all()


def get_credits_by_date_range(start: Any, end: Any, store: Any, status: Any = None) -> dict:
    store = require_store(store)
    if not start or not end:
        raise ValidationError("start_date and end_date are required")
    start_dt, end_dt = business_range(start, end)

    query = db.session.query(Credit).filter(
        Credit.store == store,
        Credit.occurred_at >= start_dt,
        Credit.occurred_at <= end_dt,
    )
    status = _status_filter(status)
    if status:
        query = query.filter(Credit.status == status)
    credits = _newest_first(query).all()

    return {
        "credits": credits,
        "totals": {
            "total_lrd_cents": sum(c.total_lrd_cents for c in credits),
            "total_usd_cents": sum(c.total_usd_cents for c in credits),
            "count": len(credits),
        },
    }


def _balance_bucket(credits: list[Credit]) -> dict:
    """Totals for a group of tabs, sub-totalled by preferred currency."""
    bucket = {
        "total_lrd_cents": 0,
        "total_usd_cents": 0,
        "count": 0,
        "lrd_count": 0,
        "usd_count": 0,
        "lrd_total_cents": 0,
        "usd_total_cents": 0,
    }
    for credit in credits:
        bucket["total_lrd_cents"] += credit.total_lrd_cents
        bucket["total_usd_cents"] += credit.total_usd_cents
        bucket["count"] += 1
        if credit.preferred_currency == CURRENCY_USD:
            bucket["usd_count"] += 1
            bucket["usd_total_cents"] += credit.total_usd_cents
        else:
            bucket["lrd_count"] += 1
            bucket["lrd_total_cents"] += credit.total_lrd_cents
    return bucket


def get_credit_balance(store: Any) -> dict:
    """
    Outstanding vs settled tabs for a store.

    Returns pending, paid and combined buckets plus the most recent tabs.
    """
    store = require_store(store)

    pending = db.session.query(Credit).filter_by(store=store, status=CREDIT_STATUS_PENDING).all()
    paid = db.session.query(Credit).filter_by(store=store, status=CREDIT_STATUS_PAID).all()
    pending_totals = _balance_bucket(pending)
    paid_totals = _balance_bucket(paid)

    recent = _newest_first(db.session.query(Credit).filter_by(store=store)).limit(
        current_app.config["RECENT_CREDITS_LIMIT"]
    ).all()

    return {
        "pending": pending_totals,
        "paid": paid_totals,
        "total": {key: pending_totals[key] + paid_totals[key] for key in pending_totals},
        "recent_credits": recent,
    }
