# Overview: Service-layer operations for sales, returns and restocks.

"""
Transaction Engine

WHY: Every money event at the counter becomes one immutable Transaction
row with its priced lines. Stock moves in the same database transaction
as the record that explains it.

DESIGN PRINCIPLES:
- One call, one unit of work. Stock changes for every line and the
  Transaction insert commit together; any failure (unknown product,
  short stock, short payment) rolls back all of it.
- Stock is taken with a guarded atomic decrement (see inventory_service).
- Sale lines snapshot name and unit prices at sale time.
- Return lines are valued at the CURRENT catalog price, not the price the
  goods were sold at, and carry an unchecked back-reference to the sale.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Transaction, TransactionLine
from ..validation import (
    ValidationError,
    NotFoundError,
    require_store,
    coerce_int,
    coerce_optional_cents,
    parse_line_items,
)
from dualpos.time_utils import utcnow, day_bounds, range_bounds
from .concurrency import run_with_retry
from .inventory_service import require_product, return_stock, snapshot_line, take_lines
from .payment_service import (
    CURRENCY_LRD,
    require_currency,
    resolve_rate,
    validate_payment,
)


# =============================================================================
# TRANSACTION KINDS (CONSTANTS)
# =============================================================================

KIND_SALE = "sale"
KIND_RESTOCK = "restock"
KIND_RETURN = "return"

DEFAULT_RETURN_REASON = "No reason provided"


def business_day(value: Any) -> tuple[datetime, datetime]:
    """Inclusive UTC window for one calendar day in the business timezone."""
    if not value:
        raise ValidationError("date is required")
    try:
        return day_bounds(value, current_app.config.get("BUSINESS_TIMEZONE"))
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value}") from exc


def business_range(start: Any, end: Any) -> tuple[datetime | None, datetime | None]:
    """Inclusive UTC window from the start of `start` to the end of `end`; either side may be open."""
    try:
        start_dt, end_dt = range_bounds(start, end, current_app.config.get("BUSINESS_TIMEZONE"))
    except ValueError as exc:
        raise ValidationError(f"Invalid date range: {start} - {end}") from exc
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start_date must not be after end_date")
    return start_dt, end_dt


def sum_lines(lines: list) -> tuple[int, int]:
    """(total LRD cents, total USD cents) over snapshot lines."""
    total_lrd = sum(line.line_total_lrd_cents for line in lines)
    total_usd = sum(line.line_total_usd_cents for line in lines)
    return total_lrd, total_usd


# =============================================================================
# SALES
# =============================================================================

def create_sale(
    *,
    store: Any,
    currency: Any,
    line_items: Any,
    amount_received_lrd_cents: Any = None,
    amount_received_usd_cents: Any = None,
    change_currency: Any = None,
    total_lrd_cents: Any = None,
    total_usd_cents: Any = None,
    rate: Any = None,
    occurred_at: datetime | None = None,
) -> Transaction:
    """
    Record a paid sale.

    Args:
        store: Store partition key (required)
        currency: LRD, USD or BOTH
        line_items: [{"product_id": int, "quantity": int}, ...]
        amount_received_*: Tender per currency, in cents
        change_currency: LRD or USD for BOTH (default LRD); forced to `currency` otherwise
        total_*: Amount due; defaults to the sum of the priced lines
        rate: LRD per USD for split payments; DEFAULT_LRD_PER_USD if omitted
        occurred_at: Business time (defaults to now)

    Returns:
        Persisted Transaction of kind 'sale'

    Raises:
        ValidationError: missing store, bad lines, short stock, short payment
        NotFoundError: a product is not in this store
    """
    store = require_store(store)
    currency = require_currency(currency)
    items = parse_line_items(line_items)
    total_lrd = coerce_optional_cents(total_lrd_cents, "total_lrd_cents")
    total_usd = coerce_optional_cents(total_usd_cents, "total_usd_cents")
    effective_rate = resolve_rate(rate)

    def _op():
        lines = take_lines(TransactionLine, store, items, currency)

        line_lrd, line_usd = sum_lines(lines)
        due_lrd = total_lrd if total_lrd is not None else line_lrd
        due_usd = total_usd if total_usd is not None else line_usd

        payment = validate_payment(
            currency=currency,
            amount_received_lrd_cents=amount_received_lrd_cents,
            amount_received_usd_cents=amount_received_usd_cents,
            total_lrd_cents=due_lrd,
            total_usd_cents=due_usd,
            change_currency=change_currency,
            rate=effective_rate,
        )

        transaction = Transaction(
            kind=KIND_SALE,
            store=store,
            currency=payment.currency,
            amount_received_lrd_cents=payment.amount_received_lrd_cents,
            amount_received_usd_cents=payment.amount_received_usd_cents,
            change_cents=payment.change_cents,
            change_currency=payment.change_currency,
            total_lrd_cents=due_lrd,
            total_usd_cents=due_usd,
            occurred_at=occurred_at or utcnow(),
            lines=lines,
        )
        db.session.add(transaction)
        db.session.commit()

        current_app.logger.info(
            "Sale %s recorded in store %s (%s, %d lines)",
            transaction.id, store, currency, len(lines),
        )
        return transaction

    return run_with_retry(_op)


# =============================================================================
# RETURNS
# =============================================================================

def create_return(
    *,
    store: Any,
    line_items: Any,
    currency: Any = CURRENCY_LRD,
    reason: str | None = None,
    original_transaction_id: Any = None,
    occurred_at: datetime | None = None,
) -> Transaction:
    """
    Take goods back into stock and record a 'return' Transaction.

    Line values and totals use the product's current catalog prices; a
    missing price is valued at 0.
    original_transaction_id is stored as given; it is not looked up.

    Raises:
        ValidationError: missing store, empty lines, quantity <= 0
        NotFoundError: a product is not in this store
    """
    store = require_store(store)
    items = parse_line_items(line_items)
    currency = require_currency(currency or CURRENCY_LRD)
    original_id = coerce_int(original_transaction_id, "original_transaction_id") \
        if original_transaction_id is not None else None
    reason = reason.strip() if isinstance(reason, str) and reason.strip() else DEFAULT_RETURN_REASON

    def _op():
        lines = []
        for position, item in enumerate(items):
            product = require_product(item.product_id, store)
            return_stock(product, item.quantity)
            lines.append(snapshot_line(TransactionLine, product, item.quantity, position))

        total_lrd, total_usd = sum_lines(lines)
        transaction = Transaction(
            kind=KIND_RETURN,
            store=store,
            currency=currency,
            total_lrd_cents=total_lrd,
            total_usd_cents=total_usd,
            return_reason=reason,
            original_transaction_id=original_id,
            occurred_at=occurred_at or utcnow(),
            lines=lines,
        )
        db.session.add(transaction)
        db.session.commit()

        current_app.logger.info(
            "Return %s recorded in store %s (original=%s)", transaction.id, store, original_id
        )
        return transaction

    return run_with_retry(_op)


# =============================================================================
# RESTOCKS
# =============================================================================

def record_restock(
    *,
    store: Any,
    line_items: Any,
    note: str | None = None,
    occurred_at: datetime | None = None,
) -> Transaction:
    """
    Add received goods to stock and record a 'restock' Transaction
    valued at current catalog prices. Unpriced products are valued at zero.
    """
    store = require_store(store)
    items = parse_line_items(line_items)

    def _op():
        lines = []
        for position, item in enumerate(items):
            product = require_product(item.product_id, store)
            return_stock(product, item.quantity)
            lines.append(snapshot_line(TransactionLine, product, item.quantity, position))

        total_lrd, total_usd = sum_lines(lines)
        transaction = Transaction(
            kind=KIND_RESTOCK,
            store=store,
            currency=CURRENCY_LRD,
            change_currency=CURRENCY_LRD,
            total_lrd_cents=total_lrd,
            total_usd_cents=total_usd,
            note=note,
            occurred_at=occurred_at or utcnow(),
            lines=lines,
        )
        db.session.add(transaction)
        db.session.commit()

        current_app.logger.info("Restock %s recorded in store %s", transaction.id, store)
        return transaction

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def _store_query(store: str):
    return db.session.query(Transaction).filter(Transaction.store == store)


def _newest_first(query):
    return query.order_by(Transaction.occurred_at.desc(), Transaction.id.desc())


def get_transactions(store: Any, limit: int | None = None) -> list[Transaction]:
    """Most recent transactions of every kind for a store."""
    store = require_store(store)
    limit = limit or current_app.config["TRANSACTION_LIST_LIMIT"]
    return _newest_first(_store_query(store)).limit(limit).all()


def get_transaction(transaction_id: int, store: Any) -> Transaction:
    store = require_store(store)
    transaction = _store_query(store).filter(Transaction.id == transaction_id).first()
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return transaction


def get_transactions_by_date(day: Any, store: Any) -> list[Transaction]:
    """All transactions on one business day."""
    store = require_store(store)
    start_dt, end_dt = business_day(day)
    return _newest_first(
        _store_query(store).filter(
            Transaction.occurred_at >= start_dt,
            Transaction.occurred_at <= end_dt,
        )
    ).all()


def get_transactions_by_date_range(start: Any, end: Any, store: Any) -> dict:
    """
    Transactions between two business days (inclusive) with a summary.

    Summary money is credited to LRD for LRD transactions and to USD for
    everything else.
    """
    store = require_store(store)
    if not start or not end:
        raise ValidationError("start_date and end_date are required")
    start_dt, end_dt = business_range(start, end)

    transactions = _newest_first(
        _store_query(store).filter(
            Transaction.occurred_at >= start_dt,
            Transaction.occurred_at <= end_dt,
        )
    ).all()

    total_lrd = 0
    total_usd = 0
    total_items = 0
    for transaction in transactions:
        if transaction.currency == CURRENCY_LRD:
            total_lrd += transaction.total_lrd_cents or 0
        else:
            total_usd += transaction.total_usd_cents or 0
        total_items += sum(line.quantity for line in transaction.lines)

    return {
        "transactions": transactions,
        "summary": {
            "total_lrd_cents": total_lrd,
            "total_usd_cents": total_usd,
            "total_items": total_items,
            "transaction_count": len(transactions),
        },
    }


def get_transactions_by_product(product_id: int, store: Any) -> dict:
    """Sales that include a product, with quantity and money totals."""
    store = require_store(store)
    transactions = _newest_first(
        _store_query(store).filter(
            Transaction.kind == KIND_SALE,
            Transaction.lines.any(TransactionLine.product_id == product_id),
        )
    ).all()

    total_lrd = 0
    total_usd = 0
    total_quantity = 0
    for transaction in transactions:
        if transaction.currency == CURRENCY_LRD:
            total_lrd += transaction.total_lrd_cents or 0
        else:
            total_usd += transaction.total_usd_cents or 0
        total_quantity += sum(
            line.quantity for line in transaction.lines if line.product_id == product_id
        )

    return {
        "transactions": transactions,
        "totals": {
            "total_lrd_cents": total_lrd,
            "total_usd_cents": total_usd,
            "total_quantity": total_quantity,
        },
    }
