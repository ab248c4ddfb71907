# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

"""
Reporting Aggregator

Sales report folding rules (authoritative):
- Sales and returns in the window are fetched separately and folded into
  three rollups keyed by business day, by store, and by (product name, store).
- Sales add money, items and a transaction count; returns subtract money
  and items from the same bucket and bump its `returns` counter.
- After folding, money and quantity fields are floored at zero. A bucket
  with more returned than sold reports zero, not a negative figure.
- Product revenue is credited to LRD for LRD transactions and to USD for
  USD and split transactions, using the line's snapshot unit price.
- Output ordering is fully deterministic so identical inputs give
  identical reports.
"""

from __future__ import annotations

from typing import Any

from flask import current_app
from sqlalchemy import func

from dualpos.extensions import db
from dualpos.models import Product, Transaction, TransactionLine
from dualpos.services.payment_service import CURRENCY_LRD, CURRENCY_BOTH
from dualpos.services.transaction_service import (
    KIND_SALE,
    KIND_RETURN,
    business_range,
)
from dualpos.time_utils import local_date_key, to_utc_z
from dualpos.validation import ValidationError, require_store


def _window_query(store: str | None, start_dt, end_dt):
    query = db.session.query(Transaction)
    if store is not None:
        query = query.filter(Transaction.store == store)
    if start_dt:
        query = query.filter(Transaction.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.occurred_at <= end_dt)
    return query


def _newest_first(query):
    return query.order_by(Transaction.occurred_at.desc(), Transaction.id.desc())


def _rollup(**keys) -> dict:
    bucket = dict(keys)
    bucket.update(
        {
            "total_lrd_cents": 0,
            "total_usd_cents": 0,
            "transactions": 0,
            "returns": 0,
            "items": 0,
        }
    )
    return bucket


def _product_rollup(name: str, store: str) -> dict:
    return {
        "name": name,
        "store": store,
        "quantity_sold": 0,
        "quantity_returned": 0,
        "quantity": 0,
        "total_lrd_cents": 0,
        "total_usd_cents": 0,
        "transactions": 0,
        "returns": 0,
    }


def _clamp(bucket: dict, *fields: str) -> None:
    for field in fields:
        bucket[field] = max(0, bucket[field])


def generate_sales_report(
    *,
    store: Any = None,
    all_stores: bool = False,
    start: Any = None,
    end: Any = None,
) -> dict:
    """
    Net sales report for one store (or every store) over a date window.

    Args:
        store: Store to report on; ignored when all_stores is set
        all_stores: Opt in to a cross-store report
        start, end: Business dates, inclusive; either may be omitted

    Returns:
        summary, daily_totals (newest day first), product_totals (most sold
        first), store_totals (busiest first), recent_transactions (capped)

    Raises:
        ValidationError: neither store nor all_stores given, or bad dates
    """
    if all_stores:
        store = None
    else:
        if not store:
            raise ValidationError("Either store parameter or all_stores flag is required")
        store = require_store(store)
    tz_name = current_app.config.get("BUSINESS_TIMEZONE")
    start_dt, end_dt = business_range(start, end)

    sales = _newest_first(
        _window_query(store, start_dt, end_dt).filter(Transaction.kind == KIND_SALE)
    ).all()
    returns = _newest_first(
        _window_query(store, start_dt, end_dt).filter(Transaction.kind == KIND_RETURN)
    ).all()
    recent = _newest_first(
        _window_query(store, start_dt, end_dt).filter(Transaction.kind.in_([KIND_SALE, KIND_RETURN]))
    ).limit(current_app.config["RECENT_TRANSACTIONS_LIMIT"]).all()

    daily: dict[str, dict] = {}
    stores: dict[str, dict] = {}
    products: dict[tuple[str, str], dict] = {}
    overall = {
        "total_lrd_cents": 0,
        "total_usd_cents": 0,
        "total_items": 0,
        "total_transactions": 0,
        "total_returns": 0,
        "total_amount_received_lrd_cents": 0,
        "total_amount_received_usd_cents": 0,
        "total_change_lrd_cents": 0,
        "total_change_usd_cents": 0,
    }

    for sign, transactions in ((1, sales), (-1, returns)):
        for tx in transactions:
            day_key = local_date_key(tx.occurred_at, tz_name)
            day = daily.setdefault(day_key, _rollup(date=day_key))
            store_bucket = stores.setdefault(tx.store, _rollup(store=tx.store))

            for bucket in (day, store_bucket, overall):
                bucket["total_lrd_cents"] += sign * (tx.total_lrd_cents or 0)
                bucket["total_usd_cents"] += sign * (tx.total_usd_cents or 0)

            if sign > 0:
                day["transactions"] += 1
                store_bucket["transactions"] += 1
                overall["total_transactions"] += 1
                _track_tender(overall, tx)
            else:
                day["returns"] += 1
                store_bucket["returns"] += 1
                overall["total_returns"] += 1

            revenue_key = "total_lrd_cents" if tx.currency == CURRENCY_LRD else "total_usd_cents"
            seen_products: set[tuple[str, str]] = set()
            for line in tx.lines:
                quantity = line.quantity or 0
                day["items"] += sign * quantity
                store_bucket["items"] += sign * quantity
                overall["total_items"] += sign * quantity

                product_key = (line.product_name, tx.store)
                product = products.setdefault(product_key, _product_rollup(*product_key))
                if sign > 0:
                    product["quantity_sold"] += quantity
                else:
                    product["quantity_returned"] += quantity
                product["quantity"] += sign * quantity

                unit_price = (
                    line.unit_price_lrd_cents if revenue_key == "total_lrd_cents"
                    else line.unit_price_usd_cents
                )
                product[revenue_key] += sign * (unit_price or 0) * quantity

                if product_key not in seen_products:
                    seen_products.add(product_key)
                    product["transactions" if sign > 0 else "returns"] += 1

    for bucket in list(daily.values()) + list(stores.values()):
        _clamp(bucket, "total_lrd_cents", "total_usd_cents", "items")
    for bucket in products.values():
        _clamp(bucket, "total_lrd_cents", "total_usd_cents", "quantity")
    _clamp(overall, "total_lrd_cents", "total_usd_cents", "total_items")
    overall["store_count"] = len(stores)

    return {
        "store": store,
        "all_stores": bool(all_stores),
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "summary": overall,
        "daily_totals": sorted(daily.values(), key=lambda b: b["date"], reverse=True),
        "product_totals": sorted(
            products.values(),
            key=lambda b: (-b["quantity_sold"], b["name"], b["store"]),
        ),
        "store_totals": sorted(
            stores.values(),
            key=lambda b: (-b["transactions"], b["store"]),
        ),
        "recent_transactions": [tx.to_dict() for tx in recent],
    }


def _track_tender(overall: dict, tx: Transaction) -> None:
    """Received amounts and change handed back, per currency."""
    if tx.currency == CURRENCY_BOTH:
        overall["total_amount_received_lrd_cents"] += tx.amount_received_lrd_cents or 0
        overall["total_amount_received_usd_cents"] += tx.amount_received_usd_cents or 0
    elif tx.currency == CURRENCY_LRD:
        overall["total_amount_received_lrd_cents"] += tx.amount_received_lrd_cents or 0
    else:
        overall["total_amount_received_usd_cents"] += tx.amount_received_usd_cents or 0

    if tx.change_cents:
        if (tx.change_currency or tx.currency) == CURRENCY_LRD:
            overall["total_change_lrd_cents"] += tx.change_cents
        else:
            overall["total_change_usd_cents"] += tx.change_cents


def get_top_products(*, store: Any, start: Any = None, end: Any = None) -> list[dict]:
    """
    Best sellers by units for a store.

    Line quantities and snapshot revenue (both currencies) are summed per
    product over sale transactions, joined to the current catalog for the
    display name, and capped at TOP_PRODUCTS_LIMIT. Products that are no
    longer in the catalog are left out.
    """
    store = require_store(store)
    start_dt, end_dt = business_range(start, end)

    total_quantity = func.sum(TransactionLine.quantity)
    query = db.session.query(
        TransactionLine.product_id.label("product_id"),
        Product.item.label("item"),
        total_quantity.label("total_quantity"),
        func.sum(TransactionLine.quantity * TransactionLine.unit_price_lrd_cents).label("sales_lrd"),
        func.sum(TransactionLine.quantity * TransactionLine.unit_price_usd_cents).label("sales_usd"),
        func.count(func.distinct(TransactionLine.transaction_id)).label("transactions"),
    ).join(
        Transaction, TransactionLine.transaction_id == Transaction.id
    ).join(
        Product, TransactionLine.product_id == Product.id
    ).filter(
        Transaction.kind == KIND_SALE,
        Transaction.store == store,
    )

    if start_dt:
        query = query.filter(Transaction.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(Transaction.occurred_at <= end_dt)

    rows = query.group_by(TransactionLine.product_id, Product.item).order_by(
        total_quantity.desc(), TransactionLine.product_id.asc()
    ).limit(current_app.config["TOP_PRODUCTS_LIMIT"]).all()

    return [
        {
            "product_id": row.product_id,
            "item": row.item,
            "total_quantity": int(row.total_quantity or 0),
            "total_sales_lrd_cents": int(row.sales_lrd or 0),
            "total_sales_usd_cents": int(row.sales_usd or 0),
            "transactions": int(row.transactions or 0),
        }
        for row in rows
    ]
