# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/dualpos/services/inventory_service.py

from __future__ import annotations

from decimal import Decimal
from typing import Any

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, LineItemMixin
from ..validation import (
    ValidationError,
    NotFoundError,
    LineItemRequest,
    require_store,
    coerce_int,
    coerce_optional_cents,
)
from .concurrency import run_with_retry
from .currency_service import get_current_rate, lrd_from_usd
from .payment_service import CURRENCY_USD
"""
Inventory Ledger Invariants (authoritative)

Stock model:
- Product.quantity is the on-hand count, partitioned by store.
- Every change to quantity is ONE SQL UPDATE with the delta applied in the
  database (quantity = quantity - :n). Never load, modify and save.
- A decrement carries its own guard (quantity >= :n) in the WHERE clause.
  Zero rows updated means insufficient stock; the check and the mutation
  cannot be separated by a concurrent sale.

Unit of work:
- The stock helpers here do not commit. Callers (sales, returns, credits)
  commit once after every line succeeded; run_with_retry rolls back all
  lines if any of them fails.

Prices:
- price_lrd_cents = price_usd_cents * rate (half-up), recomputed for the
  whole catalog on every rate update. Products with no USD price are left alone.
"""


def find_product(product_id: int, store: str) -> Product | None:
    return db.session.query(Product).filter_by(id=product_id, store=store).first()


def require_product(product_id: int, store: str) -> Product:
    product = find_product(product_id, store)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found in store {store}")
    return product


def take_stock(product: Product, quantity: int) -> Product:
    """
    Atomically decrement on-hand quantity, failing when stock is short.

    Raises:
        ValidationError: fewer than `quantity` units on hand
    """
    if quantity <= 0:
        raise ValidationError(f"Invalid quantity for product {product.item}")

    updated = db.session.query(Product).filter(
        Product.id == product.id,
        Product.store == product.store,
        func.coalesce(Product.quantity, 0) >= quantity,
    ).update(
        {Product.quantity: func.coalesce(Product.quantity, 0) - quantity},
        synchronize_session=False,
    )
    if updated == 0:
        raise ValidationError(f"Insufficient quantity for product {product.item}")

    db.session.refresh(product)
    return product


def return_stock(product: Product, quantity: int) -> Product:
    """Atomically increment on-hand quantity (inverse of take_stock)."""
    if quantity <= 0:
        raise ValidationError(f"Invalid quantity for product {product.item}")

    db.session.query(Product).filter(
        Product.id == product.id,
        Product.store == product.store,
    ).update(
        {Product.quantity: func.coalesce(Product.quantity, 0) + quantity},
        synchronize_session=False,
    )
    db.session.refresh(product)
    return product


def adjust_quantity(product_id: int, store: str, delta: int) -> Product:
    """
    Apply a signed stock delta to one product and commit.

    Negative deltas go through the guarded decrement.
    """
    store = require_store(store)
    delta = coerce_int(delta, "delta")
    if delta == 0:
        raise ValidationError("delta must be non-zero")

    def _op():
        product = require_product(product_id, store)
        if delta < 0:
            take_stock(product, -delta)
        else:
            return_stock(product, delta)
        db.session.commit()
        return product

    return run_with_retry(_op)


def snapshot_line(
    line_cls: type[LineItemMixin],
    product: Product,
    quantity: int,
    position: int,
    *,
    price_currency: str | None = None,
):
    """
    Build a priced line for product, freezing its current name and prices.

    price_currency names the tender the line is sold in; the matching
    catalog price must exist (split tenders are settled in LRD). A missing
    price on the other side is snapshotted as 0. With no price_currency
    both sides may be missing.

    Raises:
        ValidationError: product has no price in price_currency
    """
    if price_currency is not None:
        required = product.price_usd_cents if price_currency == CURRENCY_USD else product.price_lrd_cents
        if required is None:
            raise ValidationError(f"Product {product.item} has no price")

    return line_cls(
        position=position,
        product_id=product.id,
        product_name=product.item,
        quantity=quantity,
        unit_price_usd_cents=product.price_usd_cents or 0,
        unit_price_lrd_cents=product.price_lrd_cents or 0,
    )


def take_lines(
    line_cls: type[LineItemMixin],
    store: str,
    items: list[LineItemRequest],
    price_currency: str,
) -> list:
    """
    Sale-side stock procedure shared by sales and tabs: look up each
    product in the store, take stock, and snapshot a line. Does not commit.
    """
    lines = []
    for position, item in enumerate(items):
        product = require_product(item.product_id, store)
        take_stock(product, item.quantity)
        lines.append(snapshot_line(line_cls, product, item.quantity, position, price_currency=price_currency))
    return lines


def update_prices_for_rate(rate: Decimal) -> int:
    """
    Recompute price_lrd (and total_lrd where quantity is known) for every
    product that has a USD price. Returns the number of products touched.
    """
    def _op():
        products = db.session.query(Product).filter(
            Product.price_usd_cents.isnot(None)
        ).order_by(Product.id.asc()).all()

        for product in products:
            product.price_lrd_cents = lrd_from_usd(product.price_usd_cents, rate)
            if product.quantity is not None:
                product.total_lrd_cents = product.quantity * product.price_lrd_cents

        db.session.commit()
        return len(products)

    return run_with_retry(_op)


def create_product(
    *,
    store: Any,
    item: Any,
    quantity: Any = 0,
    price_usd_cents: Any = None,
    price_lrd_cents: Any = None,
    measurement: str | None = None,
    category: str | None = None,
    barcode: str | None = None,
    compartment: str | None = None,
    shelf: str | None = None,
) -> Product:
    """
    Add a product to a store's catalog.

    When only the USD price is given, the LRD price is derived from the
    current rate. Stock values are filled in from quantity and prices.

    Raises:
        ValidationError: missing store/item, bad numbers, or (store, item) already exists
    """
    store = require_store(store)
    if not isinstance(item, str) or not item.strip():
        raise ValidationError("item is required")
    item = item.strip()

    quantity = coerce_int(quantity, "quantity") if quantity is not None else None
    if quantity is not None and quantity < 0:
        raise ValidationError("quantity must be >= 0")
    price_usd_cents = coerce_optional_cents(price_usd_cents, "price_usd_cents")
    price_lrd_cents = coerce_optional_cents(price_lrd_cents, "price_lrd_cents")

    if price_usd_cents is not None and price_lrd_cents is None:
        rate = get_current_rate()
        price_lrd_cents = lrd_from_usd(price_usd_cents, rate.lrd_per_usd)

    def _op():
        existing = db.session.query(Product).filter_by(store=store, item=item).first()
        if existing is not None:
            raise ValidationError(f"Product {item!r} already exists in store {store}")

        product = Product(
            store=store,
            item=item,
            quantity=quantity,
            price_usd_cents=price_usd_cents,
            price_lrd_cents=price_lrd_cents,
            measurement=measurement,
            category=category,
            barcode=barcode,
            compartment=compartment,
            shelf=shelf,
        )
        if quantity is not None and price_usd_cents is not None:
            product.total_usd_cents = quantity * price_usd_cents
        if quantity is not None and price_lrd_cents is not None:
            product.total_lrd_cents = quantity * price_lrd_cents

        db.session.add(product)
        db.session.commit()
        current_app.logger.info("Product %r created in store %s", item, store)
        return product

    return run_with_retry(_op)


def list_products(store: Any, category: str | None = None) -> list[Product]:
    store = require_store(store)
    query = db.session.query(Product).filter_by(store=store)
    if category:
        query = query.filter_by(category=category)
    return query.order_by(Product.item.asc()).all()


def get_inventory_summary(store: Any) -> dict:
    """Product count, units on hand and stock value at catalog prices."""
    store = require_store(store)
    row = db.session.query(
        func.count(Product.id).label("product_count"),
        func.coalesce(func.sum(Product.quantity), 0).label("total_pieces"),
        func.coalesce(func.sum(Product.quantity * Product.price_usd_cents), 0).label("value_usd"),
        func.coalesce(func.sum(Product.quantity * Product.price_lrd_cents), 0).label("value_lrd"),
    ).filter(Product.store == store).one()

    out_of_stock = db.session.query(func.count(Product.id)).filter(
        Product.store == store,
        func.coalesce(Product.quantity, 0) <= 0,
    ).scalar()

    return {
        "store": store,
        "product_count": int(row.product_count or 0),
        "total_pieces": int(row.total_pieces or 0),
        "stock_value_usd_cents": int(row.value_usd or 0),
        "stock_value_lrd_cents": int(row.value_lrd or 0),
        "out_of_stock_count": int(out_of_stock or 0),
    }
