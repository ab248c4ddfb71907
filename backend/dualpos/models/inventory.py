from __future__ import annotations

from ..extensions import db
from dualpos.time_utils import to_utc_z

class Product(db.Model):
    """
    Product master data, one row per (store, item).

    MULTI-STORE: Products are partitioned by the store name. The pair
    (store, item) is unique; the same item name may exist in many stores
    with independent stock and prices.

    QUANTITY: `quantity` is the mutable on-hand count. It is only changed
    through single-statement atomic updates in inventory_service; never
    read-modify-write it from Python.

    PRICES: Both prices are stored in cents. `price_lrd_cents` is derived
    from `price_usd_cents` times the current rate whenever the rate
    changes. Products without a USD price keep whatever LRD price they had.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("store", "item", name="uq_products_store_item"),
        db.Index("ix_products_store_category", "store", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    store = db.Column(db.String(120), nullable=False, index=True)
    item = db.Column(db.String(255), nullable=False)

    # Descriptive metadata, not used by pricing or stock rules
    measurement = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(120), nullable=True)
    barcode = db.Column(db.String(128), nullable=True, index=True)
    compartment = db.Column(db.String(64), nullable=True)
    shelf = db.Column(db.String(64), nullable=True)

    # NULL means "not counted yet"; stock checks treat it as zero
    quantity = db.Column(db.Integer, nullable=True)

    price_usd_cents = db.Column(db.Integer, nullable=True)
    price_lrd_cents = db.Column(db.Integer, nullable=True)

    # Stock value at catalog price (quantity * price)
    total_usd_cents = db.Column(db.Integer, nullable=True)
    total_lrd_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} item={self.item!r} store={self.store!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store": self.store,
            "item": self.item,
            "measurement": self.measurement,
            "category": self.category,
            "barcode": self.barcode,
            "compartment": self.compartment,
            "shelf": self.shelf,
            "quantity": self.quantity,
            "price_usd_cents": self.price_usd_cents,
            "price_lrd_cents": self.price_lrd_cents,
            "total_usd_cents": self.total_usd_cents,
            "total_lrd_cents": self.total_lrd_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
