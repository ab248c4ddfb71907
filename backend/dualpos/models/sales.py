from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from dualpos.time_utils import to_utc_z, utcnow


class LineItemMixin:
    """
    Columns shared by every priced line (transaction lines and credit lines).

    Name and both unit prices are snapshots taken when the line was
    recorded. Reports read the snapshot, never the current catalog, so
    historical figures survive later price and rate changes.
    """
    id = db.Column(db.Integer, primary_key=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    @declared_attr
    def product_id(cls):
        return db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_usd_cents = db.Column(db.Integer, nullable=False)
    unit_price_lrd_cents = db.Column(db.Integer, nullable=False)

    @property
    def line_total_usd_cents(self) -> int:
        return self.unit_price_usd_cents * self.quantity

    @property
    def line_total_lrd_cents(self) -> int:
        return self.unit_price_lrd_cents * self.quantity

    def line_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_usd_cents": self.unit_price_usd_cents,
            "unit_price_lrd_cents": self.unit_price_lrd_cents,
            "line_total_usd_cents": self.line_total_usd_cents,
            "line_total_lrd_cents": self.line_total_lrd_cents,
        }


class Transaction(db.Model):
    """
    Immutable record of a monetary event: a sale, a restock or a return.

    Written once by transaction_service (or credit_service when a tab is
    settled) and never updated afterwards.

    PAYMENT FIELDS:
    - amount_received_*: what the customer handed over, zero for the side
      that does not apply to the chosen currency
    - change_cents / change_currency: overpayment handed back
    - total_*: amount due in each currency

    RETURNS: return_reason and original_transaction_id are only set for
    kind='return'. The back-reference is informational; it is not checked
    against existing transactions.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_store_occurred", "store", "occurred_at"),
        db.Index("ix_transactions_kind_occurred", "kind", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False, default="sale", index=True)  # sale, restock, return
    store = db.Column(db.String(120), nullable=False, index=True)
    currency = db.Column(db.String(4), nullable=False, default="LRD")  # LRD, USD, BOTH

    amount_received_lrd_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_received_usd_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)
    change_currency = db.Column(db.String(3), nullable=True)

    total_lrd_cents = db.Column(db.Integer, nullable=False, default=0)
    total_usd_cents = db.Column(db.Integer, nullable=False, default=0)

    return_reason = db.Column(db.String(255), nullable=True)
    # Deliberately no FK: returns may reference receipts from before this system
    original_transaction_id = db.Column(db.Integer, nullable=True, index=True)

    note = db.Column(db.String(255), nullable=True)

    # Business time; reports and date filters use this column
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "TransactionLine",
        back_populates="transaction",
        order_by="TransactionLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} kind={self.kind} store={self.store!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "store": self.store,
            "currency": self.currency,
            "line_items": [line.line_dict() for line in self.lines],
            "amount_received_lrd_cents": self.amount_received_lrd_cents,
            "amount_received_usd_cents": self.amount_received_usd_cents,
            "change_cents": self.change_cents,
            "change_currency": self.change_currency,
            "total_lrd_cents": self.total_lrd_cents,
            "total_usd_cents": self.total_usd_cents,
            "return_reason": self.return_reason,
            "original_transaction_id": self.original_transaction_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }


class TransactionLine(LineItemMixin, db.Model):
    """Line items on a transaction; returns use the same shape as sales."""
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    transaction = db.relationship("Transaction", back_populates="lines")
    product = db.relationship("Product")
