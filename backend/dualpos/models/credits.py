from __future__ import annotations

from ..extensions import db
from dualpos.time_utils import to_utc_z, utcnow
from .sales import LineItemMixin


class Credit(db.Model):
    """
    A tab: goods handed to a named customer now, paid for later.

    LIFECYCLE: pending -> paid, exactly once. Stock is taken when the tab
    is opened. Settling it creates a sale Transaction (linked through
    payment_transaction_id) and stamps paid_at. There is no cancel or
    write-off path.
    """
    __tablename__ = "credits"
    __table_args__ = (
        db.Index("ix_credits_store_status", "store", "status"),
        db.Index("ix_credits_store_occurred", "store", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store = db.Column(db.String(120), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False, index=True)

    total_lrd_cents = db.Column(db.Integer, nullable=False, default=0)
    total_usd_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending")  # pending, paid
    preferred_currency = db.Column(db.String(3), nullable=False, default="LRD")  # LRD, USD

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    payment_transaction_id = db.Column(
        db.Integer, db.ForeignKey("transactions.id"), nullable=True, unique=True
    )

    lines = db.relationship(
        "CreditLine",
        back_populates="credit",
        order_by="CreditLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    payment_transaction = db.relationship("Transaction", foreign_keys=[payment_transaction_id])

    def __repr__(self) -> str:
        return f"<Credit id={self.id} customer={self.customer_name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store": self.store,
            "customer_name": self.customer_name,
            "line_items": [line.line_dict() for line in self.lines],
            "total_lrd_cents": self.total_lrd_cents,
            "total_usd_cents": self.total_usd_cents,
            "status": self.status,
            "preferred_currency": self.preferred_currency,
            "occurred_at": to_utc_z(self.occurred_at),
            "paid_at": to_utc_z(self.paid_at) if self.paid_at else None,
            "payment_transaction_id": self.payment_transaction_id,
        }


class CreditLine(LineItemMixin, db.Model):
    """Line items on a tab; same snapshot shape as transaction lines."""
    __tablename__ = "credit_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    credit_id = db.Column(db.Integer, db.ForeignKey("credits.id"), nullable=False, index=True)

    credit = db.relationship("Credit", back_populates="lines")
    product = db.relationship("Product")
