from __future__ import annotations

from ..extensions import db
from dualpos.time_utils import to_utc_z, utcnow


class CurrencyRate(db.Model):
    """
    Shared exchange rate: how many LRD buy one USD.

    Singleton table. The row is created lazily on first read by
    currency_service.get_current_rate(); there is no history, an update
    overwrites the value and stamps updated_at.
    """
    __tablename__ = "currency_rates"

    id = db.Column(db.Integer, primary_key=True)
    lrd_per_usd = db.Column(db.Numeric(12, 4), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<CurrencyRate lrd_per_usd={self.lrd_per_usd}>"

    def to_dict(self) -> dict:
        return {
            "rate": float(self.lrd_per_usd),
            "updated_at": to_utc_z(self.updated_at),
        }
