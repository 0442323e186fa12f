from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z, to_local_iso


PAYMENT_METHODS = ("CASH", "CARD", "BANK_TRANSFER", "EASYPAISA", "JAZZCASH", "CREDIT")


class Sale(db.Model):
    """
    Completed POS sale, recorded as a single total.

    Line items, products and stock belong to the inventory side of the shop
    and are not modelled here; the daily closing only needs the total and the
    payment method.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_shop_date", "shop_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    total_amount_cents = db.Column(db.BigInteger, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="CASH")

    customer_name = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Business time, shop-local
    sale_date = db.Column(db.DateTime, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "notes": self.notes,
            "sale_date": to_local_iso(self.sale_date),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
