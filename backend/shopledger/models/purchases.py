from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z, to_local_iso


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "name", name="uq_suppliers_shop_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """
    Stock bought from a supplier, possibly on credit.

    INVARIANT: paid_amount_cents == sum(payments), due_amount_cents == total - paid.
    The daily closing counts the payments (cash out the door), not the purchase.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_shop_date", "shop_id", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    reference = db.Column(db.String(64), nullable=True)
    total_amount_cents = db.Column(db.BigInteger, nullable=False)
    paid_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    due_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    purchase_date = db.Column(db.DateTime, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    payments = db.relationship(
        "PurchasePayment",
        backref="purchase",
        lazy=True,
        order_by="PurchasePayment.id",
    )

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "reference": self.reference,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "due_amount_cents": self.due_amount_cents,
            "purchase_date": to_local_iso(self.purchase_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class PurchasePayment(db.Model):
    """Cash paid to a supplier against a purchase, dated when it left the till."""
    __tablename__ = "purchase_payments"
    __table_args__ = (
        db.Index("ix_purchase_payments_shop_date", "shop_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)

    amount_cents = db.Column(db.BigInteger, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="CASH")
    reference = db.Column(db.String(64), nullable=True)
    payment_date = db.Column(db.DateTime, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "reference": self.reference,
            "payment_date": to_local_iso(self.payment_date),
            "created_at": to_utc_z(self.created_at),
        }
