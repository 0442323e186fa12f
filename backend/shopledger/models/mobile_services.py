from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z, to_local_iso


# Carriers for MOBILE_LOAD
JAZZ = "JAZZ"
TELENOR = "TELENOR"
ZONG = "ZONG"
UFONE = "UFONE"
LOAD_PROVIDERS = (JAZZ, TELENOR, ZONG, UFONE)

COMPLETED = "COMPLETED"
PENDING = "PENDING"
CANCELLED = "CANCELLED"
FAILED = "FAILED"
TRANSACTION_STATUSES = (COMPLETED, PENDING, CANCELLED, FAILED)

COMMISSION_CALCULATED = "CALCULATED"
COMMISSION_MANUAL = "MANUAL"


class ServiceTransaction(db.Model):
    """
    One mobile-money, load or bill-payment transaction.

    WHY: Commission is the shop's income on these services, so each row keeps
    both the commission the fee schedule suggested and the commission actually
    charged. Once persisted, commission_cents is the source of truth; the fee
    schedule is never re-applied to stored rows.

    INVARIANT: net_commission_cents == commission_cents - discount_cents,
    recomputed on every create/update. It may be negative (loss-making).
    """
    __tablename__ = "service_transactions"
    __table_args__ = (
        db.Index("ix_service_tx_shop_date", "shop_id", "transaction_date"),
        db.Index("ix_service_tx_shop_type", "shop_id", "service_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    service_type = db.Column(db.String(32), nullable=False)
    load_provider = db.Column(db.String(16), nullable=True)  # only for MOBILE_LOAD

    customer_name = db.Column(db.String(120), nullable=True)
    phone_number = db.Column(db.String(32), nullable=True)

    amount_cents = db.Column(db.BigInteger, nullable=False)

    # Snapshot of the fee rule applied when the suggestion was made
    commission_mode = db.Column(db.String(16), nullable=False)  # FLAT, PERCENTAGE, SLAB
    commission_rate_hundredths = db.Column(db.Integer, nullable=True)  # null for SLAB
    suggested_commission_cents = db.Column(db.BigInteger, nullable=False, default=0)
    commission_source = db.Column(db.String(16), nullable=False, default=COMMISSION_CALCULATED)

    commission_cents = db.Column(db.BigInteger, nullable=False, default=0)
    discount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    net_commission_cents = db.Column(db.BigInteger, nullable=False, default=0)

    reference_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=COMPLETED, index=True)

    # Business time, shop-local
    transaction_date = db.Column(db.DateTime, nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    created_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "service_type": self.service_type,
            "load_provider": self.load_provider,
            "customer_name": self.customer_name,
            "phone_number": self.phone_number,
            "amount_cents": self.amount_cents,
            "commission_mode": self.commission_mode,
            "commission_rate_hundredths": self.commission_rate_hundredths,
            "suggested_commission_cents": self.suggested_commission_cents,
            "commission_source": self.commission_source,
            "commission_cents": self.commission_cents,
            "discount_cents": self.discount_cents,
            "net_commission_cents": self.net_commission_cents,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "status": self.status,
            "transaction_date": to_local_iso(self.transaction_date),
            "created_by_user_id": self.created_by_user_id,
            "created_by": self.created_by.username if self.created_by else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
