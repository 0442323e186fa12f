from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from shopledger.time_utils import to_utc_z


# Service types: one fee rule per type per shop
EASYPAISA_CASHIN = "EASYPAISA_CASHIN"
EASYPAISA_CASHOUT = "EASYPAISA_CASHOUT"
JAZZCASH_CASHIN = "JAZZCASH_CASHIN"
JAZZCASH_CASHOUT = "JAZZCASH_CASHOUT"
BANK_TRANSFER = "BANK_TRANSFER"
MOBILE_LOAD = "MOBILE_LOAD"
BILL_PAYMENT = "BILL_PAYMENT"

SERVICE_TYPES = (
    EASYPAISA_CASHIN,
    EASYPAISA_CASHOUT,
    JAZZCASH_CASHIN,
    JAZZCASH_CASHOUT,
    BANK_TRANSFER,
    MOBILE_LOAD,
    BILL_PAYMENT,
)

FEE_MODE_FLAT = "FLAT"
FEE_MODE_PERCENTAGE = "PERCENTAGE"
FEE_MODE_SLAB = "SLAB"


class FeeRule(db.Model):
    """
    Shop-configurable commission policy for one service type.

    RATE ENCODING: rate_hundredths is the rate scaled by 100 so it stays an
    integer like every other amount in the schema:
    - percentage rules: basis points (150 = 1.5% of the amount)
    - flat rules: paisa charged per 1,000 rupees (2600 = Rs 26 per 1,000)

    Exactly one of {flat, percentage, slabs} is authoritative at resolution
    time: use_slabs wins when slabs exist, then is_percentage, else flat.
    """
    __tablename__ = "fee_rules"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "service_type", name="uq_fee_rules_shop_service"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    service_type = db.Column(db.String(32), nullable=False)

    is_percentage = db.Column(db.Boolean, nullable=False, default=False)
    rate_hundredths = db.Column(db.Integer, nullable=False, default=0)
    use_slabs = db.Column(db.Boolean, nullable=False, default=False)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    slabs = db.relationship(
        "FeeSlab",
        backref="fee_rule",
        lazy=True,
        order_by="FeeSlab.position",
        cascade="all, delete-orphan",
    )

    @property
    def mode(self) -> str:
        if self.use_slabs and self.slabs:
            return FEE_MODE_SLAB
        if self.is_percentage:
            return FEE_MODE_PERCENTAGE
        return FEE_MODE_FLAT

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "service_type": self.service_type,
            "is_percentage": self.is_percentage,
            "rate_hundredths": self.rate_hundredths,
            "rate": str(Decimal(self.rate_hundredths) / 100),
            "use_slabs": self.use_slabs,
            "mode": self.mode,
            "slabs": [slab.to_dict() for slab in self.slabs],
            "is_default": False,
            "updated_at": to_utc_z(self.updated_at),
        }


class FeeSlab(db.Model):
    """One band of a slab schedule: a fixed fee for amounts in [min, max]."""
    __tablename__ = "fee_slabs"
    __table_args__ = (
        db.UniqueConstraint("fee_rule_id", "position", name="uq_fee_slabs_rule_position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    fee_rule_id = db.Column(db.Integer, db.ForeignKey("fee_rules.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    min_amount_cents = db.Column(db.BigInteger, nullable=False)
    max_amount_cents = db.Column(db.BigInteger, nullable=False)
    fee_cents = db.Column(db.BigInteger, nullable=False)

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "min_amount_cents": self.min_amount_cents,
            "max_amount_cents": self.max_amount_cents,
            "fee_cents": self.fee_cents,
        }
