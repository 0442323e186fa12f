from __future__ import annotations

import json

from ..extensions import db
from shopledger.time_utils import to_utc_z, to_local_iso


CLOSING_CLOSED = "CLOSED"


class DailyClosing(db.Model):
    """
    End-of-day cash reconciliation for one shop and one calendar day.

    UNIQUENESS: exactly one row per (shop_id, closing_date). Resubmission
    updates the row in place (last write wins on the full record) and bumps
    `revision`; rows are never deleted.

    INVARIANTS:
    - total_income = cash_sales + four load fields + bank_transfer
      + easypaisa_sales + jazzcash_sales + loan + cash + receiving
    - total_expenses = inventory + credit
    - net_amount = total_income - total_expenses
    """
    __tablename__ = "daily_closings"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "closing_date", name="uq_daily_closings_shop_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    closing_date = db.Column(db.Date, nullable=False)

    # Income
    cash_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    jazz_load_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    telenor_load_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    zong_load_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    ufone_load_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    easypaisa_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    jazzcash_sales_cents = db.Column(db.BigInteger, nullable=False, default=0)
    receiving_cents = db.Column(db.BigInteger, nullable=False, default=0)
    bank_transfer_cents = db.Column(db.BigInteger, nullable=False, default=0)
    loan_cents = db.Column(db.BigInteger, nullable=False, default=0)
    cash_cents = db.Column(db.BigInteger, nullable=False, default=0)

    # Expenses
    credit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    inventory_cents = db.Column(db.BigInteger, nullable=False, default=0)

    # Derived
    total_income_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_expenses_cents = db.Column(db.BigInteger, nullable=False, default=0)
    net_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=CLOSING_CLOSED)

    # Provenance: JSON list of fields filled from system aggregates
    auto_filled_fields = db.Column(db.Text, nullable=True)
    revision = db.Column(db.Integer, nullable=False, default=1)

    submitted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("daily_closings", lazy=True))
    submitted_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "closing_date": to_local_iso(self.closing_date),
            "cash_sales_cents": self.cash_sales_cents,
            "jazz_load_sales_cents": self.jazz_load_sales_cents,
            "telenor_load_sales_cents": self.telenor_load_sales_cents,
            "zong_load_sales_cents": self.zong_load_sales_cents,
            "ufone_load_sales_cents": self.ufone_load_sales_cents,
            "easypaisa_sales_cents": self.easypaisa_sales_cents,
            "jazzcash_sales_cents": self.jazzcash_sales_cents,
            "receiving_cents": self.receiving_cents,
            "bank_transfer_cents": self.bank_transfer_cents,
            "loan_cents": self.loan_cents,
            "cash_cents": self.cash_cents,
            "credit_cents": self.credit_cents,
            "inventory_cents": self.inventory_cents,
            "total_income_cents": self.total_income_cents,
            "total_expenses_cents": self.total_expenses_cents,
            "net_amount_cents": self.net_amount_cents,
            "notes": self.notes,
            "status": self.status,
            "auto_filled_fields": json.loads(self.auto_filled_fields) if self.auto_filled_fields else [],
            "revision": self.revision,
            "submitted_by_user_id": self.submitted_by_user_id,
            "submitted_by": self.submitted_by.username if self.submitted_by else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
