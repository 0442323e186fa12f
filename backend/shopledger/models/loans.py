from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z, to_local_iso


LOAN_ACTIVE = "ACTIVE"
LOAN_COMPLETED = "COMPLETED"
LOAN_SUSPENDED = "SUSPENDED"
LOAN_DEFAULTED = "DEFAULTED"
LOAN_STATUSES = (LOAN_ACTIVE, LOAN_COMPLETED, LOAN_SUSPENDED, LOAN_DEFAULTED)

# Loans whose remaining balance is still owed to the shop
OUTSTANDING_LOAN_STATUSES = (LOAN_ACTIVE, LOAN_SUSPENDED)

INSTALLMENT_PENDING = "PENDING"
INSTALLMENT_PARTIAL = "PARTIAL"
INSTALLMENT_PAID = "PAID"


class Loan(db.Model):
    """
    Customer installment loan.

    INVARIANTS (maintained by loan_service after every payment):
    - paid_amount_cents == sum(installment.paid_amount_cents)
    - remaining_amount_cents == total_amount_cents - paid_amount_cents
    - next_due_date == due date of the earliest non-PAID installment
    """
    __tablename__ = "loans"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "loan_number", name="uq_loans_shop_number"),
        db.Index("ix_loans_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    loan_number = db.Column(db.String(32), nullable=False)

    principal_cents = db.Column(db.BigInteger, nullable=False)
    interest_rate_bps = db.Column(db.Integer, nullable=False, default=0)  # 1250 = 12.5%
    total_amount_cents = db.Column(db.BigInteger, nullable=False)
    installment_amount_cents = db.Column(db.BigInteger, nullable=False)

    total_installments = db.Column(db.Integer, nullable=False)
    paid_installments = db.Column(db.Integer, nullable=False, default=0)

    paid_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    remaining_amount_cents = db.Column(db.BigInteger, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=LOAN_ACTIVE)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    next_due_date = db.Column(db.Date, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("loans", lazy=True))
    installments = db.relationship(
        "LoanInstallment",
        backref="loan",
        lazy=True,
        order_by="LoanInstallment.installment_number",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_installments: bool = False) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "loan_number": self.loan_number,
            "principal_cents": self.principal_cents,
            "interest_rate_bps": self.interest_rate_bps,
            "total_amount_cents": self.total_amount_cents,
            "installment_amount_cents": self.installment_amount_cents,
            "total_installments": self.total_installments,
            "paid_installments": self.paid_installments,
            "paid_amount_cents": self.paid_amount_cents,
            "remaining_amount_cents": self.remaining_amount_cents,
            "status": self.status,
            "start_date": to_local_iso(self.start_date),
            "end_date": to_local_iso(self.end_date),
            "next_due_date": to_local_iso(self.next_due_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_installments:
            data["installments"] = [i.to_dict() for i in self.installments]
        return data


class LoanInstallment(db.Model):
    __tablename__ = "loan_installments"
    __table_args__ = (
        db.UniqueConstraint("loan_id", "installment_number", name="uq_loan_installments_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey("loans.id"), nullable=False, index=True)
    installment_number = db.Column(db.Integer, nullable=False)

    amount_cents = db.Column(db.BigInteger, nullable=False)
    due_date = db.Column(db.Date, nullable=False)

    paid_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    paid_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=INSTALLMENT_PENDING)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "loan_id": self.loan_id,
            "installment_number": self.installment_number,
            "amount_cents": self.amount_cents,
            "due_date": to_local_iso(self.due_date),
            "paid_amount_cents": self.paid_amount_cents,
            "paid_date": to_local_iso(self.paid_date),
            "status": self.status,
        }
