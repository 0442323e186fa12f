# Overview: Service-layer operations for customer loans and installment schedules.

"""
Loans

A loan's schedule is fixed at creation:

    total_amount       = principal + round(principal * interest_rate_bps / 10_000)
    installment_amount = total_amount // total_installments
    installment i      = due start_date + i months (i = 1..n)

Integer division leaves a remainder of a few paisa; it is added to the last
installment so the schedule always sums to total_amount.

After every payment the loan's running totals are re-derived from its
installments (see _refresh_loan_totals); they are never incremented in place.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer, Loan, LoanInstallment
from ..models.loans import (
    LOAN_ACTIVE,
    LOAN_COMPLETED,
    LOAN_STATUSES,
    INSTALLMENT_PAID,
    INSTALLMENT_PARTIAL,
    INSTALLMENT_PENDING,
)
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_int,
    parse_cents,
    parse_date_field,
    require_choice,
)
from shopledger.time_utils import add_months, local_today
from . import ledger_store
from .audit_service import append_audit_event
from .concurrency import lock_for_update


MAX_INSTALLMENTS = 120
MAX_INTEREST_RATE_BPS = 100_000  # 1000%
MAX_PAGE_SIZE = 100


def create_customer(shop_id: int, name: str, phone: str | None = None, cnic: str | None = None) -> Customer:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    customer = Customer(
        shop_id=shop_id,
        name=name,
        phone=(phone or "").strip() or None,
        cnic=(cnic or "").strip() or None,
    )
    db.session.add(customer)
    db.session.commit()
    return customer


def get_customer(shop_id: int, customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id, shop_id=shop_id).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def build_schedule(total_amount_cents: int, total_installments: int, start_date: date) -> list[LoanInstallment]:
    base = total_amount_cents // total_installments
    remainder = total_amount_cents - base * total_installments
    schedule = []
    for number in range(1, total_installments + 1):
        amount = base + (remainder if number == total_installments else 0)
        schedule.append(LoanInstallment(
            installment_number=number,
            amount_cents=amount,
            due_date=add_months(start_date, number),
            paid_amount_cents=0,
            status=INSTALLMENT_PENDING,
        ))
    return schedule


def create_loan(
    shop_id: int,
    *,
    customer_id,
    loan_number,
    principal_cents,
    interest_rate_bps=0,
    total_installments,
    start_date=None,
    notes: str | None = None,
    created_by_user_id: int | None = None,
) -> Loan:
    customer_id = coerce_int(customer_id, "customer_id")
    get_customer(shop_id, customer_id)

    loan_number = str(loan_number or "").strip()
    if not loan_number:
        raise ValidationError("loan_number is required")
    if len(loan_number) > 32:
        raise ValidationError("loan_number exceeds max length 32")

    principal_cents = parse_cents(principal_cents, "principal_cents")
    if principal_cents <= 0:
        raise ValidationError("principal_cents must be > 0")

    interest_rate_bps = coerce_int(interest_rate_bps or 0, "interest_rate_bps")
    if interest_rate_bps < 0 or interest_rate_bps > MAX_INTEREST_RATE_BPS:
        raise ValidationError(f"interest_rate_bps must be between 0 and {MAX_INTEREST_RATE_BPS}")

    total_installments = coerce_int(total_installments, "total_installments")
    if total_installments < 1 or total_installments > MAX_INSTALLMENTS:
        raise ValidationError(f"total_installments must be between 1 and {MAX_INSTALLMENTS}")

    start = local_today() if start_date is None else parse_date_field(start_date, "start_date")

    duplicate = db.session.query(Loan.id).filter_by(shop_id=shop_id, loan_number=loan_number).first()
    if duplicate:
        raise ConflictError("Loan number already exists")

    # Half-up rounding of the interest, in integer arithmetic
    interest_cents = (principal_cents * interest_rate_bps + 5_000) // 10_000
    total_amount_cents = principal_cents + interest_cents

    installments = build_schedule(total_amount_cents, total_installments, start)

    loan = Loan(
        shop_id=shop_id,
        customer_id=customer_id,
        loan_number=loan_number,
        principal_cents=principal_cents,
        interest_rate_bps=interest_rate_bps,
        total_amount_cents=total_amount_cents,
        installment_amount_cents=total_amount_cents // total_installments,
        total_installments=total_installments,
        paid_installments=0,
        paid_amount_cents=0,
        remaining_amount_cents=total_amount_cents,
        status=LOAN_ACTIVE,
        start_date=start,
        end_date=installments[-1].due_date,
        next_due_date=installments[0].due_date,
        notes=(notes or "").strip() or None,
        created_by_user_id=created_by_user_id,
        installments=installments,
    )
    db.session.add(loan)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Loan number already exists")

    append_audit_event(
        shop_id=shop_id,
        event_type="LOAN_CREATED",
        entity_type="loan",
        entity_id=loan.id,
        actor_user_id=created_by_user_id,
        payload={
            "loan_number": loan_number,
            "principal_cents": principal_cents,
            "total_amount_cents": total_amount_cents,
            "total_installments": total_installments,
        },
    )
    db.session.commit()
    return loan


def get_loan(shop_id: int, loan_id: int) -> Loan:
    loan = db.session.query(Loan).filter_by(id=loan_id, shop_id=shop_id).first()
    if not loan:
        raise NotFoundError("Loan not found")
    return loan


def _loans_query(shop_id: int, status: str | None):
    query = db.session.query(Loan).filter(Loan.shop_id == shop_id)
    if status:
        query = query.filter(Loan.status == status)
    return query.order_by(Loan.created_at.desc(), Loan.id.desc())


def list_loans_page(
    shop_id: int,
    *,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
    as_of: date | None = None,
) -> dict:
    """
    Newest-first page of a shop's loans plus portfolio stats.

    `stats` cover every loan matching the status filter, not just the page.
    """
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if status:
        status = require_choice(status, "status", LOAN_STATUSES)

    stats = ledger_store.loan_stats_by_shop(shop_id, as_of or local_today(), status=status)
    total = stats["total_loans"]
    loans = _loans_query(shop_id, status).offset((page - 1) * limit).limit(limit).all()

    return {
        "loans": [loan.to_dict() for loan in loans],
        "count": len(loans),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
        "stats": stats,
    }


def list_overdue_loans(shop_id: int, as_of: date | None = None) -> list[Loan]:
    """Active loans whose next unpaid installment is already past due."""
    as_of = as_of or local_today()
    return db.session.query(Loan).filter(
        Loan.shop_id == shop_id,
        Loan.status == LOAN_ACTIVE,
        Loan.next_due_date.isnot(None),
        Loan.next_due_date < as_of,
    ).order_by(Loan.next_due_date.asc()).all()


def _refresh_loan_totals(loan: Loan) -> None:
    """Re-derive paid, remaining, paid count, next due date and status from installments."""
    installments = sorted(loan.installments, key=lambda i: i.installment_number)
    loan.paid_amount_cents = sum(i.paid_amount_cents for i in installments)
    loan.remaining_amount_cents = loan.total_amount_cents - loan.paid_amount_cents
    loan.paid_installments = sum(1 for i in installments if i.status == INSTALLMENT_PAID)

    unpaid = [i for i in installments if i.status != INSTALLMENT_PAID]
    loan.next_due_date = min(i.due_date for i in unpaid) if unpaid else None
    if not unpaid:
        loan.status = LOAN_COMPLETED


def record_installment_payment(
    shop_id: int,
    loan_id: int,
    installment_id: int,
    amount_cents,
    *,
    paid_date=None,
    user_id: int | None = None,
) -> Loan:
    """
    Apply a payment to one installment.

    The payment accumulates on the installment; it may not exceed what is
    still owed on it. A fully paid installment becomes PAID, otherwise PARTIAL.
    """
    amount_cents = parse_cents(amount_cents, "amount_cents")
    if amount_cents <= 0:
        raise ValidationError("amount_cents must be > 0")
    paid_on = local_today() if paid_date is None else parse_date_field(paid_date, "paid_date")

    loan = lock_for_update(
        db.session.query(Loan).filter_by(id=loan_id, shop_id=shop_id)
    ).first()
    if not loan:
        raise NotFoundError("Loan not found")
    if loan.status != LOAN_ACTIVE:
        raise ConflictError(f"Loan is {loan.status}")

    installment = db.session.query(LoanInstallment).filter_by(
        id=installment_id,
        loan_id=loan.id,
    ).first()
    if not installment:
        raise NotFoundError("Installment not found")
    if installment.status == INSTALLMENT_PAID:
        raise ConflictError("Installment is already paid")

    outstanding = installment.amount_cents - installment.paid_amount_cents
    if amount_cents > outstanding:
        raise ValidationError(f"amount_cents cannot exceed the outstanding {outstanding}")

    installment.paid_amount_cents += amount_cents
    installment.paid_date = paid_on
    installment.status = (
        INSTALLMENT_PAID if installment.paid_amount_cents >= installment.amount_cents else INSTALLMENT_PARTIAL
    )

    _refresh_loan_totals(loan)

    append_audit_event(
        shop_id=shop_id,
        event_type="LOAN_INSTALLMENT_PAID",
        entity_type="loan",
        entity_id=loan.id,
        actor_user_id=user_id,
        payload={
            "installment_id": installment.id,
            "amount_cents": amount_cents,
            "paid_date": paid_on,
            "loan_paid_amount_cents": loan.paid_amount_cents,
            "loan_remaining_amount_cents": loan.remaining_amount_cents,
        },
    )
    db.session.commit()
    return loan


def delete_loan(shop_id: int, loan_id: int, user_id: int | None = None) -> None:
    """Only loans with nothing paid yet can be removed."""
    loan = get_loan(shop_id, loan_id)
    if loan.paid_amount_cents != 0:
        raise ConflictError("Cannot delete a loan with recorded payments")

    append_audit_event(
        shop_id=shop_id,
        event_type="LOAN_DELETED",
        entity_type="loan",
        entity_id=loan.id,
        actor_user_id=user_id,
        payload={"loan_number": loan.loan_number, "total_amount_cents": loan.total_amount_cents},
    )
    db.session.delete(loan)
    db.session.commit()
