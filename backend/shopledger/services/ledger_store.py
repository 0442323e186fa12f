# Overview: Shop-scoped read queries and the closing upsert that the daily closing is built on.

"""
Ledger Store

The five store capabilities the closing engine depends on:

- sum_sales_by_shop_and_date
- sum_service_commissions_by_shop_and_date_grouped_by_type
- sum_supplier_payments_by_shop_and_date
- sum_remaining_loan_balance_by_shop
- upsert_daily_closing

Each read takes shop_id explicitly and filters on it; none of them can see
another shop's rows. Reads are plain SELECTs against committed data and take
no locks. The range variants (`*_between`) back the reporting rollups, so the
dashboard and the closing are always computed by the same queries.

Day boundaries are half-open [start 00:00, next day 00:00) on shop-local
naive datetimes.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..models import (
    Sale,
    ServiceTransaction,
    PurchasePayment,
    Purchase,
    Supplier,
    Loan,
    DailyClosing,
)
from ..models.closings import CLOSING_CLOSED
from ..models.loans import LOAN_ACTIVE, LOAN_STATUSES, OUTSTANDING_LOAN_STATUSES
from ..models.mobile_services import COMPLETED
from shopledger.time_utils import day_bounds
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_with_integrity_retry


def _range_bounds(start_day: date, end_day: date):
    return day_bounds(start_day)[0], day_bounds(end_day)[1]


# -- Sales --

def sales_by_payment_method_between(shop_id: int, start_day: date, end_day: date) -> dict:
    start, end = _range_bounds(start_day, end_day)
    rows = db.session.query(
        Sale.payment_method,
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount_cents), 0),
    ).filter(
        Sale.shop_id == shop_id,
        Sale.sale_date >= start,
        Sale.sale_date < end,
    ).group_by(Sale.payment_method).all()

    by_method = {}
    total_cents = 0
    total_count = 0
    for method, count, amount in rows:
        by_method[method] = {"count": int(count), "amount_cents": int(amount)}
        total_cents += int(amount)
        total_count += int(count)

    return {
        "total_sales_cents": total_cents,
        "total_transactions": total_count,
        "by_payment_method": by_method,
    }


def sum_sales_by_shop_and_date(shop_id: int, day: date) -> dict:
    """All sales on `day`, regardless of payment method."""
    return sales_by_payment_method_between(shop_id, day, day)


# -- Service commissions --

def service_commissions_between(shop_id: int, start_day: date, end_day: date) -> list[dict]:
    """
    COMPLETED transactions grouped by (service_type, load_provider).

    PENDING, CANCELLED and FAILED rows have not earned their commission
    and are left out.
    """
    start, end = _range_bounds(start_day, end_day)
    rows = db.session.query(
        ServiceTransaction.service_type,
        ServiceTransaction.load_provider,
        func.count(ServiceTransaction.id),
        func.coalesce(func.sum(ServiceTransaction.amount_cents), 0),
        func.coalesce(func.sum(ServiceTransaction.commission_cents), 0),
        func.coalesce(func.sum(ServiceTransaction.net_commission_cents), 0),
    ).filter(
        ServiceTransaction.shop_id == shop_id,
        ServiceTransaction.status == COMPLETED,
        ServiceTransaction.transaction_date >= start,
        ServiceTransaction.transaction_date < end,
    ).group_by(
        ServiceTransaction.service_type,
        ServiceTransaction.load_provider,
    ).all()

    return [
        {
            "service_type": service_type,
            "load_provider": load_provider,
            "count": int(count),
            "amount_cents": int(amount),
            "commission_cents": int(commission),
            "net_commission_cents": int(net),
        }
        for service_type, load_provider, count, amount, commission, net in rows
    ]


def sum_service_commissions_by_shop_and_date_grouped_by_type(shop_id: int, day: date) -> list[dict]:
    return service_commissions_between(shop_id, day, day)


# -- Supplier payments --

def supplier_payments_between(shop_id: int, start_day: date, end_day: date) -> list[dict]:
    start, end = _range_bounds(start_day, end_day)
    rows = db.session.query(PurchasePayment, Supplier.name).join(
        Purchase, Purchase.id == PurchasePayment.purchase_id,
    ).join(
        Supplier, Supplier.id == Purchase.supplier_id,
    ).filter(
        PurchasePayment.shop_id == shop_id,
        PurchasePayment.payment_date >= start,
        PurchasePayment.payment_date < end,
    ).order_by(PurchasePayment.payment_date.asc(), PurchasePayment.id.asc()).all()

    return [
        {
            "id": payment.id,
            "purchase_id": payment.purchase_id,
            "supplier_name": supplier_name,
            "amount_cents": payment.amount_cents,
            "payment_method": payment.payment_method,
            "reference": payment.reference,
            "payment_date": payment.payment_date.isoformat(),
        }
        for payment, supplier_name in rows
    ]


def sum_supplier_payments_by_shop_and_date(shop_id: int, day: date) -> dict:
    """Cash paid to suppliers on `day`, whenever the purchase itself was made."""
    payments = supplier_payments_between(shop_id, day, day)
    return {
        "total_purchase_expenses_cents": sum(p["amount_cents"] for p in payments),
        "payments_count": len(payments),
        "payments": payments,
    }


# -- Loans --

def sum_remaining_loan_balance_by_shop(shop_id: int) -> dict:
    """
    Current remaining balance across outstanding loans.

    Point-in-time: this is today's exposure, not the balance as of any past
    date, so a closing resubmitted for an old day picks up today's figure.
    """
    count, remaining = db.session.query(
        func.count(Loan.id),
        func.coalesce(func.sum(Loan.remaining_amount_cents), 0),
    ).filter(
        Loan.shop_id == shop_id,
        Loan.status.in_(OUTSTANDING_LOAN_STATUSES),
    ).one()
    return {
        "total_remaining_loans_cents": int(remaining),
        "outstanding_loans": int(count),
    }



def loan_stats_by_shop(shop_id: int, as_of: date, status: str | None = None) -> dict:
    """
    Portfolio totals for the loans listing.

    Totals and the overdue count follow the status filter; the per-status
    breakdown always covers every loan in the shop.
    """
    filters = [Loan.shop_id == shop_id]
    if status:
        filters.append(Loan.status == status)

    count, total, paid, remaining = db.session.query(
        func.count(Loan.id),
        func.coalesce(func.sum(Loan.total_amount_cents), 0),
        func.coalesce(func.sum(Loan.paid_amount_cents), 0),
        func.coalesce(func.sum(Loan.remaining_amount_cents), 0),
    ).filter(*filters).one()

    overdue = db.session.query(func.count(Loan.id)).filter(
        *filters,
        Loan.status == LOAN_ACTIVE,
        Loan.next_due_date.isnot(None),
        Loan.next_due_date < as_of,
    ).scalar()

    breakdown = {
        loan_status: {"count": 0, "remaining_amount_cents": 0}
        for loan_status in LOAN_STATUSES
    }
    rows = db.session.query(
        Loan.status,
        func.count(Loan.id),
        func.coalesce(func.sum(Loan.remaining_amount_cents), 0),
    ).filter(Loan.shop_id == shop_id).group_by(Loan.status).all()
    for loan_status, status_count, status_remaining in rows:
        breakdown[loan_status] = {
            "count": int(status_count),
            "remaining_amount_cents": int(status_remaining),
        }

    return {
        "total_loans": int(count),
        "total_amount_cents": int(total),
        "total_paid_cents": int(paid),
        "total_remaining_cents": int(remaining),
        "overdue_count": int(overdue or 0),
        "status_breakdown": breakdown,
    }


# -- Closings --

def get_daily_closing(shop_id: int, closing_date: date) -> DailyClosing | None:
    return db.session.query(DailyClosing).filter_by(
        shop_id=shop_id,
        closing_date=closing_date,
    ).first()


def _locked_closing(shop_id: int, closing_date: date) -> DailyClosing | None:
    return lock_for_update(
        db.session.query(DailyClosing).filter_by(shop_id=shop_id, closing_date=closing_date)
    ).first()


def upsert_daily_closing(
    shop_id: int,
    closing_date: date,
    fields: dict,
    *,
    submitted_by_user_id: int | None = None,
    audit_payload: dict | None = None,
) -> tuple[DailyClosing, bool]:
    """
    Insert or fully overwrite the closing for (shop_id, closing_date).

    Returns (closing, created).

    CONCURRENCY: the existing row is read with SELECT ... FOR UPDATE, so
    concurrent resubmissions serialize and the last one wins on every field.
    Two first-time submissions can still both see no row; the loser hits
    uq_daily_closings_shop_date, rolls back and is retried once, when it
    finds the winner's row and overwrites it. A failed write leaves the
    previous row untouched.
    """
    def _write():
        closing = _locked_closing(shop_id, closing_date)
        created = closing is None
        if created:
            closing = DailyClosing(shop_id=shop_id, closing_date=closing_date, revision=1)
            db.session.add(closing)
        else:
            closing.revision = (closing.revision or 0) + 1

        for key, value in fields.items():
            setattr(closing, key, value)
        closing.status = CLOSING_CLOSED
        closing.submitted_by_user_id = submitted_by_user_id

        db.session.flush()

        append_audit_event(
            shop_id=shop_id,
            event_type="DAILY_CLOSING_SUBMITTED",
            entity_type="daily_closing",
            entity_id=closing.id,
            actor_user_id=submitted_by_user_id,
            note=f"revision {closing.revision}",
            payload=audit_payload,
        )
        db.session.commit()
        return closing, created

    return run_with_integrity_retry(_write, label=f"daily_closing shop={shop_id} date={closing_date}")


def closing_history(shop_id: int, limit: int) -> list[DailyClosing]:
    return db.session.query(DailyClosing).filter(
        DailyClosing.shop_id == shop_id,
    ).order_by(DailyClosing.closing_date.desc()).limit(limit).all()
