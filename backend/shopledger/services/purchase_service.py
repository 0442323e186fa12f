# Overview: Service-layer operations for supplier purchases and payments; the closing's inventory-expense source.

"""
Purchases and supplier payments

WHY: The daily closing counts cash that left the shop for stock on a given
day. That is the sum of PurchasePayment rows dated that day, independent of
when the purchase itself was booked, so credit purchases paid off later land
on the day the money actually went out.

INVARIANT: purchase.paid_amount_cents == sum(payments);
purchase.due_amount_cents == total - paid; a payment never exceeds the due.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Supplier, Purchase, PurchasePayment
from ..models.sales import PAYMENT_METHODS
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_int,
    parse_cents,
    parse_datetime_field,
    require_choice,
)
from shopledger.time_utils import local_now
from .audit_service import append_audit_event
from .concurrency import lock_for_update


def create_supplier(shop_id: int, name: str, phone: str | None = None) -> Supplier:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if db.session.query(Supplier.id).filter_by(shop_id=shop_id, name=name).first():
        raise ConflictError("Supplier already exists")
    supplier = Supplier(shop_id=shop_id, name=name, phone=(phone or "").strip() or None)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def _get_supplier(shop_id: int, supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id, shop_id=shop_id).first()
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


def get_purchase(shop_id: int, purchase_id: int) -> Purchase:
    purchase = db.session.query(Purchase).filter_by(id=purchase_id, shop_id=shop_id).first()
    if not purchase:
        raise NotFoundError("Purchase not found")
    return purchase


def _add_payment(
    purchase: Purchase,
    amount_cents: int,
    payment_method: str,
    reference: str | None,
    payment_date,
    user_id: int | None,
) -> PurchasePayment:
    due = purchase.total_amount_cents - purchase.paid_amount_cents
    if amount_cents <= 0:
        raise ValidationError("amount_cents must be > 0")
    if amount_cents > due:
        raise ValidationError(f"amount_cents cannot exceed the due amount {due}")

    payment = PurchasePayment(
        shop_id=purchase.shop_id,
        purchase_id=purchase.id,
        amount_cents=amount_cents,
        payment_method=require_choice(payment_method or "CASH", "payment_method", PAYMENT_METHODS),
        reference=(reference or "").strip()[:64] or None,
        payment_date=local_now() if payment_date is None else parse_datetime_field(payment_date, "payment_date"),
        created_by_user_id=user_id,
    )
    db.session.add(payment)
    db.session.flush()

    paid = db.session.query(
        func.coalesce(func.sum(PurchasePayment.amount_cents), 0)
    ).filter(PurchasePayment.purchase_id == purchase.id).scalar()
    purchase.paid_amount_cents = int(paid)
    purchase.due_amount_cents = purchase.total_amount_cents - purchase.paid_amount_cents

    append_audit_event(
        shop_id=purchase.shop_id,
        event_type="SUPPLIER_PAYMENT_RECORDED",
        entity_type="purchase",
        entity_id=purchase.id,
        actor_user_id=user_id,
        payload={
            "payment_id": payment.id,
            "amount_cents": amount_cents,
            "payment_date": payment.payment_date,
            "due_amount_cents": purchase.due_amount_cents,
        },
    )
    return payment


def create_purchase(
    shop_id: int,
    *,
    supplier_id,
    total_amount_cents,
    purchase_date=None,
    reference: str | None = None,
    notes: str | None = None,
    initial_payment_cents=None,
    payment_method: str = "CASH",
    created_by_user_id: int | None = None,
) -> Purchase:
    """Book a purchase; an optional initial payment is recorded on the purchase date."""
    supplier = _get_supplier(shop_id, coerce_int(supplier_id, "supplier_id"))

    total_amount_cents = parse_cents(total_amount_cents, "total_amount_cents")
    if total_amount_cents <= 0:
        raise ValidationError("total_amount_cents must be > 0")

    purchased_at = local_now() if purchase_date is None else parse_datetime_field(purchase_date, "purchase_date")

    # Nothing is added to the session until the initial payment is known to fit
    initial = 0
    if initial_payment_cents is not None:
        initial = parse_cents(initial_payment_cents, "initial_payment_cents")
    if initial > 0:
        if initial > total_amount_cents:
            raise ValidationError(f"initial_payment_cents cannot exceed the total amount {total_amount_cents}")
        require_choice(payment_method or "CASH", "payment_method", PAYMENT_METHODS)

    purchase = Purchase(
        shop_id=shop_id,
        supplier_id=supplier.id,
        reference=(reference or "").strip()[:64] or None,
        total_amount_cents=total_amount_cents,
        paid_amount_cents=0,
        due_amount_cents=total_amount_cents,
        purchase_date=purchased_at,
        notes=(notes or "").strip() or None,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(purchase)
    db.session.flush()

    if initial > 0:
        _add_payment(purchase, initial, payment_method, reference, purchased_at, created_by_user_id)

    db.session.commit()
    return purchase


def record_purchase_payment(
    shop_id: int,
    purchase_id: int,
    *,
    amount_cents,
    payment_method: str = "CASH",
    reference: str | None = None,
    payment_date=None,
    user_id: int | None = None,
) -> PurchasePayment:
    amount_cents = parse_cents(amount_cents, "amount_cents")

    purchase = lock_for_update(
        db.session.query(Purchase).filter_by(id=purchase_id, shop_id=shop_id)
    ).first()
    if not purchase:
        raise NotFoundError("Purchase not found")

    payment = _add_payment(purchase, amount_cents, payment_method, reference, payment_date, user_id)
    db.session.commit()
    return payment


def list_purchases(shop_id: int, limit: int = 200) -> list[Purchase]:
    return db.session.query(Purchase).filter(
        Purchase.shop_id == shop_id,
    ).order_by(Purchase.purchase_date.desc(), Purchase.id.desc()).limit(limit).all()
