# Overview: Service-layer operations for POS sales; the closing's cash-sales source.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Sale
from ..models.sales import PAYMENT_METHODS
from ..validation import ValidationError, parse_cents, parse_datetime_field, require_choice
from shopledger.time_utils import local_now, day_bounds


def record_sale(
    shop_id: int,
    *,
    total_amount_cents,
    payment_method="CASH",
    sale_date=None,
    customer_name: str | None = None,
    notes: str | None = None,
    created_by_user_id: int | None = None,
) -> Sale:
    total_amount_cents = parse_cents(total_amount_cents, "total_amount_cents")
    if total_amount_cents <= 0:
        raise ValidationError("total_amount_cents must be > 0")

    sale = Sale(
        shop_id=shop_id,
        total_amount_cents=total_amount_cents,
        payment_method=require_choice(payment_method or "CASH", "payment_method", PAYMENT_METHODS),
        sale_date=local_now() if sale_date is None else parse_datetime_field(sale_date, "sale_date"),
        customer_name=(customer_name or "").strip()[:120] or None,
        notes=(notes or "").strip() or None,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(sale)
    db.session.commit()
    return sale


def list_sales(shop_id: int, day: date | None = None, limit: int = 200) -> list[Sale]:
    query = db.session.query(Sale).filter(Sale.shop_id == shop_id)
    if day is not None:
        start, end = day_bounds(day)
        query = query.filter(Sale.sale_date >= start, Sale.sale_date < end)
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).limit(limit).all()
