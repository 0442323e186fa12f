# Overview: Service-layer operations for mobile-service transactions; records commission, discount and net commission.

"""
Transaction Recorder

WHY: Load, mobile-wallet and bill-payment transactions are where the shop's
commission income comes from. Each row stores the commission actually charged
(which may be typed in by the cashier) next to the suggestion the fee schedule
made, so an owner can see where a manual price was used.

INVARIANT: net_commission_cents = commission_cents - discount_cents on every
create and update. A discount larger than the commission is accepted and the
net goes negative; reports surface those rows rather than hiding them.

MULTI-TENANT: Every function takes shop_id and filters on it. A transaction
id from another shop behaves exactly like a missing id (NotFoundError).
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import ServiceTransaction
from ..models.fees import SERVICE_TYPES, MOBILE_LOAD
from ..models.mobile_services import (
    LOAD_PROVIDERS,
    TRANSACTION_STATUSES,
    COMPLETED,
    COMMISSION_CALCULATED,
    COMMISSION_MANUAL,
)
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_int,
    parse_cents,
    parse_datetime_field,
    require_choice,
    validate_payload,
)
from shopledger.time_utils import local_now, day_bounds
from .audit_service import append_audit_event
from .concurrency import lock_for_update
from . import fee_service


UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "amount_cents",
        "discount_cents",
        "commission_cents",
        "customer_name",
        "phone_number",
        "reference_id",
        "notes",
        "status",
        "transaction_date",
    },
)

MAX_PAGE_SIZE = 100


def _clean_text(value, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def _audit_snapshot(tx: ServiceTransaction) -> dict:
    return {
        "service_type": tx.service_type,
        "load_provider": tx.load_provider,
        "amount_cents": tx.amount_cents,
        "commission_cents": tx.commission_cents,
        "discount_cents": tx.discount_cents,
        "net_commission_cents": tx.net_commission_cents,
        "status": tx.status,
        "transaction_date": tx.transaction_date,
    }


def create_transaction(
    shop_id: int,
    *,
    service_type,
    amount_cents,
    discount_cents=0,
    load_provider=None,
    manual_commission_cents=None,
    customer_name=None,
    phone_number=None,
    reference_id=None,
    notes=None,
    status=None,
    transaction_date=None,
    created_by_user_id: int | None = None,
) -> ServiceTransaction:
    """
    Validate and persist one service transaction.

    - amount must be > 0
    - load_provider is required for MOBILE_LOAD and rejected for any other type
    - commission = manual_commission_cents when given and >= 0, else the
      fee schedule's suggestion
    - status defaults to COMPLETED
    """
    service_type = require_choice(service_type, "service_type", SERVICE_TYPES)

    amount_cents = parse_cents(amount_cents, "amount_cents")
    if amount_cents <= 0:
        raise ValidationError("amount_cents must be > 0")

    discount_cents = parse_cents(0 if discount_cents is None else discount_cents, "discount_cents")

    provider_given = load_provider is not None and str(load_provider).strip() != ""
    if service_type == MOBILE_LOAD:
        load_provider = require_choice(load_provider, "load_provider", LOAD_PROVIDERS)
    elif provider_given:
        raise ValidationError("load_provider is only allowed for MOBILE_LOAD")
    else:
        load_provider = None

    status = COMPLETED if status is None else require_choice(status, "status", TRANSACTION_STATUSES)

    if transaction_date is None:
        transaction_date = local_now()
    else:
        transaction_date = parse_datetime_field(transaction_date, "transaction_date")

    quote = fee_service.quote_commission(shop_id, service_type, amount_cents)

    commission_cents = quote.commission_cents
    commission_source = COMMISSION_CALCULATED
    if manual_commission_cents is not None:
        manual = coerce_int(manual_commission_cents, "commission_cents")
        # A negative manual figure means "not set": the suggestion is used
        if manual >= 0:
            commission_cents = parse_cents(manual, "commission_cents")
            if commission_cents != quote.commission_cents:
                commission_source = COMMISSION_MANUAL

    tx = ServiceTransaction(
        shop_id=shop_id,
        service_type=service_type,
        load_provider=load_provider,
        customer_name=_clean_text(customer_name, "customer_name", 120),
        phone_number=_clean_text(phone_number, "phone_number", 32),
        amount_cents=amount_cents,
        commission_mode=quote.mode,
        commission_rate_hundredths=quote.rate_hundredths,
        suggested_commission_cents=quote.commission_cents,
        commission_source=commission_source,
        commission_cents=commission_cents,
        discount_cents=discount_cents,
        net_commission_cents=commission_cents - discount_cents,
        reference_id=_clean_text(reference_id, "reference_id", 64),
        notes=_clean_text(notes, "notes", 2000),
        status=status,
        transaction_date=transaction_date,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(tx)
    db.session.flush()

    append_audit_event(
        shop_id=shop_id,
        event_type="SERVICE_TX_CREATED",
        entity_type="service_transaction",
        entity_id=tx.id,
        actor_user_id=created_by_user_id,
        payload=_audit_snapshot(tx),
    )
    db.session.commit()
    return tx


def get_transaction(shop_id: int, transaction_id: int) -> ServiceTransaction:
    tx = db.session.query(ServiceTransaction).filter_by(
        id=transaction_id,
        shop_id=shop_id,
    ).first()
    if not tx:
        raise NotFoundError("Transaction not found")
    return tx


def update_transaction(
    shop_id: int,
    transaction_id: int,
    patch: dict,
    user_id: int | None = None,
) -> ServiceTransaction:
    """
    Apply a partial update and re-derive net commission.

    The fee schedule is not consulted: an edited amount keeps the stored
    commission unless the patch also carries commission_cents.
    """
    cleaned = validate_payload(
        model=ServiceTransaction,
        payload=patch,
        policy=UPDATE_POLICY,
        partial=True,
    )
    if not cleaned:
        raise ValidationError("No fields to update")

    if "amount_cents" in cleaned:
        cleaned["amount_cents"] = parse_cents(cleaned["amount_cents"], "amount_cents")
        if cleaned["amount_cents"] <= 0:
            raise ValidationError("amount_cents must be > 0")
    if "discount_cents" in cleaned:
        cleaned["discount_cents"] = parse_cents(cleaned["discount_cents"], "discount_cents")
    if "commission_cents" in cleaned:
        cleaned["commission_cents"] = parse_cents(cleaned["commission_cents"], "commission_cents")
    if "status" in cleaned:
        cleaned["status"] = require_choice(cleaned["status"], "status", TRANSACTION_STATUSES)

    tx = lock_for_update(
        db.session.query(ServiceTransaction).filter_by(id=transaction_id, shop_id=shop_id)
    ).first()
    if not tx:
        raise NotFoundError("Transaction not found")

    before = _audit_snapshot(tx)

    for key, value in cleaned.items():
        setattr(tx, key, value)

    if "commission_cents" in cleaned and cleaned["commission_cents"] != before["commission_cents"]:
        tx.commission_source = COMMISSION_MANUAL

    tx.net_commission_cents = tx.commission_cents - tx.discount_cents

    append_audit_event(
        shop_id=shop_id,
        event_type="SERVICE_TX_UPDATED",
        entity_type="service_transaction",
        entity_id=tx.id,
        actor_user_id=user_id,
        payload={"before": before, "after": _audit_snapshot(tx)},
    )
    db.session.commit()
    return tx


def delete_transaction(shop_id: int, transaction_id: int, user_id: int | None = None) -> None:
    """Hard delete. The audit trail keeps a snapshot of what was removed."""
    tx = get_transaction(shop_id, transaction_id)

    append_audit_event(
        shop_id=shop_id,
        event_type="SERVICE_TX_DELETED",
        entity_type="service_transaction",
        entity_id=tx.id,
        actor_user_id=user_id,
        payload=_audit_snapshot(tx),
    )
    db.session.delete(tx)
    db.session.commit()


def list_transactions(
    shop_id: int,
    *,
    service_type: str | None = None,
    status: str | None = None,
    search: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """
    Filtered, newest-first page of a shop's transactions.

    `totals` cover every row matching the filters, not just the page.
    """
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")

    query = db.session.query(ServiceTransaction).filter(ServiceTransaction.shop_id == shop_id)

    if service_type:
        query = query.filter(
            ServiceTransaction.service_type == require_choice(service_type, "service_type", SERVICE_TYPES)
        )
    if status:
        query = query.filter(
            ServiceTransaction.status == require_choice(status, "status", TRANSACTION_STATUSES)
        )
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            ServiceTransaction.customer_name.ilike(pattern),
            ServiceTransaction.phone_number.ilike(pattern),
            ServiceTransaction.reference_id.ilike(pattern),
        ))
    if start_date:
        query = query.filter(ServiceTransaction.transaction_date >= day_bounds(start_date)[0])
    if end_date:
        query = query.filter(ServiceTransaction.transaction_date < day_bounds(end_date)[1])

    totals_row = query.with_entities(
        db.func.count(ServiceTransaction.id),
        db.func.coalesce(db.func.sum(ServiceTransaction.amount_cents), 0),
        db.func.coalesce(db.func.sum(ServiceTransaction.commission_cents), 0),
        db.func.coalesce(db.func.sum(ServiceTransaction.net_commission_cents), 0),
    ).one()
    total = int(totals_row[0] or 0)

    items = query.order_by(
        ServiceTransaction.transaction_date.desc(),
        ServiceTransaction.id.desc(),
    ).offset((page - 1) * limit).limit(limit).all()

    return {
        "items": [tx.to_dict() for tx in items],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
        "totals": {
            "amount_cents": int(totals_row[1]),
            "commission_cents": int(totals_row[2]),
            "net_commission_cents": int(totals_row[3]),
        },
    }
