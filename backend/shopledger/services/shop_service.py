# Overview: Service-layer operations for shops (tenants).

from __future__ import annotations

from ..extensions import db
from ..models import Shop
from ..validation import ConflictError, ValidationError
from . import fee_service


def create_shop(name: str, code: str | None = None, phone: str | None = None, address: str | None = None) -> Shop:
    """Create a shop and seed its default fee rules."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    code = (code or "").strip().upper() or None
    if code and db.session.query(Shop.id).filter_by(code=code).first():
        raise ConflictError("Shop code already exists")

    shop = Shop(name=name, code=code, phone=phone, address=address, is_active=True)
    db.session.add(shop)
    db.session.commit()

    fee_service.seed_default_fee_rules(shop.id)
    return shop


def list_shops(include_inactive: bool = False) -> list[Shop]:
    query = db.session.query(Shop)
    if not include_inactive:
        query = query.filter(Shop.is_active.is_(True))
    return query.order_by(Shop.id.asc()).all()
