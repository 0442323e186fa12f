# Overview: Service-layer helpers for resolving and enforcing the shop a request acts on.

"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant validation logic for reuse across routes.
Every request is scoped to exactly one shop, and cross-shop access is
explicitly denied and logged.

SECURITY INVARIANTS:
1. Every authenticated request has g.shop_id set (None only for SUPER_ADMIN)
2. A shop_id from client input must match g.shop_id unless the caller is SUPER_ADMIN
3. Service functions receive shop_id explicitly; they never read g themselves
4. Cross-tenant access attempts are logged as security events

USAGE:
    from shopledger.services import tenant_service

    shop_id = tenant_service.resolve_request_shop_id(request.args.get("shop_id", type=int))
    aggregation_service.aggregate_day(shop_id, day)
"""

from flask import g, request

from ..extensions import db
from ..models import Shop
from ..models.auth import SUPER_ADMIN
from ..validation import ValidationError, coerce_int
from .permission_service import log_security_event


class TenantAccessError(Exception):
    """Raised when cross-tenant access is attempted."""
    pass


def get_current_shop_id() -> int | None:
    """Shop of the authenticated session (None for SUPER_ADMIN)."""
    return getattr(g, 'shop_id', None)


def _is_super_admin() -> bool:
    user = getattr(g, 'current_user', None)
    return bool(user and user.role == SUPER_ADMIN)


def require_active_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if not shop or not shop.is_active:
        raise TenantAccessError("Shop not found")
    return shop


def resolve_request_shop_id(requested_shop_id: int | None) -> int:
    """
    Decide which shop the current request acts on.

    - Shop users: their session shop. Naming any other shop is a
      cross-tenant attempt; it is logged and rejected.
    - SUPER_ADMIN: must name the shop explicitly.

    Raises:
        ValidationError: SUPER_ADMIN did not pass shop_id
        TenantAccessError: shop mismatch or unknown/inactive shop
    """
    if _is_super_admin():
        if requested_shop_id is None:
            raise ValidationError("shop_id is required")
        require_active_shop(requested_shop_id)
        return requested_shop_id

    session_shop_id = get_current_shop_id()
    if session_shop_id is None:
        raise TenantAccessError("Tenant context not established")

    if requested_shop_id is not None and requested_shop_id != session_shop_id:
        _log_cross_tenant_attempt(
            f"Shop {requested_shop_id} requested from a session bound to shop {session_shop_id}",
            shop_id=session_shop_id,
        )
        raise TenantAccessError("Access to this shop is not allowed")

    return session_shop_id


def _log_cross_tenant_attempt(reason: str, shop_id: int | None) -> None:
    user = getattr(g, 'current_user', None)
    log_security_event(
        user_id=user.id if user else None,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        resource=request.path,
        action=request.method,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        shop_id=shop_id,
    )


def resolve_shop_from_request(payload: dict | None = None) -> int:
    """
    resolve_request_shop_id for the current request.

    Looks for shop_id in the JSON payload first (and removes it, so the
    payload can be validated as a pure domain body), then in the query string.
    """
    raw = None
    if payload is not None and "shop_id" in payload:
        raw = payload.pop("shop_id")
    if raw is None:
        raw = request.args.get("shop_id")
    requested = None if raw in (None, "") else coerce_int(raw, "shop_id")
    return resolve_request_shop_id(requested)
