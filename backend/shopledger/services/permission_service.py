# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create audit trail.
Every denial is logged for security monitoring.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and inactive users get no permissions
- Log denials only: permission grants are not logged
- Roles are fixed (SUPER_ADMIN, SHOP_OWNER, SHOP_WORKER); grants live in
  shopledger.permissions.roles, not in the database
"""

import logging

from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import get_role_permissions
from shopledger.time_utils import utcnow


logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    shop_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGIN_SUCCEEDED
    - LOGOUT
    - CROSS_TENANT_ACCESS_DENIED
    """
    event = SecurityEvent(
        user_id=user_id,
        shop_id=shop_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    if not success:
        logger.warning(
            "Security event %s user=%s shop=%s resource=%s reason=%s",
            event_type, user_id, shop_id, resource, reason,
        )

    return event


def get_user_permissions(user_id: int) -> set[str]:
    """
    Get all permission codes for a user.

    Returns set of permission codes (e.g., {"RECORD_SERVICE_TRANSACTION"}).
    """
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return set()
    return get_role_permissions(user.role)


def user_has_permission(user_id: int, permission_code: str) -> bool:
    """Check if user has a specific permission."""
    return permission_code in get_user_permissions(user_id)


def require_permission(
    user_id: int,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    shop_id: int | None = None,
) -> None:
    """
    Raise PermissionDeniedError unless the user holds permission_code.

    Denials are written to security_events with tenant context.
    """
    if user_has_permission(user_id, permission_code):
        return

    log_security_event(
        user_id=user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
        shop_id=shop_id,
    )
    raise PermissionDeniedError(f"Missing permission: {permission_code}")
