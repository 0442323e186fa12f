# Overview: Service-layer operations for the audit trail; append-only.

"""
Audit trail invariants

- Append-only: no updates or deletes of existing events.
- The caller commits: events ride in the same DB transaction as the change
  they record, so a rolled-back change leaves no event behind.
- Payloads are small JSON snapshots, not a copy of domain state.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Optional

from ..extensions import db
from ..models import AuditEvent


def _json_default(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def append_audit_event(
    *,
    shop_id: int,
    event_type: str,
    entity_type: str,
    entity_id: int,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> AuditEvent:
    ev = AuditEvent(
        shop_id=shop_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        note=note,
        payload=json.dumps(payload, default=_json_default, sort_keys=True) if payload is not None else None,
    )
    db.session.add(ev)
    return ev
