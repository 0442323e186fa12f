from __future__ import annotations

import json

from ..extensions import db
from shopledger.time_utils import to_utc_z


class AuditEvent(db.Model):
    """
    Append-only audit trail for money-affecting changes.

    Every closing submission and every create/update/delete of a service
    transaction, loan payment or supplier payment leaves one row here, written
    in the same DB transaction as the change it records.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_shop_occurred", "shop_id", "occurred_at"),
        db.Index("ix_audit_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # e.g., SERVICE_TX_CREATED, DAILY_CLOSING_SUBMITTED

    # What it refers to (generic pointer; deleted rows keep their audit trail)
    entity_type = db.Column(db.String(64), nullable=False)  # e.g., service_transaction, daily_closing
    entity_id = db.Column(db.Integer, nullable=False)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)  # JSON snapshot

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
            "payload": json.loads(self.payload) if self.payload else None,
        }
