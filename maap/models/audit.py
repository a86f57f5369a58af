"""
Audit trail for check-in and tenure lifecycle events.

Every service write (side completion, finalization, tenure open/close,
snapshot creation) appends one ``AuditLog`` row through ``write_audit``.
Rows are flushed, never committed here: they share the caller's
transaction and disappear with it on rollback.
"""

import json
from datetime import UTC, datetime

from maap.models import db

AUDIT_ENTITY_TYPES = frozenset({
    "assignment_check_in", "position_check_in", "aspiration_check_in",
    "assignment_tenure", "employment_tenure", "maap_snapshot",
})

AUDIT_ACTIONS = frozenset({
    "check_in.complete_employee",
    "check_in.complete_manager",
    "check_in.finalize",
    "tenure.open",
    "tenure.close",
    "snapshot.create",
})


class AuditLog(db.Model):
    """One row per lifecycle action; ``diff_json`` holds the touched fields."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_company", "company_id"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
    )
    entity_type = db.Column(db.String(30), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False)
    action = db.Column(db.String(60), nullable=False)
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey("people.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="NULL when the system acted",
    )
    diff_json = db.Column(db.Text, default="{}")
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    @property
    def diff(self) -> dict:
        return json.loads(self.diff_json or "{}")

    def __repr__(self):
        return f"<AuditLog {self.action} {self.entity_type}#{self.entity_id}>"


def write_audit(
    *,
    entity_type: str,
    entity_id,
    action: str,
    company_id: int | None = None,
    actor_id: int | None = None,
    diff: dict | None = None,
) -> AuditLog:
    """Append and flush one audit row in the current transaction.

    Raises:
        ValueError: unknown ``entity_type`` or ``action``.
    """
    if entity_type not in AUDIT_ENTITY_TYPES:
        raise ValueError(f"Unknown audit entity type: {entity_type}")
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action}")

    log = AuditLog(
        company_id=company_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor_id=actor_id,
        diff_json=json.dumps(diff or {}, default=str),
    )
    db.session.add(log)
    db.session.flush()
    return log
