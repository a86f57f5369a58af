"""
MaapSnapshot - persisted point-in-time export of a person's MAAP state.

One row per finalization batch (or any other change that re-captures the
state).  ``maap_data`` holds the aggregator payload verbatim:

    {"position": {...}|null, "assignments": [...], "abilities": [...], "aspirations": [...]}

Rows are append-only; finalized check-ins point back at the snapshot that
captured them via ``maap_snapshot_id``.
"""

from datetime import datetime, timezone

from maap.models import db

CHANGE_TYPES = frozenset({
    "assignment_management",
    "position_tenure",
    "milestone_management",
    "aspiration_management",
    "exploration",
    "bulk_update",
    "bulk_check_in_finalization",
})


class MaapSnapshot(db.Model):
    __tablename__ = "maap_snapshots"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    change_type = db.Column(
        db.String(40), nullable=False,
        comment="assignment_management | position_tenure | aspiration_management | bulk_check_in_finalization | …",
    )
    reason = db.Column(db.Text, nullable=False)
    effective_date = db.Column(db.Date, nullable=True, comment="NULL until the change is executed")

    maap_data = db.Column(db.JSON, nullable=False, default=dict)
    form_params = db.Column(db.JSON, nullable=False, default=dict)
    request_info = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_maap_snapshots_employee_company", "employee_id", "company_id"),
    )

    @property
    def executed(self) -> bool:
        return self.effective_date is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "created_by_id": self.created_by_id,
            "company_id": self.company_id,
            "change_type": self.change_type,
            "reason": self.reason,
            "effective_date": self.effective_date.isoformat() if self.effective_date else None,
            "maap_data": self.maap_data or {},
            "form_params": self.form_params or {},
            "request_info": self.request_info or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<MaapSnapshot #{self.id} {self.change_type} employee={self.employee_id}>"
