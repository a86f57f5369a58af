"""
CheckInModel - Abstract base class for the three check-in tables.

Every check-in kind (assignment, position, aspiration) shares the same
completion lifecycle:

    open ──(employee + manager complete)──► ready_for_finalization
         ──(official rating recorded)────► finalized   (terminal)

This base adds:
  - teammate_id / finalized_by_id / maap_snapshot_id FK columns
  - employee / manager / official completion timestamps
  - state helpers (``state``, ``ready_for_finalization``, ...)
  - query helpers (``query_open``, ``query_finalized``)

Ratings and the dimension FK are declared per subclass because their
types differ between dimensions.
"""

from datetime import date, datetime, timezone

from sqlalchemy.orm import declared_attr

from maap.models import db

CHECK_IN_STATES = ("open", "ready_for_finalization", "finalized")


def open_check_in_index(table_name: str, *dimension_cols):
    """Partial unique index: one open check-in per (teammate, dimension)."""
    cols = ("teammate_id",) + dimension_cols
    return db.Index(
        f"uq_{table_name}_one_open", *cols,
        unique=True,
        postgresql_where=db.text("official_check_in_completed_at IS NULL"),
        sqlite_where=db.text("official_check_in_completed_at IS NULL"),
    )


class CheckInModel(db.Model):
    """Abstract base for check-in tables."""
    __abstract__ = True

    # Subclasses set this to "assignment" | "position" | "aspiration".
    dimension = None

    id = db.Column(db.Integer, primary_key=True)
    teammate_id = db.Column(
        db.Integer,
        db.ForeignKey("teammates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    check_in_started_on = db.Column(db.Date, nullable=False, default=date.today)

    # Employee side
    employee_private_notes = db.Column(db.Text, nullable=True)
    employee_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Manager side
    manager_private_notes = db.Column(db.Text, nullable=True)
    manager_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    manager_completed_by_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True
    )

    # Official / shared
    shared_notes = db.Column(db.Text, nullable=True)
    official_check_in_completed_at = db.Column(
        db.DateTime(timezone=True), nullable=True,
        comment="Set once at finalization - NULL means the check-in is still open",
    )
    finalized_by_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True
    )
    maap_snapshot_id = db.Column(
        db.Integer, db.ForeignKey("maap_snapshots.id", ondelete="SET NULL"), nullable=True
    )

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @declared_attr
    def teammate(cls):
        return db.relationship("Teammate")

    @declared_attr
    def finalized_by(cls):
        return db.relationship("Person", foreign_keys=f"{cls.__name__}.finalized_by_id")

    # ── State ────────────────────────────────────────────────────────────

    @property
    def employee_completed(self) -> bool:
        return self.employee_completed_at is not None

    @property
    def manager_completed(self) -> bool:
        return self.manager_completed_at is not None

    @property
    def officially_completed(self) -> bool:
        return self.official_check_in_completed_at is not None

    @property
    def is_open(self) -> bool:
        return not self.officially_completed

    @property
    def ready_for_finalization(self) -> bool:
        return self.employee_completed and self.manager_completed and not self.officially_completed

    @property
    def state(self) -> str:
        if self.officially_completed:
            return "finalized"
        if self.ready_for_finalization:
            return "ready_for_finalization"
        return "open"

    @property
    def completion_state(self) -> str:
        """both_open | employee_complete | manager_complete | both_complete."""
        if self.employee_completed and self.manager_completed:
            return "both_complete"
        if self.employee_completed:
            return "employee_complete"
        if self.manager_completed:
            return "manager_complete"
        return "both_open"

    # ── Queries ──────────────────────────────────────────────────────────

    @classmethod
    def query_open(cls):
        return cls.query.filter(cls.official_check_in_completed_at.is_(None))

    @classmethod
    def query_finalized(cls):
        return cls.query.filter(cls.official_check_in_completed_at.isnot(None))

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "dimension": self.dimension,
            "teammate_id": self.teammate_id,
            "state": self.state,
            "check_in_started_on": self.check_in_started_on.isoformat() if self.check_in_started_on else None,
            "employee_completed_at": self.employee_completed_at.isoformat() if self.employee_completed_at else None,
            "manager_completed_at": self.manager_completed_at.isoformat() if self.manager_completed_at else None,
            "manager_completed_by_id": self.manager_completed_by_id,
            "shared_notes": self.shared_notes,
            "official_check_in_completed_at": (
                self.official_check_in_completed_at.isoformat()
                if self.official_check_in_completed_at else None
            ),
            "finalized_by_id": self.finalized_by_id,
            "maap_snapshot_id": self.maap_snapshot_id,
        }
