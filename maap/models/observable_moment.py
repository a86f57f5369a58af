"""
ObservableMoment - a recorded event that someone should notice.

Polymorphic FK pattern:
    momentable_type + momentable_id identify the source record
    (e.g. "AspirationCheckIn" / 42).
"""

from datetime import datetime, timezone

from maap.models import db

MOMENT_TYPES = frozenset({"check_in_completed", "new_hire", "seat_change", "ability_milestone"})


class ObservableMoment(db.Model):
    __tablename__ = "observable_moments"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    moment_type = db.Column(db.String(40), nullable=False)
    momentable_type = db.Column(db.String(50), nullable=False)
    momentable_id = db.Column(db.Integer, nullable=False)
    primary_observer_id = db.Column(
        db.Integer, db.ForeignKey("teammates.id", ondelete="SET NULL"), nullable=True,
        comment="Teammate expected to write an observation about the moment",
    )
    created_by_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True
    )
    # "metadata" is reserved on declarative models
    moment_metadata = db.Column("metadata", db.JSON, nullable=False, default=dict)
    occurred_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_observable_moments_momentable", "momentable_type", "momentable_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "moment_type": self.moment_type,
            "momentable_type": self.momentable_type,
            "momentable_id": self.momentable_id,
            "primary_observer_id": self.primary_observer_id,
            "created_by_id": self.created_by_id,
            "metadata": self.moment_metadata or {},
            "occurred_at": self.occurred_at.isoformat() if self.occurred_at else None,
        }

    def __repr__(self):
        return f"<ObservableMoment {self.id}: {self.moment_type} {self.momentable_type}/{self.momentable_id}>"
