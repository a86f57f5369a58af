"""
Tenure Store - who holds what, since when, until when, with what rating.

Models:
    - AssignmentTenure:  teammate ↔ assignment holding period
    - EmploymentTenure:  teammate ↔ company/position holding period
    - TeammateMilestone: ability milestone attained by a teammate

Business rules:
    - At most ONE tenure per (teammate, dimension) with end_date IS NULL.
      The partial unique indexes below back the service-layer check in
      ``maap.services.tenure_service``.
    - A tenure is closed by setting end_date + its official rating; rows
      are never deleted by the finalization engine.
"""

from datetime import date, datetime, timezone

from maap.models import db

EMPLOYMENT_TYPES = frozenset({"full_time", "part_time", "contract", "intern"})
MILESTONE_LEVELS = (1, 2, 3, 4, 5)


class AssignmentTenure(db.Model):
    __tablename__ = "assignment_tenures"

    id = db.Column(db.Integer, primary_key=True)
    teammate_id = db.Column(
        db.Integer, db.ForeignKey("teammates.id", ondelete="CASCADE"), nullable=False
    )
    assignment_id = db.Column(
        db.Integer, db.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True, comment="NULL = open tenure")
    anticipated_energy_percentage = db.Column(db.Integer, nullable=True)
    official_rating = db.Column(
        db.String(20), nullable=True,
        comment="working_to_meet | meeting | exceeding - set when the tenure is closed",
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_assignment_tenures_teammate_assignment", "teammate_id", "assignment_id"),
        db.Index(
            "uq_assignment_tenures_one_open",
            "teammate_id", "assignment_id",
            unique=True,
            postgresql_where=db.text("end_date IS NULL"),
            sqlite_where=db.text("end_date IS NULL"),
        ),
    )

    teammate = db.relationship("Teammate")
    assignment = db.relationship("Assignment")

    @property
    def is_active(self) -> bool:
        return self.end_date is None

    def to_dict(self):
        return {
            "id": self.id,
            "teammate_id": self.teammate_id,
            "assignment_id": self.assignment_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "anticipated_energy_percentage": self.anticipated_energy_percentage,
            "official_rating": self.official_rating,
        }

    def __repr__(self):
        state = "open" if self.is_active else f"closed {self.end_date}"
        return f"<AssignmentTenure {self.id}: tm={self.teammate_id} asg={self.assignment_id} {state}>"


class EmploymentTenure(db.Model):
    __tablename__ = "employment_tenures"

    id = db.Column(db.Integer, primary_key=True)
    teammate_id = db.Column(
        db.Integer, db.ForeignKey("teammates.id", ondelete="CASCADE"), nullable=False
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    position_id = db.Column(
        db.Integer, db.ForeignKey("positions.id", ondelete="RESTRICT"), nullable=False
    )
    manager_id = db.Column(
        db.Integer, db.ForeignKey("teammates.id", ondelete="SET NULL"), nullable=True,
        comment="Manager's Teammate row in the same company",
    )
    seat_id = db.Column(
        db.Integer, db.ForeignKey("seats.id", ondelete="SET NULL"), nullable=True
    )
    employment_type = db.Column(db.String(20), nullable=False, default="full_time")
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True, comment="NULL = open tenure")
    official_position_rating = db.Column(
        db.Integer, nullable=True, comment="-3..3 - set when the tenure is closed"
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_employment_tenures_teammate_company", "teammate_id", "company_id"),
        db.Index(
            "uq_employment_tenures_one_open",
            "teammate_id", "company_id",
            unique=True,
            postgresql_where=db.text("end_date IS NULL"),
            sqlite_where=db.text("end_date IS NULL"),
        ),
    )

    teammate = db.relationship("Teammate", foreign_keys=[teammate_id])
    manager = db.relationship("Teammate", foreign_keys=[manager_id])
    position = db.relationship("Position")

    @property
    def is_active(self) -> bool:
        return self.end_date is None

    def to_dict(self):
        return {
            "id": self.id,
            "teammate_id": self.teammate_id,
            "company_id": self.company_id,
            "position_id": self.position_id,
            "manager_id": self.manager_id,
            "seat_id": self.seat_id,
            "employment_type": self.employment_type,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "official_position_rating": self.official_position_rating,
        }

    def __repr__(self):
        state = "open" if self.is_active else f"closed {self.end_date}"
        return f"<EmploymentTenure {self.id}: tm={self.teammate_id} pos={self.position_id} {state}>"


class TeammateMilestone(db.Model):
    __tablename__ = "teammate_milestones"

    id = db.Column(db.Integer, primary_key=True)
    teammate_id = db.Column(
        db.Integer, db.ForeignKey("teammates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ability_id = db.Column(
        db.Integer, db.ForeignKey("abilities.id", ondelete="CASCADE"), nullable=False
    )
    milestone_level = db.Column(db.Integer, nullable=False)
    certified_by_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True
    )
    attained_at = db.Column(db.Date, nullable=False, default=date.today)

    __table_args__ = (
        db.UniqueConstraint(
            "teammate_id", "ability_id", "milestone_level", name="uq_teammate_milestone_level"
        ),
    )

    ability = db.relationship("Ability")

    def __repr__(self):
        return f"<TeammateMilestone tm={self.teammate_id} ability={self.ability_id} L{self.milestone_level}>"
