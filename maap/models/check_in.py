"""
Check-In Store - periodic reviews for each MAAP dimension.

Models:
    - AssignmentCheckIn:  rated on ASSIGNMENT_RATINGS, one open per (teammate, assignment)
    - PositionCheckIn:    rated on POSITION_RATINGS (-3..3), one open per teammate
    - AspirationCheckIn:  rated on ASPIRATION_RATINGS, one open per (teammate, aspiration)

Lifecycle and shared columns live in ``maap.models.base.CheckInModel``.
"""

from maap.models import db
from maap.models.base import CheckInModel, open_check_in_index

PERSONAL_ALIGNMENTS = frozenset({"love", "like", "neutral", "prefer_not", "only_if_necessary"})


class AssignmentCheckIn(CheckInModel):
    __tablename__ = "assignment_check_ins"

    dimension = "assignment"

    assignment_id = db.Column(
        db.Integer, db.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    actual_energy_percentage = db.Column(db.Integer, nullable=True)
    employee_personal_alignment = db.Column(db.String(30), nullable=True)
    employee_rating = db.Column(db.String(20), nullable=True)
    manager_rating = db.Column(db.String(20), nullable=True)
    official_rating = db.Column(db.String(20), nullable=True)

    __table_args__ = (
        db.Index("ix_assignment_check_ins_teammate_assignment", "teammate_id", "assignment_id"),
        open_check_in_index("assignment_check_ins", "assignment_id"),
    )

    assignment = db.relationship("Assignment")

    @property
    def dimension_id(self):
        return self.assignment_id

    def to_dict(self):
        d = self._base_dict()
        d.update({
            "assignment_id": self.assignment_id,
            "actual_energy_percentage": self.actual_energy_percentage,
            "employee_personal_alignment": self.employee_personal_alignment,
            "employee_rating": self.employee_rating,
            "manager_rating": self.manager_rating,
            "official_rating": self.official_rating,
        })
        return d

    def __repr__(self):
        return f"<AssignmentCheckIn {self.id}: tm={self.teammate_id} asg={self.assignment_id} {self.state}>"


class PositionCheckIn(CheckInModel):
    __tablename__ = "position_check_ins"

    dimension = "position"

    employment_tenure_id = db.Column(
        db.Integer, db.ForeignKey("employment_tenures.id", ondelete="SET NULL"), nullable=True,
        comment="Tenure that was open when the check-in started",
    )
    employee_rating = db.Column(db.Integer, nullable=True)
    manager_rating = db.Column(db.Integer, nullable=True)
    official_rating = db.Column(db.Integer, nullable=True)

    __table_args__ = (
        open_check_in_index("position_check_ins"),
    )

    employment_tenure = db.relationship("EmploymentTenure")

    @property
    def dimension_id(self):
        return self.employment_tenure.position_id if self.employment_tenure else None

    def to_dict(self):
        d = self._base_dict()
        d.update({
            "employment_tenure_id": self.employment_tenure_id,
            "employee_rating": self.employee_rating,
            "manager_rating": self.manager_rating,
            "official_rating": self.official_rating,
        })
        return d

    def __repr__(self):
        return f"<PositionCheckIn {self.id}: tm={self.teammate_id} {self.state}>"


class AspirationCheckIn(CheckInModel):
    __tablename__ = "aspiration_check_ins"

    dimension = "aspiration"

    aspiration_id = db.Column(
        db.Integer, db.ForeignKey("aspirations.id", ondelete="CASCADE"), nullable=False
    )
    employee_rating = db.Column(db.String(20), nullable=True)
    manager_rating = db.Column(db.String(20), nullable=True)
    official_rating = db.Column(db.String(20), nullable=True)

    __table_args__ = (
        db.Index("ix_aspiration_check_ins_teammate_aspiration", "teammate_id", "aspiration_id"),
        open_check_in_index("aspiration_check_ins", "aspiration_id"),
    )

    aspiration = db.relationship("Aspiration")

    @property
    def dimension_id(self):
        return self.aspiration_id

    def to_dict(self):
        d = self._base_dict()
        d.update({
            "aspiration_id": self.aspiration_id,
            "employee_rating": self.employee_rating,
            "manager_rating": self.manager_rating,
            "official_rating": self.official_rating,
        })
        return d

    def __repr__(self):
        return f"<AspirationCheckIn {self.id}: tm={self.teammate_id} asp={self.aspiration_id} {self.state}>"


CHECK_IN_MODELS = {
    "assignment": AssignmentCheckIn,
    "position": PositionCheckIn,
    "aspiration": AspirationCheckIn,
}
