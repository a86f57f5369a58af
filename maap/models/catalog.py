"""
Catalog Models - what a company defines for its people to hold.

Models:
    - Position:   a job a teammate is employed into
    - Seat:       a budgeted headcount slot a position is filled through
    - Assignment: an outcome-based responsibility a teammate takes on
    - Ability:    a skill with milestone levels 1-5
    - Aspiration: a company value every teammate is rated against
"""

from datetime import datetime, timezone

from maap.models import db


class Position(db.Model):
    __tablename__ = "positions"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    level = db.Column(db.String(20), nullable=True, comment="e.g. 1.2, 2.0")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "title": self.title,
            "level": self.level,
        }

    def __repr__(self):
        return f"<Position {self.id}: {self.title}>"


class Seat(db.Model):
    __tablename__ = "seats"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    position_id = db.Column(
        db.Integer, db.ForeignKey("positions.id", ondelete="SET NULL"), nullable=True
    )
    name = db.Column(db.String(200), nullable=False)
    state = db.Column(db.String(20), nullable=False, default="open")  # draft, open, filled, archived

    def __repr__(self):
        return f"<Seat {self.id}: {self.name} ({self.state})>"


class Assignment(db.Model):
    __tablename__ = "assignments"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    tagline = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "title": self.title,
            "tagline": self.tagline,
        }

    def __repr__(self):
        return f"<Assignment {self.id}: {self.title}>"


class Ability(db.Model):
    __tablename__ = "abilities"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f"<Ability {self.id}: {self.name}>"


class Aspiration(db.Model):
    __tablename__ = "aspirations"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    organization = db.relationship("Organization", back_populates="aspirations")

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "description": self.description,
            "sort_order": self.sort_order,
        }

    def __repr__(self):
        return f"<Aspiration {self.id}: {self.name}>"
