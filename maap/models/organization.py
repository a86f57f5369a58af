"""
Directory Models - organizations, people, teammates.

A Person exists once across the platform.  A Teammate is that person's
membership inside one company; every tenure, milestone and check-in hangs
off the Teammate, never off the Person directly.
"""

from datetime import datetime, timezone

from maap.models import db

ORGANIZATION_TYPES = frozenset({"company", "department", "team"})


# ═══════════════════════════════════════════════════════════════
# 1. ORGANIZATIONS
# ═══════════════════════════════════════════════════════════════
class Organization(db.Model):
    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="company")  # company, department, team
    parent_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    parent = db.relationship("Organization", remote_side=[id])
    teammates = db.relationship("Teammate", back_populates="organization", lazy="dynamic")
    aspirations = db.relationship(
        "Aspiration", back_populates="organization", lazy="dynamic",
        order_by="Aspiration.id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "parent_id": self.parent_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Organization {self.id}: {self.name}>"


# ═══════════════════════════════════════════════════════════════
# 2. PEOPLE
# ═══════════════════════════════════════════════════════════════
class Person(db.Model):
    __tablename__ = "people"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    teammates = db.relationship("Teammate", back_populates="person", lazy="dynamic")

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
        }

    def __repr__(self):
        return f"<Person {self.id}: {self.email}>"


# ═══════════════════════════════════════════════════════════════
# 3. TEAMMATES
# ═══════════════════════════════════════════════════════════════
class Teammate(db.Model):
    """A person's membership in one company (one row per person/company pair)."""

    __tablename__ = "teammates"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), nullable=False
    )
    organization_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    first_employed_at = db.Column(db.Date, nullable=True)
    last_terminated_at = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("person_id", "organization_id", name="uq_teammate_person_org"),
        db.Index("ix_teammates_organization_id", "organization_id"),
    )

    person = db.relationship("Person", back_populates="teammates")
    organization = db.relationship("Organization", back_populates="teammates")

    def to_dict(self):
        return {
            "id": self.id,
            "person_id": self.person_id,
            "organization_id": self.organization_id,
            "first_employed_at": self.first_employed_at.isoformat() if self.first_employed_at else None,
            "last_terminated_at": self.last_terminated_at.isoformat() if self.last_terminated_at else None,
        }

    def __repr__(self):
        return f"<Teammate {self.id}: person={self.person_id} org={self.organization_id}>"


def find_teammate(person, company) -> Teammate | None:
    """Return the Teammate row for (person, company), or None.

    Accepts model instances or raw ids for either argument.
    """
    person_id = getattr(person, "id", person)
    company_id = getattr(company, "id", company)
    if person_id is None or company_id is None:
        return None
    return Teammate.query.filter_by(person_id=person_id, organization_id=company_id).first()
