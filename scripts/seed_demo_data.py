#!/usr/bin/env python3
"""
MAAP Check-in Core - Demo Data Seed Script.

Company: Northwind Studio
Seeds one company with a manager and an employee who holds every MAAP
dimension (position, two assignments, an ability milestone, three
aspirations) and has a check-in ready for finalization in each.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --append
    python scripts/seed_demo_data.py --verbose
"""

import argparse
import sys
from datetime import date

sys.path.insert(0, ".")

from maap import create_app
from maap.models import db
from maap.models.audit import AuditLog
from maap.models.catalog import Ability, Aspiration, Assignment, Position, Seat
from maap.models.check_in import AspirationCheckIn, AssignmentCheckIn, PositionCheckIn
from maap.models.observable_moment import ObservableMoment
from maap.models.organization import Organization, Person, Teammate
from maap.models.snapshot import MaapSnapshot
from maap.models.tenure import AssignmentTenure, EmploymentTenure, TeammateMilestone
from maap.services import check_in_service, tenure_service


# ═════════════════════════════════════════════════════════════════════════════
# DEMO DATA
# ═════════════════════════════════════════════════════════════════════════════

COMPANY = {"name": "Northwind Studio", "type": "company"}

PEOPLE = [
    {"key": "manager", "full_name": "Morgan Reyes", "email": "morgan.reyes@northwind.test"},
    {"key": "employee", "full_name": "Dana Okafor", "email": "dana.okafor@northwind.test"},
]

ASSIGNMENTS = [
    {"title": "Release Captain", "tagline": "Ship every release on time", "energy": 30},
    {"title": "Design Reviewer", "tagline": "Keep the design system coherent", "energy": 50},
]

ABILITIES = [
    {"name": "Systems Thinking", "milestone_level": 2},
]

ASPIRATIONS = [
    {"name": "Customer Obsession", "sort_order": 1},
    {"name": "Bias for Clarity", "sort_order": 2},
    {"name": "Generous Mentorship", "sort_order": 3},
]


def _p(msg, verbose):
    if verbose:
        print(msg)


def _ready(check_in, manager_person, employee_rating, manager_rating, verbose):
    check_in_service.complete_employee_side(check_in, rating=employee_rating)
    check_in_service.complete_manager_side(check_in, rating=manager_rating, completed_by=manager_person)
    _p(f"      ✅ {check_in!r}", verbose)


# ═════════════════════════════════════════════════════════════════════════════
# SEED FUNCTION
# ═════════════════════════════════════════════════════════════════════════════

def seed_all(app, append=False, verbose=False):
    """Seed the demo company with ready-to-finalize check-ins."""
    with app.app_context():
        if not append:
            print("🗑️  Clearing existing data...")
            for model in [AuditLog, ObservableMoment,
                          AspirationCheckIn, PositionCheckIn, AssignmentCheckIn,
                          MaapSnapshot, TeammateMilestone,
                          EmploymentTenure, AssignmentTenure,
                          Aspiration, Ability, Assignment, Seat, Position,
                          Teammate, Person, Organization]:
                db.session.query(model).delete()
            db.session.commit()
            print("   Done.\n")

        # ── 1. Directory ─────────────────────────────────────────────────
        print("🏢 Creating company & people...")
        company = Organization(**COMPANY)
        db.session.add(company)
        db.session.flush()
        teammates = {}
        for p_data in PEOPLE:
            person = Person.query.filter_by(email=p_data["email"]).first()
            if person is None:
                person = Person(full_name=p_data["full_name"], email=p_data["email"])
                db.session.add(person)
                db.session.flush()
            tm = Teammate(person_id=person.id, organization_id=company.id, first_employed_at=date(2023, 2, 1))
            db.session.add(tm)
            db.session.flush()
            teammates[p_data["key"]] = tm
            _p(f"   ✅ {person.full_name} (teammate id={tm.id})", verbose)
        manager, employee = teammates["manager"], teammates["employee"]
        db.session.commit()

        # ── 2. Position & employment ─────────────────────────────────────
        print("\n💼 Creating position & employment tenure...")
        position = Position(company_id=company.id, title="Product Designer", level="2.1")
        db.session.add(position)
        db.session.flush()
        seat = Seat(company_id=company.id, position_id=position.id, name="Product Designer #1", state="filled")
        db.session.add(seat)
        db.session.flush()
        tenure_service.start_employment_tenure(
            employee.id, company.id, position.id,
            manager_id=manager.id, seat_id=seat.id, start_date=date(2023, 2, 1),
        )
        db.session.commit()

        # ── 3. Assignments ───────────────────────────────────────────────
        print("\n📋 Creating assignments & tenures...")
        assignments = []
        for a_data in ASSIGNMENTS:
            assignment = Assignment(company_id=company.id, title=a_data["title"], tagline=a_data["tagline"])
            db.session.add(assignment)
            db.session.flush()
            tenure_service.start_assignment_tenure(
                employee.id, assignment.id,
                anticipated_energy_percentage=a_data["energy"], start_date=date(2024, 1, 8),
            )
            assignments.append(assignment)
            _p(f"   ✅ {assignment.title} ({a_data['energy']}%)", verbose)
        db.session.commit()

        # ── 4. Abilities & aspirations ───────────────────────────────────
        print("\n🎯 Creating abilities & aspirations...")
        for ab_data in ABILITIES:
            ability = Ability(organization_id=company.id, name=ab_data["name"])
            db.session.add(ability)
            db.session.flush()
            db.session.add(TeammateMilestone(
                teammate_id=employee.id, ability_id=ability.id,
                milestone_level=ab_data["milestone_level"], certified_by_id=manager.person_id,
                attained_at=date(2024, 5, 20),
            ))
        aspirations = []
        for asp_data in ASPIRATIONS:
            aspiration = Aspiration(organization_id=company.id, **asp_data)
            db.session.add(aspiration)
            aspirations.append(aspiration)
        db.session.commit()

        # ── 5. Ready check-ins ───────────────────────────────────────────
        print("\n📝 Opening check-ins and completing both sides...")
        manager_person = manager.person
        _ready(check_in_service.find_or_create_open_position_check_in(employee),
               manager_person, 1, 2, verbose)
        for assignment in assignments:
            _ready(check_in_service.find_or_create_open_assignment_check_in(employee, assignment),
                   manager_person, "meeting", "exceeding", verbose)
        for aspiration in aspirations:
            _ready(check_in_service.find_or_create_open_aspiration_check_in(employee, aspiration),
                   manager_person, "meeting", "meeting", verbose)

        total = (1 + len(PEOPLE) * 2 + 3 + len(ASSIGNMENTS) * 2 + len(ABILITIES) * 2
                 + len(ASPIRATIONS) + 1 + len(ASSIGNMENTS) + len(ASPIRATIONS))
        print(f"\n{'='*60}")
        print(f"🎉 DEMO DATA SEED COMPLETE - {total} records")
        print(f"   Finalize as: {manager_person.email}  (employee teammate id={employee.id})")
        print(f"{'='*60}\n")


def main():
    parser = argparse.ArgumentParser(description="Seed MAAP demo data")
    parser.add_argument("--append", action="store_true")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    app = create_app()
    print(f"🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
    with app.app_context():
        db.create_all()
    seed_all(app, append=args.append, verbose=args.verbose)


if __name__ == "__main__":
    main()
