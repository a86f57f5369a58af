"""
Tenure Service - open/close/lookup for assignment and employment tenures.

Owns the "at most one open tenure per (teammate, dimension)" invariant at
the service layer:
    - start_* refuses to open a tenure while another one is open
      (ConflictError); the partial unique indexes on the tables are the
      database-level backstop.
    - active_* lookups accept ``for_update=True`` so a finalizer can hold a
      row lock on the tenure it is about to close.

Functions here only ``flush``; the caller owns the transaction.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select

from maap.core.exceptions import ConflictError, ValidationError
from maap.models import db
from maap.models.audit import write_audit
from maap.models.tenure import EMPLOYMENT_TYPES, AssignmentTenure, EmploymentTenure

logger = logging.getLogger(__name__)


# ── Lookups ───────────────────────────────────────────────────────────────────


def active_assignment_tenure(
    teammate_id: int,
    assignment_id: int,
    *,
    for_update: bool = False,
) -> AssignmentTenure | None:
    """Return the open assignment tenure for (teammate, assignment), if any."""
    stmt = select(AssignmentTenure).where(
        AssignmentTenure.teammate_id == teammate_id,
        AssignmentTenure.assignment_id == assignment_id,
        AssignmentTenure.end_date.is_(None),
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.session.execute(stmt).scalars().first()


def active_employment_tenure(
    teammate_id: int,
    company_id: int,
    *,
    for_update: bool = False,
) -> EmploymentTenure | None:
    """Return the open employment tenure for (teammate, company), if any."""
    stmt = select(EmploymentTenure).where(
        EmploymentTenure.teammate_id == teammate_id,
        EmploymentTenure.company_id == company_id,
        EmploymentTenure.end_date.is_(None),
    )
    if for_update:
        stmt = stmt.with_for_update()
    return db.session.execute(stmt).scalars().first()


# ── Open ──────────────────────────────────────────────────────────────────────


def start_assignment_tenure(
    teammate_id: int,
    assignment_id: int,
    *,
    anticipated_energy_percentage: int | None = None,
    start_date: date | None = None,
    actor_id: int | None = None,
) -> AssignmentTenure:
    """Open a new assignment tenure.

    Raises:
        ValidationError: energy percentage outside 0..100.
        ConflictError: an open tenure already exists for the pair.
    """
    if anticipated_energy_percentage is not None and not 0 <= anticipated_energy_percentage <= 100:
        raise ValidationError(
            "anticipated_energy_percentage must be between 0 and 100",
            details={"anticipated_energy_percentage": anticipated_energy_percentage},
        )
    if active_assignment_tenure(teammate_id, assignment_id) is not None:
        raise ConflictError(
            "AssignmentTenure", "teammate_id,assignment_id,end_date=NULL",
            f"{teammate_id},{assignment_id}",
        )

    tenure = AssignmentTenure(
        teammate_id=teammate_id,
        assignment_id=assignment_id,
        anticipated_energy_percentage=anticipated_energy_percentage,
        start_date=start_date or date.today(),
    )
    db.session.add(tenure)
    db.session.flush()

    write_audit(
        entity_type="assignment_tenure",
        entity_id=tenure.id,
        action="tenure.open",
        actor_id=actor_id,
        diff={"assignment_id": assignment_id, "start_date": tenure.start_date},
    )
    return tenure


def start_employment_tenure(
    teammate_id: int,
    company_id: int,
    position_id: int,
    *,
    manager_id: int | None = None,
    seat_id: int | None = None,
    employment_type: str = "full_time",
    start_date: date | None = None,
    actor_id: int | None = None,
) -> EmploymentTenure:
    """Open a new employment tenure.

    Raises:
        ValidationError: unknown employment_type.
        ConflictError: an open employment tenure already exists in the company.
    """
    if employment_type not in EMPLOYMENT_TYPES:
        raise ValidationError(
            f"Invalid employment_type '{employment_type}'. "
            f"Must be one of: {', '.join(sorted(EMPLOYMENT_TYPES))}",
            details={"employment_type": employment_type},
        )
    if active_employment_tenure(teammate_id, company_id) is not None:
        raise ConflictError(
            "EmploymentTenure", "teammate_id,company_id,end_date=NULL",
            f"{teammate_id},{company_id}",
        )

    tenure = EmploymentTenure(
        teammate_id=teammate_id,
        company_id=company_id,
        position_id=position_id,
        manager_id=manager_id,
        seat_id=seat_id,
        employment_type=employment_type,
        start_date=start_date or date.today(),
    )
    db.session.add(tenure)
    db.session.flush()

    write_audit(
        entity_type="employment_tenure",
        entity_id=tenure.id,
        action="tenure.open",
        company_id=company_id,
        actor_id=actor_id,
        diff={"position_id": position_id, "start_date": tenure.start_date},
    )
    return tenure


# ── Close ─────────────────────────────────────────────────────────────────────


def close_tenure(tenure, *, rating, end_date: date | None = None, actor_id: int | None = None) -> None:
    """Close an open tenure with its official rating.

    Works for both tenure kinds; the rating lands on ``official_rating``
    for assignment tenures and ``official_position_rating`` for employment
    tenures.
    """
    if tenure.end_date is not None:
        raise ValidationError(f"{type(tenure).__name__} id={tenure.id} is already closed")

    tenure.end_date = end_date or date.today()
    if isinstance(tenure, EmploymentTenure):
        tenure.official_position_rating = rating
        entity_type = "employment_tenure"
        company_id = tenure.company_id
    else:
        tenure.official_rating = rating
        entity_type = "assignment_tenure"
        company_id = None
    db.session.flush()

    write_audit(
        entity_type=entity_type,
        entity_id=tenure.id,
        action="tenure.close",
        company_id=company_id,
        actor_id=actor_id,
        diff={"end_date": {"old": None, "new": tenure.end_date}, "official_rating": rating},
    )


def end_assignment_tenure(
    teammate_id: int,
    assignment_id: int,
    *,
    end_date: date | None = None,
    actor_id: int | None = None,
) -> AssignmentTenure | None:
    """Close the open assignment tenure without a rating (explicit reassignment).

    Returns the closed tenure, or None when nothing was open.
    """
    tenure = active_assignment_tenure(teammate_id, assignment_id, for_update=True)
    if tenure is None:
        return None
    close_tenure(tenure, rating=None, end_date=end_date, actor_id=actor_id)
    logger.info(
        "Assignment tenure ended",
        extra={"teammate_id": teammate_id, "tenure_id": tenure.id, "dimension": "assignment"},
    )
    return tenure


# ── Integrity ─────────────────────────────────────────────────────────────────


def find_open_tenure_violations() -> list[dict]:
    """Scan both tenure tables for pairs holding more than one open tenure.

    Returns:
        List of {"dimension", "teammate_id", "dimension_id", "open_count"}.
        Empty when the invariant holds everywhere.
    """
    violations = []

    rows = db.session.execute(
        select(
            AssignmentTenure.teammate_id,
            AssignmentTenure.assignment_id,
            func.count(AssignmentTenure.id).label("cnt"),
        )
        .where(AssignmentTenure.end_date.is_(None))
        .group_by(AssignmentTenure.teammate_id, AssignmentTenure.assignment_id)
        .having(func.count(AssignmentTenure.id) > 1)
    ).all()
    for teammate_id, assignment_id, cnt in rows:
        violations.append({
            "dimension": "assignment",
            "teammate_id": teammate_id,
            "dimension_id": assignment_id,
            "open_count": cnt,
        })

    rows = db.session.execute(
        select(
            EmploymentTenure.teammate_id,
            EmploymentTenure.company_id,
            func.count(EmploymentTenure.id).label("cnt"),
        )
        .where(EmploymentTenure.end_date.is_(None))
        .group_by(EmploymentTenure.teammate_id, EmploymentTenure.company_id)
        .having(func.count(EmploymentTenure.id) > 1)
    ).all()
    for teammate_id, company_id, cnt in rows:
        violations.append({
            "dimension": "position",
            "teammate_id": teammate_id,
            "dimension_id": company_id,
            "open_count": cnt,
        })

    return violations
