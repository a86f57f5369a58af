"""
Snapshot Builder - read-only projection of a person's MAAP state in one company.

    build_snapshot(person, company) → SnapshotData
    SnapshotData.to_dict() →
        {
          "position":    {position_id, manager_id, seat_id, employment_type,
                          official_position_rating, rated_position} | None,
          "assignments": [{assignment_id, anticipated_energy_percentage, official_rating,
                           rated_assignment}],
          "abilities":   [{ability_id, milestone_level, certified_by_id, attained_at}],
          "aspirations": [{aspiration_id, official_rating}],
        }

Never writes, never raises for missing data: a person with no teammate
row in the company gets the empty payload.

The open tenures a finalization just opened carry no rating yet, so each
position and assignment record also carries ``rated_position`` /
``rated_assignment``: the most recently closed tenure (by end date, then
id), or ``{}`` when none was ever closed.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date

from sqlalchemy import select

from maap.models import db
from maap.models.catalog import Ability, Aspiration, Assignment
from maap.models.organization import find_teammate
from maap.models.tenure import AssignmentTenure, EmploymentTenure, TeammateMilestone
from maap.services.check_in_service import latest_finalized_aspiration_check_in
from maap.services.tenure_service import active_employment_tenure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionRecord:
    position_id: int
    manager_id: int | None
    seat_id: int | None
    employment_type: str
    official_position_rating: int | None
    rated_position: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AssignmentRecord:
    assignment_id: int
    anticipated_energy_percentage: int | None
    official_rating: str | None
    rated_assignment: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AbilityRecord:
    ability_id: int
    milestone_level: int
    certified_by_id: int | None
    attained_at: str | None


@dataclass(frozen=True)
class AspirationRecord:
    aspiration_id: int
    official_rating: str | None


@dataclass(frozen=True)
class SnapshotData:
    position: PositionRecord | None = None
    assignments: tuple[AssignmentRecord, ...] = ()
    abilities: tuple[AbilityRecord, ...] = ()
    aspirations: tuple[AspirationRecord, ...] = ()
    # Carried for persistence sinks; not part of the projection.
    form_params: dict = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict:
        return {
            "position": asdict(self.position) if self.position else None,
            "assignments": [asdict(a) for a in self.assignments],
            "abilities": [asdict(a) for a in self.abilities],
            "aspirations": [asdict(a) for a in self.aspirations],
        }


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _last_closed(model, *criteria):
    return db.session.execute(
        select(model)
        .where(model.end_date.is_not(None), *criteria)
        .order_by(model.end_date.desc(), model.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def _rated_position(teammate, company_id) -> dict:
    tenure = _last_closed(
        EmploymentTenure,
        EmploymentTenure.teammate_id == teammate.id,
        EmploymentTenure.company_id == company_id,
    )
    if tenure is None:
        return {}
    return {
        "position_id": tenure.position_id,
        "manager_id": tenure.manager_id,
        "seat_id": tenure.seat_id,
        "employment_type": tenure.employment_type,
        "official_position_rating": tenure.official_position_rating,
        "started_at": _iso(tenure.start_date),
        "ended_at": _iso(tenure.end_date),
    }


def _rated_assignment(teammate, assignment_id) -> dict:
    tenure = _last_closed(
        AssignmentTenure,
        AssignmentTenure.teammate_id == teammate.id,
        AssignmentTenure.assignment_id == assignment_id,
    )
    if tenure is None:
        return {}
    return {
        "assignment_id": tenure.assignment_id,
        "anticipated_energy_percentage": tenure.anticipated_energy_percentage,
        "official_rating": tenure.official_rating,
        "started_at": _iso(tenure.start_date),
        "ended_at": _iso(tenure.end_date),
    }


def _position(teammate, company_id) -> PositionRecord | None:
    tenure = active_employment_tenure(teammate.id, company_id)
    if tenure is None:
        return None
    return PositionRecord(
        position_id=tenure.position_id,
        manager_id=tenure.manager_id,
        seat_id=tenure.seat_id,
        employment_type=tenure.employment_type,
        official_position_rating=tenure.official_position_rating,
        rated_position=_rated_position(teammate, company_id),
    )


def _assignments(teammate, company_id) -> tuple[AssignmentRecord, ...]:
    tenures = db.session.execute(
        select(AssignmentTenure)
        .join(Assignment, AssignmentTenure.assignment_id == Assignment.id)
        .where(
            AssignmentTenure.teammate_id == teammate.id,
            AssignmentTenure.end_date.is_(None),
            Assignment.company_id == company_id,
        )
        .order_by(AssignmentTenure.assignment_id)
    ).scalars().all()
    return tuple(
        AssignmentRecord(
            assignment_id=t.assignment_id,
            anticipated_energy_percentage=t.anticipated_energy_percentage,
            official_rating=t.official_rating,
            rated_assignment=_rated_assignment(teammate, t.assignment_id),
        )
        for t in tenures
    )


def _abilities(teammate, company_id) -> tuple[AbilityRecord, ...]:
    milestones = db.session.execute(
        select(TeammateMilestone)
        .join(Ability, TeammateMilestone.ability_id == Ability.id)
        .where(
            TeammateMilestone.teammate_id == teammate.id,
            Ability.organization_id == company_id,
        )
        .order_by(TeammateMilestone.ability_id, TeammateMilestone.milestone_level)
    ).scalars().all()
    return tuple(
        AbilityRecord(
            ability_id=m.ability_id,
            milestone_level=m.milestone_level,
            certified_by_id=m.certified_by_id,
            attained_at=_iso(m.attained_at),
        )
        for m in milestones
    )


def _aspirations(teammate, company_id) -> tuple[AspirationRecord, ...]:
    aspirations = db.session.execute(
        select(Aspiration)
        .where(Aspiration.organization_id == company_id)
        .order_by(Aspiration.sort_order, Aspiration.id)
    ).scalars().all()
    records = []
    for aspiration in aspirations:
        latest = latest_finalized_aspiration_check_in(teammate.id, aspiration.id)
        records.append(AspirationRecord(
            aspiration_id=aspiration.id,
            official_rating=latest.official_rating if latest else None,
        ))
    return tuple(records)


def build_snapshot(person, company, form_params: dict | None = None) -> SnapshotData:
    """Project *person*'s current MAAP state in *company*.

    Args:
        person:      Person instance or id.
        company:     Organization instance or id.
        form_params: Optional request form data, carried through unchanged.
    """
    form_params = dict(form_params or {})
    company_id = getattr(company, "id", company)
    teammate = find_teammate(person, company)
    if teammate is None:
        logger.debug(
            "No teammate for snapshot; returning empty payload",
            extra={"company_id": company_id},
        )
        return SnapshotData(form_params=form_params)

    return SnapshotData(
        position=_position(teammate, company_id),
        assignments=_assignments(teammate, company_id),
        abilities=_abilities(teammate, company_id),
        aspirations=_aspirations(teammate, company_id),
        form_params=form_params,
    )
