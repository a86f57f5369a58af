"""
Tests: snapshot builder - read-only MAAP projection.
"""

import dataclasses
from datetime import date, datetime, timezone

import pytest

from maap.models import db as _db
from maap.models.catalog import Ability, Aspiration, Assignment, Position
from maap.models.check_in import AspirationCheckIn
from maap.models.organization import Organization, Person
from maap.models.tenure import AssignmentTenure, EmploymentTenure, TeammateMilestone
from maap.services.snapshot_builder import SnapshotData, build_snapshot


EMPTY = {"position": None, "assignments": [], "abilities": [], "aspirations": []}


# ── Helpers ──────────────────────────────────────────────────────────────────


def _add(obj):
    _db.session.add(obj)
    _db.session.flush()
    return obj


def _finalized_aspiration_check_in(teammate, aspiration, rating, when):
    return _add(AspirationCheckIn(
        teammate_id=teammate.id,
        aspiration_id=aspiration.id,
        employee_completed_at=when,
        manager_completed_at=when,
        official_rating=rating,
        official_check_in_completed_at=when,
    ))


@pytest.fixture()
def populated(teammate, company, manager, finalizer):
    """1 position, 2 assignments, 1 ability milestone, 3 aspirations (1 rated)."""
    position = _add(Position(company_id=company.id, title="Engineer"))
    _add(EmploymentTenure(
        teammate_id=teammate.id, company_id=company.id, position_id=position.id,
        manager_id=manager.id, employment_type="full_time", start_date=date(2023, 1, 9),
    ))

    a1 = _add(Assignment(company_id=company.id, title="On-call"))
    a2 = _add(Assignment(company_id=company.id, title="Code review"))
    retired = _add(Assignment(company_id=company.id, title="Old duty"))
    _add(AssignmentTenure(teammate_id=teammate.id, assignment_id=a1.id,
                          start_date=date(2024, 1, 1), anticipated_energy_percentage=30))
    _add(AssignmentTenure(teammate_id=teammate.id, assignment_id=a2.id,
                          start_date=date(2024, 1, 1), anticipated_energy_percentage=70,
                          official_rating=None))
    _add(AssignmentTenure(teammate_id=teammate.id, assignment_id=retired.id,
                          start_date=date(2022, 1, 1), end_date=date(2023, 1, 1),
                          official_rating="meeting"))

    ability = _add(Ability(organization_id=company.id, name="Systems thinking"))
    _add(TeammateMilestone(teammate_id=teammate.id, ability_id=ability.id, milestone_level=2,
                           certified_by_id=finalizer.id, attained_at=date(2024, 3, 5)))

    asp1 = _add(Aspiration(organization_id=company.id, name="Mentor", sort_order=1))
    asp2 = _add(Aspiration(organization_id=company.id, name="Speak", sort_order=2))
    asp3 = _add(Aspiration(organization_id=company.id, name="Write", sort_order=3))
    _finalized_aspiration_check_in(teammate, asp1, "meeting", datetime(2024, 1, 5, tzinfo=timezone.utc))
    _finalized_aspiration_check_in(teammate, asp1, "exceeding", datetime(2024, 6, 5, tzinfo=timezone.utc))
    # open check-in: its rating must not leak into the projection
    _add(AspirationCheckIn(teammate_id=teammate.id, aspiration_id=asp2.id, official_rating="meeting"))
    _db.session.commit()

    return {
        "position": position, "assignments": (a1, a2), "ability": ability,
        "aspirations": (asp1, asp2, asp3),
    }


# ── Tests ─────────────────────────────────────────────────────────────────────


def test_projection_is_complete(person, company, manager, finalizer, populated):
    data = build_snapshot(person, company).to_dict()

    assert data["position"] == {
        "position_id": populated["position"].id,
        "manager_id": manager.id,
        "seat_id": None,
        "employment_type": "full_time",
        "official_position_rating": None,
        "rated_position": {},
    }

    a1, a2 = populated["assignments"]
    assert data["assignments"] == [
        {"assignment_id": a1.id, "anticipated_energy_percentage": 30, "official_rating": None,
         "rated_assignment": {}},
        {"assignment_id": a2.id, "anticipated_energy_percentage": 70, "official_rating": None,
         "rated_assignment": {}},
    ]

    assert data["abilities"] == [{
        "ability_id": populated["ability"].id,
        "milestone_level": 2,
        "certified_by_id": finalizer.id,
        "attained_at": "2024-03-05",
    }]

    asp1, asp2, asp3 = populated["aspirations"]
    assert data["aspirations"] == [
        {"aspiration_id": asp1.id, "official_rating": "exceeding"},
        {"aspiration_id": asp2.id, "official_rating": None},
        {"aspiration_id": asp3.id, "official_rating": None},
    ]


def test_accepts_ids_instead_of_instances(person, company, populated):
    assert build_snapshot(person.id, company.id).to_dict() == build_snapshot(person, company).to_dict()


def test_other_company_data_is_excluded(person, teammate, company, populated):
    other = _add(Organization(name="Elsewhere Inc", type="company"))
    foreign = _add(Assignment(company_id=other.id, title="Consulting"))
    _add(AssignmentTenure(teammate_id=teammate.id, assignment_id=foreign.id, start_date=date(2024, 2, 1)))
    _add(Aspiration(organization_id=other.id, name="Foreign aspiration"))
    _db.session.commit()

    data = build_snapshot(person, company).to_dict()

    assert foreign.id not in {a["assignment_id"] for a in data["assignments"]}
    assert len(data["aspirations"]) == 3


def test_person_without_teammate_gets_empty_payload(company):
    stranger = _add(Person(full_name="Sam Stranger", email="sam@elsewhere.test"))
    _add(Aspiration(organization_id=company.id, name="Mentor"))
    _db.session.commit()

    assert build_snapshot(stranger, company).to_dict() == EMPTY


def test_missing_person_gets_empty_payload(company):
    assert build_snapshot(None, company).to_dict() == EMPTY


def test_teammate_with_nothing_yet(person, teammate, company):
    assert build_snapshot(person, company).to_dict() == EMPTY


def test_form_params_carried_but_not_projected(person, teammate, company):
    data = build_snapshot(person, company, form_params={"reason": "quarterly"})

    assert data.form_params == {"reason": "quarterly"}
    assert set(data.to_dict()) == {"position", "assignments", "abilities", "aspirations"}


def test_snapshot_is_immutable(person, teammate, company):
    data = build_snapshot(person, company)

    assert isinstance(data, SnapshotData)
    with pytest.raises(dataclasses.FrozenInstanceError):
        data.position = None


# ── Last rated tenure ────────────────────────────────────────────────────────


class TestRatedTenures:

    @pytest.fixture()
    def position(self, company):
        return _add(Position(company_id=company.id, title="Designer"))

    @pytest.fixture()
    def assignment(self, company):
        return _add(Assignment(company_id=company.id, title="Release captain"))

    def _employment(self, teammate, company, position, manager, start, end=None, rating=None,
                    employment_type="full_time"):
        return _add(EmploymentTenure(
            teammate_id=teammate.id, company_id=company.id, position_id=position.id,
            manager_id=manager.id, employment_type=employment_type,
            start_date=start, end_date=end, official_position_rating=rating,
        ))

    def _assignment(self, teammate, assignment, start, end=None, rating=None, energy=None):
        return _add(AssignmentTenure(
            teammate_id=teammate.id, assignment_id=assignment.id,
            start_date=start, end_date=end, official_rating=rating,
            anticipated_energy_percentage=energy,
        ))

    def test_no_closed_tenure_gives_empty_dicts(self, person, teammate, company, manager,
                                                position, assignment):
        self._employment(teammate, company, position, manager, date(2024, 1, 1))
        self._assignment(teammate, assignment, date(2024, 1, 1), energy=25)
        _db.session.commit()

        data = build_snapshot(person, company).to_dict()

        assert data["position"]["rated_position"] == {}
        assert data["assignments"][0]["rated_assignment"] == {}

    def test_single_closed_tenure_is_projected(self, person, teammate, company, manager,
                                               position, assignment):
        self._employment(teammate, company, position, manager, date(2023, 1, 1),
                         end=date(2024, 6, 30), rating=2, employment_type="part_time")
        self._employment(teammate, company, position, manager, date(2024, 6, 30))
        self._assignment(teammate, assignment, date(2024, 1, 1), end=date(2024, 6, 30),
                         rating="exceeding", energy=40)
        self._assignment(teammate, assignment, date(2024, 6, 30), energy=40)
        _db.session.commit()

        data = build_snapshot(person, company).to_dict()

        assert data["position"]["official_position_rating"] is None
        assert data["position"]["rated_position"] == {
            "position_id": position.id,
            "manager_id": manager.id,
            "seat_id": None,
            "employment_type": "part_time",
            "official_position_rating": 2,
            "started_at": "2023-01-01",
            "ended_at": "2024-06-30",
        }
        assert data["assignments"][0]["official_rating"] is None
        assert data["assignments"][0]["rated_assignment"] == {
            "assignment_id": assignment.id,
            "anticipated_energy_percentage": 40,
            "official_rating": "exceeding",
            "started_at": "2024-01-01",
            "ended_at": "2024-06-30",
        }

    def test_most_recently_ended_tenure_wins(self, person, teammate, company, manager,
                                             position, assignment):
        self._employment(teammate, company, position, manager, date(2022, 1, 1),
                         end=date(2023, 1, 1), rating=-1)
        self._employment(teammate, company, position, manager, date(2023, 1, 1),
                         end=date(2024, 1, 1), rating=3)
        self._employment(teammate, company, position, manager, date(2024, 1, 1))
        self._assignment(teammate, assignment, date(2023, 1, 1), end=date(2024, 1, 1),
                         rating="meeting", energy=60)
        self._assignment(teammate, assignment, date(2022, 1, 1), end=date(2023, 1, 1),
                         rating="working_to_meet", energy=20)
        self._assignment(teammate, assignment, date(2024, 1, 1), energy=60)
        _db.session.commit()

        data = build_snapshot(person, company).to_dict()

        assert data["position"]["rated_position"]["official_position_rating"] == 3
        assert data["position"]["rated_position"]["ended_at"] == "2024-01-01"
        assert data["assignments"][0]["rated_assignment"]["official_rating"] == "meeting"
        assert data["assignments"][0]["rated_assignment"]["ended_at"] == "2024-01-01"
