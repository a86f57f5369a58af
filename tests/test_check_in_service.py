"""
Tests: check-in lifecycle - open, complete, uncomplete, latest finalized.
"""

from datetime import date, datetime, timezone

import pytest

from maap.core.exceptions import NotFoundError, ValidationError
from maap.models import db as _db
from maap.models.audit import AuditLog, write_audit
from maap.models.catalog import Aspiration, Assignment, Position
from maap.models.check_in import AspirationCheckIn, AssignmentCheckIn, PositionCheckIn
from maap.models.tenure import EmploymentTenure
from maap.services import check_in_service as svc


# ── Helpers ──────────────────────────────────────────────────────────────────


def _make_assignment(company):
    a = Assignment(company_id=company.id, title="Support rotation")
    _db.session.add(a)
    _db.session.commit()
    return a


def _make_employment_tenure(teammate, company):
    position = Position(company_id=company.id, title="Analyst")
    _db.session.add(position)
    _db.session.flush()
    t = EmploymentTenure(teammate_id=teammate.id, company_id=company.id,
                         position_id=position.id, start_date=date(2024, 1, 1))
    _db.session.add(t)
    _db.session.commit()
    return t


# ── Open ─────────────────────────────────────────────────────────────────────


def test_find_or_create_assignment_check_in_reuses_open_one(teammate, company):
    assignment = _make_assignment(company)

    first = svc.find_or_create_open_assignment_check_in(teammate, assignment)
    second = svc.find_or_create_open_assignment_check_in(teammate.id, assignment.id)

    assert first.id == second.id
    assert first.state == "open"
    assert first.check_in_started_on == date.today()
    assert AssignmentCheckIn.query.count() == 1


def test_find_or_create_after_finalization_opens_new(teammate, company):
    assignment = _make_assignment(company)
    first = svc.find_or_create_open_assignment_check_in(teammate, assignment)
    first.official_check_in_completed_at = datetime.now(timezone.utc)
    _db.session.commit()

    second = svc.find_or_create_open_assignment_check_in(teammate, assignment)

    assert second.id != first.id
    assert not first.is_open
    assert second.is_open


def test_find_or_create_aspiration_check_in(teammate, company):
    aspiration = Aspiration(organization_id=company.id, name="Public speaking")
    _db.session.add(aspiration)
    _db.session.commit()

    check_in = svc.find_or_create_open_aspiration_check_in(teammate, aspiration)

    assert isinstance(check_in, AspirationCheckIn)
    assert check_in.aspiration_id == aspiration.id


def test_position_check_in_requires_active_employment(teammate):
    assert svc.find_or_create_open_position_check_in(teammate) is None
    assert PositionCheckIn.query.count() == 0


def test_position_check_in_links_active_tenure(teammate, company):
    tenure = _make_employment_tenure(teammate, company)

    check_in = svc.find_or_create_open_position_check_in(teammate)

    assert check_in.employment_tenure_id == tenure.id
    assert svc.find_or_create_open_position_check_in(teammate).id == check_in.id


# ── Complete / uncomplete ────────────────────────────────────────────────────


def test_complete_both_sides_makes_ready(teammate, company, finalizer):
    check_in = svc.find_or_create_open_assignment_check_in(teammate, _make_assignment(company))

    svc.complete_employee_side(
        check_in, rating="meeting", private_notes="Felt good",
        actual_energy_percentage="35", personal_alignment="like",
    )
    assert check_in.completion_state == "employee_complete"

    svc.complete_manager_side(check_in, rating="exceeding", completed_by=finalizer)

    assert check_in.ready_for_finalization
    assert check_in.state == "ready_for_finalization"
    assert check_in.actual_energy_percentage == 35
    assert check_in.employee_personal_alignment == "like"
    assert check_in.manager_completed_by_id == finalizer.id
    actions = [row.action for row in AuditLog.query.order_by(AuditLog.id).all()]
    assert actions == ["check_in.complete_employee", "check_in.complete_manager"]
    assert AuditLog.query.order_by(AuditLog.id).first().diff == {"employee_rating": "meeting"}


def test_position_side_ratings_are_coerced(teammate, company):
    _make_employment_tenure(teammate, company)
    check_in = svc.find_or_create_open_position_check_in(teammate)

    svc.complete_employee_side(check_in, rating="-2")

    assert check_in.employee_rating == -2


@pytest.mark.parametrize("rating", ["stellar", "3"])
def test_invalid_side_rating_raises(teammate, company, rating):
    check_in = svc.find_or_create_open_assignment_check_in(teammate, _make_assignment(company))

    with pytest.raises(ValidationError):
        svc.complete_manager_side(check_in, rating=rating)
    assert check_in.manager_completed_at is None


def test_invalid_personal_alignment_raises(teammate, company):
    check_in = svc.find_or_create_open_assignment_check_in(teammate, _make_assignment(company))

    with pytest.raises(ValidationError):
        svc.complete_employee_side(check_in, rating="meeting", personal_alignment="adore")
    assert check_in.employee_rating is None
    assert check_in.employee_completed_at is None


def test_energy_out_of_range_raises(teammate, company):
    check_in = svc.find_or_create_open_assignment_check_in(teammate, _make_assignment(company))

    with pytest.raises(ValidationError):
        svc.complete_employee_side(check_in, actual_energy_percentage=120)


def test_uncomplete_sides(teammate, company, finalizer):
    check_in = svc.find_or_create_open_assignment_check_in(teammate, _make_assignment(company))
    svc.complete_employee_side(check_in, rating="meeting")
    svc.complete_manager_side(check_in, rating="meeting", completed_by=finalizer)

    svc.uncomplete_manager_side(check_in)
    assert check_in.completion_state == "employee_complete"
    assert check_in.manager_completed_by_id is None

    svc.uncomplete_employee_side(check_in)
    assert check_in.completion_state == "both_open"


def test_finalized_check_in_is_immutable(teammate, company):
    check_in = svc.find_or_create_open_assignment_check_in(teammate, _make_assignment(company))
    check_in.official_check_in_completed_at = datetime.now(timezone.utc)
    _db.session.commit()

    with pytest.raises(ValidationError):
        svc.complete_employee_side(check_in, rating="meeting")
    with pytest.raises(ValidationError):
        svc.uncomplete_manager_side(check_in)


# ── Lookups ──────────────────────────────────────────────────────────────────


def test_latest_finalized_aspiration_check_in(teammate, company):
    aspiration = Aspiration(organization_id=company.id, name="Mentor")
    _db.session.add(aspiration)
    _db.session.flush()
    for rating, month in (("working_to_meet", 1), ("meeting", 5)):
        _db.session.add(AspirationCheckIn(
            teammate_id=teammate.id, aspiration_id=aspiration.id, official_rating=rating,
            official_check_in_completed_at=datetime(2024, month, 1, tzinfo=timezone.utc),
        ))
    _db.session.add(AspirationCheckIn(teammate_id=teammate.id, aspiration_id=aspiration.id,
                                      official_rating="exceeding"))
    _db.session.commit()

    latest = svc.latest_finalized_aspiration_check_in(teammate.id, aspiration.id)

    assert latest.official_rating == "meeting"


def test_latest_finalized_returns_none_without_history(teammate, company):
    assignment = _make_assignment(company)

    assert svc.latest_finalized_assignment_check_in(teammate.id, assignment.id) is None
    assert svc.latest_finalized_position_check_in(teammate.id) is None


def test_get_check_in_scoped_to_teammate(teammate, company, manager):
    check_in = svc.find_or_create_open_assignment_check_in(teammate, _make_assignment(company))

    assert svc.get_check_in("assignment", str(check_in.id), teammate_id=teammate.id) is check_in
    with pytest.raises(NotFoundError):
        svc.get_check_in("assignment", check_in.id, teammate_id=manager.id)
    with pytest.raises(ValidationError):
        svc.get_check_in("ability", check_in.id)


def test_write_audit_rejects_unknown_action(company):
    with pytest.raises(ValueError):
        write_audit(entity_type="maap_snapshot", entity_id=1, action="snapshot.delete",
                    company_id=company.id)
