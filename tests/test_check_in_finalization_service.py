"""
Tests: multi-dimension check-in finalization - one transaction, one snapshot.

Setup strategy:
    Every test builds a teammate with one assignment tenure, one employment
    tenure and one aspiration, each with a check-in ready for finalization.
    Params mimic a form post: ids as strings, flags as "1" / "true".
"""

from datetime import date

import pytest

from maap.core.result import ErrorKind
from maap.models import db as _db
from maap.models.catalog import Aspiration, Assignment, Position
from maap.models.check_in import AspirationCheckIn, AssignmentCheckIn, PositionCheckIn
from maap.models.snapshot import MaapSnapshot
from maap.models.tenure import AssignmentTenure, EmploymentTenure
from maap.services.check_in_finalization_service import determine_change_type, finalize_check_ins


@pytest.fixture()
def ready(teammate, company, manager, mark_ready):
    assignment = Assignment(company_id=company.id, title="Incident commander")
    position = Position(company_id=company.id, title="Engineer")
    aspiration = Aspiration(organization_id=company.id, name="Lead a guild")
    _db.session.add_all([assignment, position, aspiration])
    _db.session.flush()

    assignment_tenure = AssignmentTenure(
        teammate_id=teammate.id, assignment_id=assignment.id,
        start_date=date(2024, 1, 1), anticipated_energy_percentage=50,
    )
    employment_tenure = EmploymentTenure(
        teammate_id=teammate.id, company_id=company.id, position_id=position.id,
        manager_id=manager.id, start_date=date(2023, 1, 9),
    )
    _db.session.add_all([assignment_tenure, employment_tenure])
    _db.session.flush()

    assignment_ci = AssignmentCheckIn(teammate_id=teammate.id, assignment_id=assignment.id)
    position_ci = PositionCheckIn(teammate_id=teammate.id, employment_tenure_id=employment_tenure.id)
    aspiration_ci = AspirationCheckIn(teammate_id=teammate.id, aspiration_id=aspiration.id)
    _db.session.add_all([assignment_ci, position_ci, aspiration_ci])
    _db.session.commit()
    for check_in in (assignment_ci, position_ci, aspiration_ci):
        mark_ready(check_in)

    return {
        "assignment": assignment,
        "assignment_tenure": assignment_tenure,
        "employment_tenure": employment_tenure,
        "assignment_ci": assignment_ci,
        "position_ci": position_ci,
        "aspiration_ci": aspiration_ci,
    }


def _assignment_params(ready, **overrides):
    item = {"finalize": "1", "official_rating": "meeting", "shared_notes": "Good",
            "anticipated_energy_percentage": ""}
    item.update(overrides)
    return {str(ready["assignment_ci"].id): item}


# ── Happy paths ──────────────────────────────────────────────────────────────


def test_single_assignment_creates_one_snapshot(teammate, finalizer, ready):
    params = {"assignment_check_ins": _assignment_params(ready)}

    result = finalize_check_ins(teammate, params, finalizer)

    assert result.ok
    snapshot = result.value["snapshot"]
    assert MaapSnapshot.query.count() == 1
    assert snapshot.change_type == "assignment_management"
    assert snapshot.employee_id == teammate.person_id
    assert snapshot.company_id == teammate.organization_id
    assert snapshot.created_by_id == finalizer.id
    assert snapshot.effective_date == date.today()
    assert snapshot.reason == "Check-in finalization for Dana Employee"
    assert snapshot.request_info["finalized_by_id"] == finalizer.id
    assert snapshot.form_params == params

    assert ready["assignment_ci"].maap_snapshot_id == snapshot.id
    assert ready["position_ci"].maap_snapshot_id is None
    assert len(result.value["results"]["assignments"]) == 1
    assert result.value["results"]["position"] is None


def test_snapshot_captures_post_rotation_state(teammate, finalizer, ready):
    params = {"assignment_check_ins": _assignment_params(ready)}

    result = finalize_check_ins(teammate, params, finalizer)

    new_tenure = result.value["results"]["assignments"][0]["new_tenure"]
    assignments = result.value["snapshot"].maap_data["assignments"]
    assert assignments == [{
        "assignment_id": ready["assignment"].id,
        "anticipated_energy_percentage": 50,
        "official_rating": None,
        "rated_assignment": {
            "assignment_id": ready["assignment"].id,
            "anticipated_energy_percentage": 50,
            "official_rating": "meeting",
            "started_at": "2024-01-01",
            "ended_at": date.today().isoformat(),
        },
    }]
    assert new_tenure.end_date is None


def test_all_dimensions_is_bulk_and_links_every_check_in(teammate, finalizer, ready):
    params = {
        "position_check_in": {"finalize": True, "official_rating": "1", "shared_notes": "Steady"},
        "assignment_check_ins": _assignment_params(ready),
        "aspiration_check_ins": {
            str(ready["aspiration_ci"].id): {"finalize": "true", "official_rating": "exceeding"},
        },
    }

    result = finalize_check_ins(teammate, params, finalizer, request_info={"ip": "10.0.0.7"})

    assert result.ok
    snapshot = result.value["snapshot"]
    assert snapshot.change_type == "bulk_check_in_finalization"
    assert snapshot.request_info["ip"] == "10.0.0.7"
    for key in ("assignment_ci", "position_ci", "aspiration_ci"):
        assert ready[key].maap_snapshot_id == snapshot.id
        assert ready[key].state == "finalized"
    assert snapshot.maap_data["position"]["official_position_rating"] is None
    assert snapshot.maap_data["position"]["rated_position"]["official_position_rating"] == 1
    assert snapshot.maap_data["aspirations"][0]["official_rating"] == "exceeding"


def test_position_only_change_type(teammate, finalizer, ready):
    params = {"position_check_in": {"finalize": "1", "official_rating": "2"}}

    result = finalize_check_ins(teammate, params, finalizer)

    assert result.ok
    assert result.value["snapshot"].change_type == "position_tenure"


def test_unselected_check_ins_are_untouched(teammate, finalizer, ready):
    params = {
        "assignment_check_ins": _assignment_params(ready, finalize="0"),
        "aspiration_check_ins": {
            str(ready["aspiration_ci"].id): {"finalize": "1", "official_rating": "meeting"},
        },
    }

    result = finalize_check_ins(teammate, params, finalizer)

    assert result.value["snapshot"].change_type == "aspiration_management"
    assert ready["assignment_ci"].state == "ready_for_finalization"


def test_nothing_selected_writes_nothing(teammate, finalizer, ready):
    result = finalize_check_ins(teammate, {}, finalizer)

    assert result.ok
    assert result.value["snapshot"] is None
    assert MaapSnapshot.query.count() == 0


def test_not_ready_assignment_is_skipped(teammate, finalizer, ready):
    ci = ready["assignment_ci"]
    ci.manager_completed_at = None
    _db.session.commit()

    result = finalize_check_ins(teammate, {"assignment_check_ins": _assignment_params(ready)}, finalizer)

    assert result.ok
    assert result.value["snapshot"] is None
    assert ci.state == "open"


# ── All-or-nothing ───────────────────────────────────────────────────────────


def test_later_failure_rolls_back_earlier_finalizations(teammate, finalizer, ready):
    old_tenure_id = ready["assignment_tenure"].id
    assignment_ci_id = ready["assignment_ci"].id
    params = {
        "position_check_in": {"finalize": "1", "official_rating": "2"},
        "assignment_check_ins": _assignment_params(ready),
        "aspiration_check_ins": {
            str(ready["aspiration_ci"].id): {"finalize": "1", "official_rating": "superb"},
        },
    }

    result = finalize_check_ins(teammate, params, finalizer)

    assert not result.ok
    assert result.kind == ErrorKind.INVALID_RATING
    assert MaapSnapshot.query.count() == 0
    assert _db.session.get(AssignmentTenure, old_tenure_id).end_date is None
    assert AssignmentTenure.query.count() == 1
    assert EmploymentTenure.query.count() == 1
    assert _db.session.get(AssignmentCheckIn, assignment_ci_id).official_check_in_completed_at is None
    assert PositionCheckIn.query_finalized().count() == 0


def test_no_active_tenure_aborts_batch(teammate, finalizer, ready):
    ready["assignment_tenure"].end_date = date(2024, 6, 30)
    _db.session.commit()
    params = {
        "position_check_in": {"finalize": "1", "official_rating": "0"},
        "assignment_check_ins": _assignment_params(ready),
    }

    result = finalize_check_ins(teammate, params, finalizer)

    assert result.kind == ErrorKind.NO_ACTIVE_TENURE
    assert EmploymentTenure.query.count() == 1
    assert PositionCheckIn.query_finalized().count() == 0


def test_position_not_ready(teammate, finalizer, ready):
    ready["position_ci"].employee_completed_at = None
    _db.session.commit()

    result = finalize_check_ins(teammate, {"position_check_in": {"finalize": "1", "official_rating": "1"}}, finalizer)

    assert result.kind == ErrorKind.NOT_READY
    assert result.message == "Position check-in not ready"


def test_unknown_check_in_id_is_unexpected(teammate, finalizer, ready):
    params = {"assignment_check_ins": {"99999": {"finalize": "1", "official_rating": "meeting"}}}

    result = finalize_check_ins(teammate, params, finalizer)

    assert result.kind == ErrorKind.UNEXPECTED
    assert result.message.startswith("Failed to finalize check-ins: ")
    assert "not found" in result.message


# ── determine_change_type ────────────────────────────────────────────────────


@pytest.mark.parametrize("results, expected", [
    ({"position": {"x": 1}, "assignments": [], "aspirations": []}, "position_tenure"),
    ({"position": None, "assignments": [], "aspirations": []}, "bulk_check_in_finalization"),
    ({"position": None, "assignments": [{"x": 1}], "aspirations": []}, "assignment_management"),
    ({"position": None, "assignments": [], "aspirations": [{"x": 1}]}, "aspiration_management"),
    ({"position": {"x": 1}, "assignments": [{"x": 1}], "aspirations": []}, "bulk_check_in_finalization"),
])
def test_determine_change_type(results, expected):
    assert determine_change_type(results) == expected
