"""
Check-in Lifecycle Service - open, complete and look up check-ins.

Covers everything that happens to a check-in *before* finalization:

    find_or_create_open_*_check_in   one open check-in per (teammate, dimension)
    complete_employee_side           employee rating + notes, stamps employee_completed_at
    complete_manager_side            manager rating + notes, stamps manager_completed_at
    uncomplete_*                     clears the completion timestamp again
    latest_finalized_*_check_in      most recent finalized check-in

Finalized check-ins are immutable; every mutator here raises
ValidationError when handed one.  Finalization itself lives in
``maap.services.finalizers``.
"""

import logging
from datetime import datetime, timezone

from maap.core.exceptions import NotFoundError, ValidationError
from maap.models import db
from maap.models.audit import write_audit
from maap.models.check_in import (
    CHECK_IN_MODELS,
    PERSONAL_ALIGNMENTS,
    AspirationCheckIn,
    AssignmentCheckIn,
    PositionCheckIn,
)
from maap.models.ratings import coerce_position_rating, is_valid_rating
from maap.services.tenure_service import active_employment_tenure
from maap.utils.helpers import is_blank, parse_optional_int

logger = logging.getLogger(__name__)


def _id(obj_or_id):
    return getattr(obj_or_id, "id", obj_or_id)


# ═════════════════════════════════════════════════════════════════════════════
# Lookups
# ═════════════════════════════════════════════════════════════════════════════


def get_check_in(dimension: str, check_in_id, teammate_id: int | None = None):
    """Fetch a check-in by dimension + id, optionally scoped to a teammate.

    Raises:
        ValidationError: unknown dimension.
        NotFoundError: no such check-in (or it belongs to another teammate).
    """
    model = CHECK_IN_MODELS.get(dimension)
    if model is None:
        raise ValidationError(
            f"Unknown check-in dimension '{dimension}'",
            details={"dimension": dimension},
        )
    check_in = db.session.get(model, parse_optional_int(check_in_id))
    if check_in is None or (teammate_id is not None and check_in.teammate_id != teammate_id):
        raise NotFoundError(model.__name__, check_in_id)
    return check_in


def latest_finalized_assignment_check_in(teammate_id: int, assignment_id: int):
    return (
        AssignmentCheckIn.query_finalized()
        .filter_by(teammate_id=teammate_id, assignment_id=assignment_id)
        .order_by(
            AssignmentCheckIn.official_check_in_completed_at.desc(),
            AssignmentCheckIn.id.desc(),
        )
        .first()
    )


def latest_finalized_position_check_in(teammate_id: int):
    return (
        PositionCheckIn.query_finalized()
        .filter_by(teammate_id=teammate_id)
        .order_by(
            PositionCheckIn.official_check_in_completed_at.desc(),
            PositionCheckIn.id.desc(),
        )
        .first()
    )


def latest_finalized_aspiration_check_in(teammate_id: int, aspiration_id: int):
    return (
        AspirationCheckIn.query_finalized()
        .filter_by(teammate_id=teammate_id, aspiration_id=aspiration_id)
        .order_by(
            AspirationCheckIn.official_check_in_completed_at.desc(),
            AspirationCheckIn.id.desc(),
        )
        .first()
    )


# ═════════════════════════════════════════════════════════════════════════════
# Open
# ═════════════════════════════════════════════════════════════════════════════


def find_or_create_open_assignment_check_in(teammate, assignment) -> AssignmentCheckIn:
    teammate_id, assignment_id = _id(teammate), _id(assignment)
    check_in = (
        AssignmentCheckIn.query_open()
        .filter_by(teammate_id=teammate_id, assignment_id=assignment_id)
        .first()
    )
    if check_in is None:
        check_in = AssignmentCheckIn(teammate_id=teammate_id, assignment_id=assignment_id)
        db.session.add(check_in)
        db.session.commit()
        logger.info(
            "Assignment check-in opened",
            extra={"teammate_id": teammate_id, "check_in_id": check_in.id, "dimension": "assignment"},
        )
    return check_in


def find_or_create_open_aspiration_check_in(teammate, aspiration) -> AspirationCheckIn:
    teammate_id, aspiration_id = _id(teammate), _id(aspiration)
    check_in = (
        AspirationCheckIn.query_open()
        .filter_by(teammate_id=teammate_id, aspiration_id=aspiration_id)
        .first()
    )
    if check_in is None:
        check_in = AspirationCheckIn(teammate_id=teammate_id, aspiration_id=aspiration_id)
        db.session.add(check_in)
        db.session.commit()
        logger.info(
            "Aspiration check-in opened",
            extra={"teammate_id": teammate_id, "check_in_id": check_in.id, "dimension": "aspiration"},
        )
    return check_in


def find_or_create_open_position_check_in(teammate) -> PositionCheckIn | None:
    """Return the open position check-in, creating one against the active tenure.

    Returns None when the teammate holds no active employment tenure; there
    is nothing to check in on.
    """
    check_in = PositionCheckIn.query_open().filter_by(teammate_id=teammate.id).first()
    if check_in is not None:
        return check_in

    tenure = active_employment_tenure(teammate.id, teammate.organization_id)
    if tenure is None:
        return None

    check_in = PositionCheckIn(teammate_id=teammate.id, employment_tenure_id=tenure.id)
    db.session.add(check_in)
    db.session.commit()
    logger.info(
        "Position check-in opened",
        extra={"teammate_id": teammate.id, "check_in_id": check_in.id, "dimension": "position"},
    )
    return check_in


# ═════════════════════════════════════════════════════════════════════════════
# Complete / uncomplete
# ═════════════════════════════════════════════════════════════════════════════


def _ensure_mutable(check_in) -> None:
    if check_in.officially_completed:
        raise ValidationError(
            f"{type(check_in).__name__} id={check_in.id} is finalized and can no longer be changed",
            details={"check_in_id": check_in.id, "state": check_in.state},
        )


def _validated_rating(check_in, field: str, value):
    """Return *value* normalised for the dimension, or raise ValidationError.

    None / blank is allowed: a side may complete without rating.
    """
    if is_blank(value):
        return None
    if not is_valid_rating(check_in.dimension, value):
        raise ValidationError(
            f"{field} '{value}' is not a valid {check_in.dimension} rating",
            details={field: value},
        )
    if check_in.dimension == "position":
        return coerce_position_rating(value)
    return value


def complete_employee_side(
    check_in,
    *,
    rating=None,
    private_notes: str | None = None,
    actual_energy_percentage=None,
    personal_alignment: str | None = None,
):
    """Record the employee's half of the check-in and stamp employee_completed_at."""
    _ensure_mutable(check_in)
    employee_rating = _validated_rating(check_in, "employee_rating", rating)

    if isinstance(check_in, AssignmentCheckIn):
        energy = parse_optional_int(actual_energy_percentage)
        if energy is not None and not 0 <= energy <= 100:
            raise ValidationError(
                "actual_energy_percentage must be between 0 and 100",
                details={"actual_energy_percentage": actual_energy_percentage},
            )
        if personal_alignment and personal_alignment not in PERSONAL_ALIGNMENTS:
            raise ValidationError(
                f"Invalid personal_alignment '{personal_alignment}'. "
                f"Must be one of: {', '.join(sorted(PERSONAL_ALIGNMENTS))}",
                details={"personal_alignment": personal_alignment},
            )
        check_in.actual_energy_percentage = energy
        check_in.employee_personal_alignment = personal_alignment or None

    check_in.employee_rating = employee_rating
    check_in.employee_private_notes = private_notes
    check_in.employee_completed_at = datetime.now(timezone.utc)
    write_audit(
        entity_type=f"{check_in.dimension}_check_in",
        entity_id=check_in.id,
        action="check_in.complete_employee",
        diff={"employee_rating": check_in.employee_rating},
    )
    db.session.commit()

    logger.info(
        "Employee side completed",
        extra={"teammate_id": check_in.teammate_id, "check_in_id": check_in.id,
               "dimension": check_in.dimension},
    )
    return check_in


def complete_manager_side(
    check_in,
    *,
    rating=None,
    private_notes: str | None = None,
    completed_by=None,
):
    """Record the manager's half of the check-in and stamp manager_completed_at."""
    _ensure_mutable(check_in)
    manager_rating = _validated_rating(check_in, "manager_rating", rating)
    check_in.manager_rating = manager_rating
    check_in.manager_private_notes = private_notes
    check_in.manager_completed_at = datetime.now(timezone.utc)
    check_in.manager_completed_by_id = _id(completed_by)

    write_audit(
        entity_type=f"{check_in.dimension}_check_in",
        entity_id=check_in.id,
        action="check_in.complete_manager",
        actor_id=check_in.manager_completed_by_id,
        diff={"manager_rating": check_in.manager_rating},
    )
    db.session.commit()

    logger.info(
        "Manager side completed",
        extra={"teammate_id": check_in.teammate_id, "check_in_id": check_in.id,
               "dimension": check_in.dimension},
    )
    return check_in


def uncomplete_employee_side(check_in):
    _ensure_mutable(check_in)
    check_in.employee_completed_at = None
    db.session.commit()
    return check_in


def uncomplete_manager_side(check_in):
    _ensure_mutable(check_in)
    check_in.manager_completed_at = None
    check_in.manager_completed_by_id = None
    db.session.commit()
    return check_in
