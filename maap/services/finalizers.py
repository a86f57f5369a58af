"""
Check-in Finalizers - officially rate a check-in and rotate its tenure.

One template (``_run_finalization``) drives three per-dimension strategies:

    AssignmentRotation   close the open assignment tenure, open the next one
    PositionRotation     close the open employment tenure, open the next one
    AspirationStamp      no tenure; read the previous rating, fire the moment hook

Template flow:
    1. Re-read the check-in row FOR UPDATE, then preconditions, first
       failure wins, nothing mutated:
         not ready_for_finalization  → NOT_READY
         blank official rating       → RATING_REQUIRED
         rating off the scale        → INVALID_RATING
    2. strategy.prepare()  - locked reads (SELECT … FOR UPDATE) and input
       checks; may return NO_ACTIVE_TENURE, still before any write.
    3. strategy.apply()    - tenure rotation.
    4. Stamp the check-in + audit row.
    5. strategy.after_stamp() - aspiration moment hook (own SAVEPOINT).
    6. commit (``commit=True``) or leave it to the caller (``commit=False``).

Expected failures come back as ``Err``; nothing here raises.  Any
unexpected exception becomes ``Err(UNEXPECTED)`` and, for standalone
calls, rolls the session back so no half-rotated tenure survives.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Protocol

from flask import current_app
from sqlalchemy import select

from maap.core.exceptions import ValidationError
from maap.core.result import Err, ErrorKind, Ok, Result, err_from_exception
from maap.models import db
from maap.models.audit import write_audit
from maap.models.ratings import coerce_position_rating, is_valid_rating
from maap.services import tenure_service
from maap.services.check_in_service import latest_finalized_aspiration_check_in
from maap.services.observable_moments import create_check_in_moment
from maap.utils.helpers import is_blank, parse_whole_number

logger = logging.getLogger(__name__)

MomentHook = Callable[[Any, Any, Any], Any]


class CheckInFinalizer(Protocol):
    """Per-dimension steps plugged into ``_run_finalization``."""

    dimension: str

    def parse_rating(self, raw):
        """Return the rating as stored for this dimension, or None if off-scale."""

    def prepare(self, check_in) -> Result:
        """Locked reads before any write.  Ok(context) or Err(NO_ACTIVE_TENURE)."""

    def apply(self, check_in, rating, context, finalized_by_id) -> dict:
        """Perform the dimension's writes; return the payload fields to merge."""

    def after_stamp(self, check_in, context, finalized_by) -> None:
        """Runs once the check-in is stamped and flushed."""


# ═════════════════════════════════════════════════════════════════════════════
# Strategies
# ═════════════════════════════════════════════════════════════════════════════


class AssignmentRotation:
    dimension = "assignment"

    def __init__(self, anticipated_energy_percentage=None):
        self.anticipated_energy_percentage = anticipated_energy_percentage

    def parse_rating(self, raw):
        return raw if is_valid_rating(self.dimension, raw) else None

    def _requested_energy(self):
        try:
            energy = parse_whole_number(self.anticipated_energy_percentage)
            in_range = energy is None or 0 <= energy <= 100
        except ValueError:
            in_range = False
        if not in_range:
            raise ValidationError(
                f"anticipated_energy_percentage must be a whole number 0-100, "
                f"got {self.anticipated_energy_percentage!r}",
                details={"anticipated_energy_percentage": self.anticipated_energy_percentage},
            )
        return energy

    def prepare(self, check_in) -> Result:
        energy = self._requested_energy()
        tenure = tenure_service.active_assignment_tenure(
            check_in.teammate_id, check_in.assignment_id, for_update=True,
        )
        if tenure is None:
            return Err(
                ErrorKind.NO_ACTIVE_TENURE,
                f"No active tenure found for assignment {check_in.assignment_id}",
                details={"teammate_id": check_in.teammate_id, "assignment_id": check_in.assignment_id},
            )
        if energy is None:
            energy = tenure.anticipated_energy_percentage
        return Ok((tenure, energy))

    def apply(self, check_in, rating, context, finalized_by_id) -> dict:
        tenure, energy = context
        tenure_service.close_tenure(tenure, rating=rating, actor_id=finalized_by_id)
        new_tenure = tenure_service.start_assignment_tenure(
            tenure.teammate_id,
            tenure.assignment_id,
            anticipated_energy_percentage=energy,
            actor_id=finalized_by_id,
        )
        return {
            "new_tenure": new_tenure,
            "rating_data": {
                "assignment_id": check_in.assignment_id,
                "official_rating": rating,
                "rated_at": date.today().isoformat(),
            },
        }

    def after_stamp(self, check_in, context, finalized_by) -> None:
        return None


class PositionRotation:
    dimension = "position"

    def parse_rating(self, raw):
        value = coerce_position_rating(raw)
        return value if is_valid_rating(self.dimension, value) else None

    def prepare(self, check_in) -> Result:
        company_id = check_in.teammate.organization_id
        tenure = tenure_service.active_employment_tenure(
            check_in.teammate_id, company_id, for_update=True,
        )
        if tenure is None:
            return Err(
                ErrorKind.NO_ACTIVE_TENURE,
                f"No active tenure found for teammate {check_in.teammate_id} "
                f"in company {company_id}",
                details={"teammate_id": check_in.teammate_id, "company_id": company_id},
            )
        return Ok(tenure)

    def apply(self, check_in, rating, tenure, finalized_by_id) -> dict:
        tenure_service.close_tenure(tenure, rating=rating, actor_id=finalized_by_id)
        new_tenure = tenure_service.start_employment_tenure(
            tenure.teammate_id,
            tenure.company_id,
            tenure.position_id,
            manager_id=tenure.manager_id,
            seat_id=tenure.seat_id,
            employment_type=tenure.employment_type,
            actor_id=finalized_by_id,
        )
        return {
            "new_tenure": new_tenure,
            "rating_data": {
                "position_id": tenure.position_id,
                "official_rating": rating,
                "rated_at": date.today().isoformat(),
            },
        }

    def after_stamp(self, check_in, context, finalized_by) -> None:
        return None


class AspirationStamp:
    dimension = "aspiration"

    def __init__(self, moment_hook: MomentHook | None = None):
        self.moment_hook = moment_hook

    def parse_rating(self, raw):
        return raw if is_valid_rating(self.dimension, raw) else None

    def prepare(self, check_in) -> Result:
        previous = latest_finalized_aspiration_check_in(check_in.teammate_id, check_in.aspiration_id)
        return Ok(previous.official_rating if previous else None)

    def apply(self, check_in, rating, previous_rating, finalized_by_id) -> dict:
        return {
            "rating_data": {
                "aspiration_id": check_in.aspiration_id,
                "official_rating": rating,
                "previous_rating": previous_rating,
                "rated_at": date.today().isoformat(),
            },
        }

    def after_stamp(self, check_in, previous_rating, finalized_by) -> None:
        if self.moment_hook is None:
            return
        log_extra = {"check_in_id": check_in.id, "teammate_id": check_in.teammate_id,
                     "dimension": self.dimension}
        try:
            with db.session.begin_nested():
                outcome = self.moment_hook(check_in, previous_rating, finalized_by)
        except Exception:
            logger.exception("Observable moment hook failed", extra=log_extra)
            return
        if isinstance(outcome, Err):
            logger.info("No observable moment: %s", outcome.message, extra=log_extra)


# ═════════════════════════════════════════════════════════════════════════════
# Template
# ═════════════════════════════════════════════════════════════════════════════


def _check_preconditions(finalizer: CheckInFinalizer, check_in, official_rating) -> Err | None:
    if not check_in.ready_for_finalization:
        return Err(
            ErrorKind.NOT_READY,
            f"{type(check_in).__name__} {check_in.id} is not ready for finalization "
            f"(state: {check_in.state})",
        )
    if is_blank(official_rating):
        return Err(ErrorKind.RATING_REQUIRED, "Official rating is required")
    if finalizer.parse_rating(official_rating) is None:
        return Err(
            ErrorKind.INVALID_RATING,
            f"Invalid official rating '{official_rating}' for {finalizer.dimension} check-in",
            details={"official_rating": official_rating},
        )
    return None


def _lock_check_in(check_in) -> None:
    """Re-read *check_in* FOR UPDATE, overwriting the in-memory copy."""
    model = type(check_in)
    db.session.execute(
        select(model)
        .where(model.id == check_in.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one()


def _stamp_check_in(check_in, rating, shared_notes, finalized_by_id) -> None:
    check_in.official_rating = rating
    check_in.shared_notes = shared_notes
    check_in.official_check_in_completed_at = datetime.now(timezone.utc)
    check_in.finalized_by_id = finalized_by_id
    db.session.flush()


def _run_finalization(
    finalizer: CheckInFinalizer,
    check_in,
    official_rating,
    shared_notes,
    finalized_by,
    *,
    commit: bool,
) -> Result:
    log_extra = {
        "check_in_id": check_in.id,
        "teammate_id": check_in.teammate_id,
        "dimension": finalizer.dimension,
    }

    finalized_by_id = getattr(finalized_by, "id", finalized_by)

    try:
        # The caller's copy may be stale; readiness is judged on the locked row.
        _lock_check_in(check_in)

        err = _check_preconditions(finalizer, check_in, official_rating)
        if err is not None:
            logger.warning("Finalization rejected: %s", err.message,
                           extra={**log_extra, "error_kind": err.kind.value})
            if commit:
                db.session.rollback()
            return err
        rating = finalizer.parse_rating(official_rating)

        prepared = finalizer.prepare(check_in)
        if not prepared.ok:
            logger.error("Finalization failed: %s", prepared.message,
                         extra={**log_extra, "error_kind": prepared.kind.value})
            if commit:
                db.session.rollback()
            return prepared

        payload = finalizer.apply(check_in, rating, prepared.value, finalized_by_id)
        _stamp_check_in(check_in, rating, shared_notes, finalized_by_id)
        write_audit(
            entity_type=f"{finalizer.dimension}_check_in",
            entity_id=check_in.id,
            action="check_in.finalize",
            company_id=check_in.teammate.organization_id,
            actor_id=finalized_by_id,
            diff={"official_rating": rating, "state": {"old": "ready_for_finalization", "new": "finalized"}},
        )
        finalizer.after_stamp(check_in, prepared.value, finalized_by)

        if commit:
            db.session.commit()
    except Exception as exc:
        if commit:
            db.session.rollback()
        logger.exception("Unexpected error during finalization",
                         extra={**log_extra, "error_kind": ErrorKind.UNEXPECTED.value})
        return err_from_exception(exc)

    logger.info("Check-in finalized",
                extra={**log_extra, "finalized_by_id": finalized_by_id})
    payload["check_in"] = check_in
    return Ok(payload)


# ═════════════════════════════════════════════════════════════════════════════
# Public API
# ═════════════════════════════════════════════════════════════════════════════


def finalize_assignment_check_in(
    check_in,
    official_rating,
    shared_notes,
    anticipated_energy_percentage,
    finalized_by,
    *,
    commit: bool = True,
) -> Result:
    """Finalize an assignment check-in and rotate the assignment tenure.

    ``anticipated_energy_percentage`` of None or "" carries the closed
    tenure's value forward to the new one.

    Returns:
        Ok({"check_in", "new_tenure", "rating_data"}) or Err.
    """
    return _run_finalization(
        AssignmentRotation(anticipated_energy_percentage),
        check_in, official_rating, shared_notes, finalized_by,
        commit=commit,
    )


def finalize_position_check_in(
    check_in,
    official_rating,
    shared_notes,
    finalized_by,
    *,
    commit: bool = True,
) -> Result:
    """Finalize a position check-in and rotate the employment tenure.

    ``official_rating`` may be an int or a numeric string ("-1").
    """
    return _run_finalization(
        PositionRotation(),
        check_in, official_rating, shared_notes, finalized_by,
        commit=commit,
    )


def _default_moment_hook() -> MomentHook | None:
    if current_app.config.get("OBSERVABLE_MOMENTS_ENABLED", True):
        return create_check_in_moment
    return None


def finalize_aspiration_check_in(
    check_in,
    official_rating,
    shared_notes,
    finalized_by,
    *,
    commit: bool = True,
    moment_hook: MomentHook | None = None,
) -> Result:
    """Finalize an aspiration check-in (no tenure rotation).

    ``moment_hook(check_in, previous_rating, finalized_by)`` runs after the
    stamp; defaults to ``create_check_in_moment`` when
    OBSERVABLE_MOMENTS_ENABLED is on.
    """
    hook = moment_hook if moment_hook is not None else _default_moment_hook()
    return _run_finalization(
        AspirationStamp(hook),
        check_in, official_rating, shared_notes, finalized_by,
        commit=commit,
    )
