"""
Check-in Finalization Service - finalize several check-ins as one batch.

    finalize_check_ins(teammate, params, finalized_by) → Result

params shape (form-post friendly; ids may be str or int):

    {
      "position_check_in":    {"finalize": "1", "official_rating": "2", "shared_notes": "..."},
      "assignment_check_ins": {"12": {"finalize": "1", "official_rating": "meeting",
                                      "shared_notes": "...", "anticipated_energy_percentage": ""}},
      "aspiration_check_ins": {"7":  {"finalize": "true", "official_rating": "exceeding"}},
    }

Everything runs in one transaction:
    finalizers (commit=False) → build_snapshot → persist MaapSnapshot
    → link check-ins → audit → commit.
Any failure rolls the whole batch back.
"""

import logging
from datetime import date, datetime, timezone

from maap.core.result import Err, ErrorKind, Ok, Result, err_from_exception
from maap.models import db
from maap.models.audit import write_audit
from maap.models.check_in import PositionCheckIn
from maap.models.snapshot import MaapSnapshot
from maap.services.check_in_service import get_check_in
from maap.services.finalizers import (
    finalize_aspiration_check_in,
    finalize_assignment_check_in,
    finalize_position_check_in,
)
from maap.services.snapshot_builder import SnapshotData, build_snapshot
from maap.utils.helpers import is_truthy_flag

logger = logging.getLogger(__name__)

_DIMENSION_CHANGE_TYPES = {
    "position": "position_tenure",
    "assignments": "assignment_management",
    "aspirations": "aspiration_management",
}


def determine_change_type(results: dict) -> str:
    """Single finalized dimension → its change type; several → bulk."""
    touched = [key for key in ("position", "assignments", "aspirations") if results.get(key)]
    if len(touched) == 1:
        return _DIMENSION_CHANGE_TYPES[touched[0]]
    return "bulk_check_in_finalization"


def persist_snapshot(
    snapshot: SnapshotData,
    *,
    employee_id: int,
    company_id: int,
    created_by_id: int | None,
    change_type: str,
    reason: str,
    effective_date: date | None = None,
    request_info: dict | None = None,
) -> MaapSnapshot:
    """Write a MaapSnapshot row for *snapshot*.  Flushes; caller commits."""
    row = MaapSnapshot(
        employee_id=employee_id,
        created_by_id=created_by_id,
        company_id=company_id,
        change_type=change_type,
        reason=reason,
        effective_date=effective_date,
        maap_data=snapshot.to_dict(),
        form_params=snapshot.form_params,
        request_info=request_info or {},
    )
    db.session.add(row)
    db.session.flush()

    write_audit(
        entity_type="maap_snapshot",
        entity_id=row.id,
        action="snapshot.create",
        company_id=company_id,
        actor_id=created_by_id,
        diff={"change_type": change_type, "employee_id": employee_id},
    )
    return row


def _log_failure(err: Err, teammate_id: int) -> None:
    extra = {"teammate_id": teammate_id, "error_kind": err.kind.value}
    if err.recoverable:
        logger.warning("Check-in finalization batch rejected: %s", err.message, extra=extra)
    else:
        logger.error("Check-in finalization batch failed: %s", err.message, extra=extra)


def _fail(err: Err, teammate_id: int) -> Err:
    db.session.rollback()
    if err.kind == ErrorKind.UNEXPECTED:
        err = Err(ErrorKind.UNEXPECTED, f"Failed to finalize check-ins: {err.message}",
                  code=err.code, details=err.details)
    _log_failure(err, teammate_id)
    return err


def _finalize_position(teammate, item: dict, finalized_by) -> Result:
    check_in = (
        PositionCheckIn.query_open()
        .filter(
            PositionCheckIn.teammate_id == teammate.id,
            PositionCheckIn.employee_completed_at.isnot(None),
            PositionCheckIn.manager_completed_at.isnot(None),
        )
        .first()
    )
    if check_in is None:
        return Err(ErrorKind.NOT_READY, "Position check-in not ready")
    return finalize_position_check_in(
        check_in,
        item.get("official_rating"),
        item.get("shared_notes"),
        finalized_by,
        commit=False,
    )


def _finalize_many(dimension: str, teammate, items: dict, finalize_one) -> Result:
    """Run *finalize_one* over every selected, ready check-in of *dimension*.

    Selected check-ins that are not ready are skipped, not failed.
    """
    payloads = []
    for check_in_id, item in (items or {}).items():
        item = item or {}
        if not is_truthy_flag(item.get("finalize")):
            continue
        check_in = get_check_in(dimension, check_in_id, teammate_id=teammate.id)
        if not check_in.ready_for_finalization:
            logger.info(
                "Skipping check-in that is not ready for finalization",
                extra={"teammate_id": teammate.id, "check_in_id": check_in.id, "dimension": dimension},
            )
            continue
        result = finalize_one(check_in, item)
        if not result.ok:
            return result
        payloads.append(result.value)
    return Ok(payloads)


def finalize_check_ins(teammate, params: dict, finalized_by, request_info: dict | None = None) -> Result:
    """Finalize the selected check-ins of *teammate* and capture one snapshot.

    Args:
        teammate:     Teammate whose check-ins are finalized.
        params:       Selection + ratings (see module docstring).
        finalized_by: Person finalizing.
        request_info: Optional request metadata stored on the snapshot.

    Returns:
        Ok({"snapshot": MaapSnapshot | None, "results": {...}}) or the first Err.
        ``snapshot`` is None when nothing was selected for finalization.
    """
    params = params or {}
    finalized_by_id = getattr(finalized_by, "id", finalized_by)
    results = {"position": None, "assignments": [], "aspirations": []}

    try:
        position_item = params.get("position_check_in") or {}
        if is_truthy_flag(position_item.get("finalize")):
            result = _finalize_position(teammate, position_item, finalized_by)
            if not result.ok:
                return _fail(result, teammate.id)
            results["position"] = result.value

        result = _finalize_many(
            "assignment", teammate, params.get("assignment_check_ins"),
            lambda check_in, item: finalize_assignment_check_in(
                check_in,
                item.get("official_rating"),
                item.get("shared_notes"),
                item.get("anticipated_energy_percentage"),
                finalized_by,
                commit=False,
            ),
        )
        if not result.ok:
            return _fail(result, teammate.id)
        results["assignments"] = result.value

        result = _finalize_many(
            "aspiration", teammate, params.get("aspiration_check_ins"),
            lambda check_in, item: finalize_aspiration_check_in(
                check_in,
                item.get("official_rating"),
                item.get("shared_notes"),
                finalized_by,
                commit=False,
            ),
        )
        if not result.ok:
            return _fail(result, teammate.id)
        results["aspirations"] = result.value

        if not any(results.values()):
            logger.info("No check-ins selected for finalization", extra={"teammate_id": teammate.id})
            return Ok({"snapshot": None, "results": results})

        change_type = determine_change_type(results)
        snapshot_data = build_snapshot(teammate.person_id, teammate.organization_id, form_params=params)
        snapshot = persist_snapshot(
            snapshot_data,
            employee_id=teammate.person_id,
            company_id=teammate.organization_id,
            created_by_id=finalized_by_id,
            change_type=change_type,
            reason=f"Check-in finalization for {teammate.person.display_name}",
            effective_date=date.today(),
            request_info={
                **(request_info or {}),
                "finalized_by_id": finalized_by_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

        finalized = []
        if results["position"]:
            finalized.append(results["position"]["check_in"])
        finalized.extend(payload["check_in"] for payload in results["assignments"])
        finalized.extend(payload["check_in"] for payload in results["aspirations"])
        for check_in in finalized:
            check_in.maap_snapshot_id = snapshot.id

        db.session.commit()
    except Exception as exc:
        return _fail(err_from_exception(exc), teammate.id)

    logger.info(
        "Check-in finalization batch committed",
        extra={
            "teammate_id": teammate.id,
            "snapshot_id": snapshot.id,
            "change_type": change_type,
            "finalized_by_id": finalized_by_id,
        },
    )
    return Ok({"snapshot": snapshot, "results": results})
