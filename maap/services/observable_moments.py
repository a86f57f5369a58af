"""
Observable Moments - record finalized check-ins worth recognising.

A ``check_in_completed`` moment is created when a check-in is finalized
with its first official rating, or with a rating that ranks higher than
the previous finalized one on the dimension's scale.  The finalizer's own
teammate row in the company becomes the primary observer.

The function only flushes; the finalizer that calls it owns the
transaction and wraps the call in a SAVEPOINT.
"""

import logging

from maap.core.result import Err, ErrorKind, Ok, Result
from maap.models import db
from maap.models.observable_moment import ObservableMoment
from maap.models.organization import find_teammate
from maap.models.ratings import rating_rank

logger = logging.getLogger(__name__)


def rating_improved(dimension: str, previous_rating, new_rating) -> bool:
    """True when there was no previous rating or *new_rating* ranks higher."""
    if previous_rating is None:
        return True
    new_rank = rating_rank(dimension, new_rating)
    old_rank = rating_rank(dimension, previous_rating)
    if new_rank is None:
        return False
    if old_rank is None:
        return True
    return new_rank > old_rank


def create_check_in_moment(check_in, previous_rating, finalized_by) -> Result:
    """Create a check_in_completed moment for *check_in* if its rating improved.

    Args:
        check_in:        A finalized check-in (any dimension).
        previous_rating: Official rating of the prior finalized check-in for
                         the same (teammate, dimension), or None.
        finalized_by:    Person (or person id) who finalized.

    Returns:
        Ok(ObservableMoment) or Err(NOT_IMPROVED, "Rating did not improve").
    """
    new_rating = check_in.official_rating
    if not rating_improved(check_in.dimension, previous_rating, new_rating):
        return Err(
            ErrorKind.NOT_IMPROVED,
            "Rating did not improve",
            details={"previous_rating": previous_rating, "official_rating": new_rating},
        )

    company_id = check_in.teammate.organization_id
    observer = find_teammate(finalized_by, company_id)

    moment = ObservableMoment(
        company_id=company_id,
        moment_type="check_in_completed",
        momentable_type=type(check_in).__name__,
        momentable_id=check_in.id,
        primary_observer_id=observer.id if observer else None,
        created_by_id=getattr(finalized_by, "id", finalized_by),
        moment_metadata={
            "check_in_type": type(check_in).__name__,
            "official_rating": str(new_rating),
            "previous_rating": str(previous_rating) if previous_rating is not None else None,
        },
    )
    db.session.add(moment)
    db.session.flush()

    logger.info(
        "Observable moment created",
        extra={"company_id": company_id, "check_in_id": check_in.id, "dimension": check_in.dimension},
    )
    return Ok(moment)
