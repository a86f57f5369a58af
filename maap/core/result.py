"""
Result envelope returned by every finalization-path operation.

Two variants, so callers must handle both paths:

    result = finalize_assignment_check_in(...)
    if result.ok:
        tenure = result.value["new_tenure"]
    else:
        log(result.kind, result.message)

``Ok`` carries a payload; ``Err`` carries an ``ErrorKind`` plus a message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from sqlalchemy.exc import SQLAlchemyError

from maap.utils.errors import E, error_payload


class ErrorKind(str, Enum):
    NOT_READY = "not_ready"
    RATING_REQUIRED = "rating_required"
    INVALID_RATING = "invalid_rating"
    NO_ACTIVE_TENURE = "no_active_tenure"
    UNEXPECTED = "unexpected"
    # Observable-moment collaborator only: rating did not rank higher.
    NOT_IMPROVED = "not_improved"


# User-input kinds: surfaced to the caller, nothing was mutated.
RECOVERABLE_KINDS = frozenset({
    ErrorKind.NOT_READY,
    ErrorKind.RATING_REQUIRED,
    ErrorKind.INVALID_RATING,
})

_KIND_CODE = {
    ErrorKind.NOT_READY: E.CONFLICT_STATE,
    ErrorKind.RATING_REQUIRED: E.VALIDATION_REQUIRED,
    ErrorKind.INVALID_RATING: E.VALIDATION_INVALID,
    ErrorKind.NO_ACTIVE_TENURE: E.NOT_FOUND,
    ErrorKind.UNEXPECTED: E.INTERNAL,
    ErrorKind.NOT_IMPROVED: E.CONFLICT_STATE,
}


@dataclass(frozen=True)
class Ok:
    """Successful outcome."""
    value: Any = None

    ok = True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome with a machine-readable kind."""
    kind: ErrorKind
    message: str
    code: str | None = None
    details: dict = field(default_factory=dict)

    ok = False

    @property
    def error_code(self) -> str:
        return self.code or _KIND_CODE[self.kind]

    @property
    def recoverable(self) -> bool:
        return self.kind in RECOVERABLE_KINDS

    def unwrap(self) -> Any:
        raise ValueError(f"unwrap() called on Err({self.kind.value}): {self.message}")

    def to_payload(self) -> tuple[dict, int]:
        """``(body, status)`` for an HTTP caller."""
        details = {"kind": self.kind.value, **self.details}
        return error_payload(self.error_code, self.message, details=details)


Result = Union[Ok, Err]


def err_from_exception(exc: Exception) -> Err:
    """UNEXPECTED failure for *exc*; database errors carry ``E.DATABASE``."""
    code = E.DATABASE if isinstance(exc, SQLAlchemyError) else None
    return Err(ErrorKind.UNEXPECTED, str(exc), code=code)
