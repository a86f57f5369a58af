"""
Platform-wide exception hierarchy.

Service helpers outside the finalization path (tenure bookkeeping,
check-in completion, orchestration lookups) raise these types.  The
finalizers themselves never raise for expected failures; they return an
``Err`` from ``maap.core.result`` instead.

Usage:
    from maap.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="AssignmentCheckIn", resource_id=42)
    raise ValidationError("employee_rating is invalid", details={"employee_rating": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist within the given scope.

    Args:
        resource: Human-readable model name (e.g. "AssignmentCheckIn").
        resource_id: The PK that was looked up.
        company_id: Optional - the company scope that was enforced.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        company_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.company_id = company_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if company_id is not None:
            msg += f" (company={company_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails a business rule in the service layer.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would break a uniqueness invariant.

    The main case is opening a second open tenure for the same
    (teammate, dimension).

    Args:
        resource: Model name.
        field: The field (or field group) that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
