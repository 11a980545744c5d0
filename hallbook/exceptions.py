"""Booking engine error taxonomy.

Every failure the engine can detect is raised as one of these. Each class
names its ``kind`` (what callers switch on) and the HTTP status the API
renders it with.
"""

from typing import Any, Optional


class BookingError(Exception):
    """Base booking engine error."""

    kind = "BookingError"
    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        payload = {"error": self.message, "kind": self.kind}
        payload.update({k: v for k, v in self.context.items() if v is not None})
        return payload


class ValidationError(BookingError):
    """Missing or malformed required field."""

    kind = "ValidationError"


class NoFieldsError(ValidationError):
    """Update request carried nothing to update."""

    kind = "NoFieldsError"


class FormatError(ValidationError):
    """Time or date string does not match its canonical pattern."""

    kind = "FormatError"


class OrderingError(ValidationError):
    """End is not strictly after start."""

    kind = "OrderingError"


class InvalidHallError(ValidationError):
    """Referenced hall does not exist."""

    kind = "InvalidHallError"


class NoOccurrencesError(ValidationError):
    """Recurrence parameters yield zero dates."""

    kind = "NoOccurrencesError"


class NotASeriesError(ValidationError):
    """Series-mode delete requested on a one-off booking."""

    kind = "NotASeriesError"


class ConflictError(BookingError):
    """Proposed interval overlaps an existing booking on the same hall and date."""

    kind = "ConflictError"
    status_code = 409

    def __init__(
        self,
        message: str,
        conflict_date: Optional[str] = None,
        conflict_requester: Optional[str] = None,
        conflict_booking_id: Optional[str] = None,
    ):
        super().__init__(
            message,
            conflict_date=conflict_date,
            conflict_requester=conflict_requester,
            conflict_booking_id=conflict_booking_id,
        )
        self.conflict_date = conflict_date
        self.conflict_requester = conflict_requester
        self.conflict_booking_id = conflict_booking_id


class NotFoundError(BookingError):
    kind = "NotFoundError"
    status_code = 404


class ForbiddenError(BookingError):
    """Edit secret missing or wrong."""

    kind = "ForbiddenError"
    status_code = 403


class PartialWriteError(BookingError):
    """The store did not honor the all-or-nothing series write."""

    kind = "PartialWriteError"
    status_code = 500
