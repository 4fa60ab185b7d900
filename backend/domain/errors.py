"""Structured error taxonomy raised by the reservation engine.

Every error carries a machine-readable ``kind`` and a ``context`` mapping so
callers can render specific guidance instead of a generic failure.
"""

from __future__ import annotations

from typing import Any, Iterable


class ReservationError(Exception):
    """Base failure for every engine operation."""

    kind = "reservation_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "context": dict(self.context),
        }


class ReservationValidationError(ReservationError):
    """Malformed window, non-positive attendee count, empty hall set, missing reason."""

    kind = "validation_error"


class ReservationConflictError(ReservationError):
    """Raised when a candidate collides with blocking records."""

    kind = "conflict"

    def __init__(
        self,
        message: str,
        blocking_halls: Iterable[int],
        blocking_records: Iterable[dict[str, Any]] = (),
    ) -> None:
        halls = sorted(set(blocking_halls))
        super().__init__(
            message,
            blocking_halls=halls,
            blocking_records=list(blocking_records),
        )
        self.blocking_halls = halls


class StaleConflictError(ReservationConflictError):
    """Raised when another allocation was committed between load and approve."""

    kind = "stale_conflict"


class ReservationNotFoundError(ReservationError):
    kind = "not_found"


class ForbiddenActionError(ReservationError):
    kind = "forbidden"


class InvalidStateError(ReservationError):
    """Raised for transitions attempted from a terminal or wrong state."""

    kind = "invalid_state"


class AlreadyDecidedError(InvalidStateError):
    """Raised when approve/reject targets a request that is no longer pending."""

    kind = "already_decided"


class ReservationBusyError(ReservationError):
    """Raised when the write lock cannot be taken before the busy timeout."""

    kind = "busy"
