from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .services import ConflictReason


class DomainError(Exception):
    """Base class for booking domain errors."""


class InputError(DomainError):
    """Structurally malformed input (missing field, unknown spot in a query)."""


class BookingRejectedError(DomainError):
    def __init__(self, reason: ConflictReason) -> None:
        super().__init__(reason.message)
        self.reason = reason


class BookingNotFoundError(DomainError):
    pass


class DuplicateWaitlistError(DomainError):
    pass


class WaitlistEntryNotFoundError(DomainError):
    pass


class RecurringBookingNotFoundError(DomainError):
    pass
