from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Iterable, Union

from ..models import TimeSlot, VehicleClass
from .entities import Reservation, ReservationCandidate
from .errors import InputError

MAX_MOTORCYCLES = 4
VALID_SPOT_NUMBERS: frozenset[int] = frozenset({84, 85})

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ConflictReason(StrEnum):
    INVALID_RESOURCE = "invalid_resource"
    INVALID_DATE = "invalid_date"
    PAST_DATE = "past_date"
    DUPLICATE_OWNER_FOR_DATE = "duplicate_owner_for_date"
    CAR_SLOT_CONFLICT = "car_slot_conflict"
    CAR_PRESENT_CONFLICT = "car_present_conflict"
    MOTORCYCLE_CAPACITY_EXCEEDED = "motorcycle_capacity_exceeded"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    ConflictReason.INVALID_RESOURCE: "Invalid spot number",
    ConflictReason.INVALID_DATE: "Invalid date format. Use YYYY-MM-DD",
    ConflictReason.PAST_DATE: "Cannot book parking for past dates",
    ConflictReason.DUPLICATE_OWNER_FOR_DATE: "You already have a booking on this date",
    ConflictReason.CAR_SLOT_CONFLICT: "This spot already has a booking at that time",
    ConflictReason.CAR_PRESENT_CONFLICT: "A car is booked for that time on this spot",
    ConflictReason.MOTORCYCLE_CAPACITY_EXCEEDED: "Maximum motorcycles allowed at the same time reached",
}


@dataclass(frozen=True)
class Accepted:
    date: date
    accepted: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: ConflictReason
    accepted: bool = False


EvaluationResult = Union[Accepted, Rejected]


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    """A full day overlaps everything; morning and afternoon only overlap themselves."""
    if a == TimeSlot.FULL_DAY or b == TimeSlot.FULL_DAY:
        return True
    return a == b


def parse_booking_date(value: date | str) -> date | None:
    """Return the calendar date for `value`, or None if it is not a YYYY-MM-DD date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def evaluate(
    candidate: ReservationCandidate,
    existing: Iterable[Reservation],
    owner_reservations_for_date: Iterable[Reservation],
    today: date,
    *,
    max_motorcycles: int = MAX_MOTORCYCLES,
    valid_spot_numbers: Iterable[int] = VALID_SPOT_NUMBERS,
) -> EvaluationResult:
    """
    Decide whether `candidate` may be admitted.

    `existing` must hold every booking for the candidate's spot and date;
    `owner_reservations_for_date` every booking of the candidate's owner on that
    date across all spots. Neither is filtered here. Policy violations are
    returned as `Rejected`; only missing fields raise `InputError`.
    """
    _require_fields(candidate)

    if candidate.spot_number not in set(valid_spot_numbers):
        return Rejected(ConflictReason.INVALID_RESOURCE)

    booking_date = parse_booking_date(candidate.date)
    if booking_date is None:
        return Rejected(ConflictReason.INVALID_DATE)
    if booking_date < today:
        return Rejected(ConflictReason.PAST_DATE)

    if any(
        r.owner_name == candidate.owner_name and r.date == booking_date
        for r in owner_reservations_for_date
    ):
        return Rejected(ConflictReason.DUPLICATE_OWNER_FOR_DATE)

    overlapping = [r for r in existing if overlaps(candidate.slot, r.slot)]

    # A car is blocked by any overlapping booking, motorcycles included,
    # while a motorcycle is only blocked by cars and by the motorcycle cap.
    if candidate.vehicle_class == VehicleClass.CAR:
        if overlapping:
            return Rejected(ConflictReason.CAR_SLOT_CONFLICT)
        return Accepted(booking_date)

    if any(r.vehicle_class == VehicleClass.CAR for r in overlapping):
        return Rejected(ConflictReason.CAR_PRESENT_CONFLICT)
    motorcycles = sum(1 for r in overlapping if r.vehicle_class == VehicleClass.MOTORCYCLE)
    if motorcycles >= max_motorcycles:
        return Rejected(ConflictReason.MOTORCYCLE_CAPACITY_EXCEEDED)
    return Accepted(booking_date)


def _require_fields(candidate: ReservationCandidate) -> None:
    if candidate.spot_number is None:
        raise InputError("spot_number is required")
    if candidate.date is None:
        raise InputError("date is required")
    if candidate.slot is None:
        raise InputError("slot is required")
    if candidate.vehicle_class is None:
        raise InputError("vehicle_class is required")
    if not candidate.owner_name or not candidate.owner_name.strip():
        raise InputError("owner_name is required")
