from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from ..domain.entities import ReservationCandidate
from ..domain.errors import BookingRejectedError, InputError, RecurringBookingNotFoundError
from ..domain.recurrence import RecurrenceRule, expand_dates
from ..domain.repositories import (
    BookingAuditRepository,
    BookingRepository,
    RecurringBookingRepository,
    WaitlistRepository,
)
from ..domain.services import MAX_MOTORCYCLES, VALID_SPOT_NUMBERS, ConflictReason
from ..models import Booking, RecurrencePattern, RecurringBooking, TimeSlot, VehicleClass
from . import bookings as booking_usecase

RECURRING_DAYS_AHEAD = 30


@dataclass
class GenerationReport:
    created: list[Booking] = field(default_factory=list)
    skipped: list[tuple[date, ConflictReason]] = field(default_factory=list)


def rule_for(recurring: RecurringBooking) -> RecurrenceRule:
    return RecurrenceRule(
        pattern=RecurrencePattern(recurring.pattern),
        start_date=recurring.start_date,
        end_date=recurring.end_date,
        weekdays=recurring.weekdays,
    )


async def create_recurring_booking(
    recurring_repo: RecurringBookingRepository,
    *,
    user_id: int,
    user_name: str,
    spot_number: int,
    vehicle_class: VehicleClass,
    slot: TimeSlot,
    pattern: RecurrencePattern,
    weekdays: tuple[int, ...],
    start_date: date,
    end_date: date | None,
    spot_numbers: Iterable[int] = VALID_SPOT_NUMBERS,
) -> RecurringBooking:
    if spot_number not in frozenset(spot_numbers):
        raise InputError(f"unknown spot {spot_number}")
    if not user_name.strip():
        raise InputError("user_name is required")
    # validates weekdays and the date range
    RecurrenceRule(pattern=pattern, start_date=start_date, end_date=end_date, weekdays=weekdays)
    return await recurring_repo.create(
        user_id=user_id,
        user_name=user_name,
        spot_number=spot_number,
        vehicle_class=vehicle_class,
        slot=slot,
        pattern=pattern,
        weekdays=tuple(sorted(set(weekdays))),
        start_date=start_date,
        end_date=end_date,
    )


async def list_user_recurring_bookings(
    recurring_repo: RecurringBookingRepository,
    *,
    user_id: int,
) -> list[RecurringBooking]:
    return await recurring_repo.list_by_user(user_id)


async def _get_owned(recurring_repo: RecurringBookingRepository, recurring_id: int, user_id: int) -> RecurringBooking:
    recurring = await recurring_repo.get_for_user(recurring_id, user_id)
    if recurring is None:
        raise RecurringBookingNotFoundError("recurring booking not found")
    return recurring


async def delete_recurring_booking(
    recurring_repo: RecurringBookingRepository,
    *,
    recurring_id: int,
    user_id: int,
) -> RecurringBooking:
    recurring = await _get_owned(recurring_repo, recurring_id, user_id)
    await recurring_repo.delete(recurring)
    return recurring


async def set_recurring_active(
    recurring_repo: RecurringBookingRepository,
    *,
    recurring_id: int,
    user_id: int,
    is_active: bool,
) -> RecurringBooking:
    recurring = await _get_owned(recurring_repo, recurring_id, user_id)
    recurring.is_active = is_active
    return await recurring_repo.save(recurring)


async def generate_recurring_bookings(
    recurring_repo: RecurringBookingRepository,
    booking_repo: BookingRepository,
    *,
    recurring_id: int,
    user_id: int,
    until: date,
    today: date,
    spot_numbers: Iterable[int] = VALID_SPOT_NUMBERS,
    max_motorcycles: int = MAX_MOTORCYCLES,
    days_ahead: int = RECURRING_DAYS_AHEAD,
    waitlist_repo: WaitlistRepository | None = None,
    audit_repo: BookingAuditRepository | None = None,
) -> GenerationReport:
    """
    Materialize bookings for every rule date up to `until` that has not been
    generated yet. `until` may lie at most `days_ahead` days after `today`.
    Each date goes through the regular admission path; rejected dates are
    reported, not retried.
    """
    recurring = await _get_owned(recurring_repo, recurring_id, user_id)
    horizon = today + timedelta(days=days_ahead)
    if until > horizon:
        raise InputError(f"until must not be later than {horizon.isoformat()} ({days_ahead} days ahead)")
    report = GenerationReport()
    if not recurring.is_active:
        return report

    start = today
    if recurring.last_generated_date is not None:
        start = max(start, recurring.last_generated_date + timedelta(days=1))
    dates = expand_dates(rule_for(recurring), start, until)

    for day in dates:
        candidate = ReservationCandidate(
            spot_number=recurring.spot_number,
            date=day,
            slot=TimeSlot(recurring.duration),
            vehicle_class=VehicleClass(recurring.vehicle_type),
            owner_name=recurring.user_name,
        )
        try:
            booking = await booking_usecase.create_booking(
                booking_repo,
                candidate=candidate,
                user_id=recurring.user_id,
                today=today,
                spot_numbers=spot_numbers,
                max_motorcycles=max_motorcycles,
                waitlist_repo=waitlist_repo,
                audit_repo=audit_repo,
            )
        except BookingRejectedError as exc:
            report.skipped.append((day, exc.reason))
            continue
        report.created.append(booking)

    if dates:
        recurring.last_generated_date = dates[-1]
        await recurring_repo.save(recurring)
    return report
