from datetime import date, datetime
from typing import Iterable

from ..domain.entities import ReservationCandidate
from ..domain.errors import BookingNotFoundError, BookingRejectedError, InputError
from ..domain.repositories import BookingAuditRepository, BookingRepository, WaitlistRepository
from ..domain.services import MAX_MOTORCYCLES, VALID_SPOT_NUMBERS, Rejected, evaluate, overlaps, parse_booking_date
from ..models import Booking, HistoryAction, WaitlistEntry, WaitlistStatus
from ..utils.time import utc_now_naive


async def create_booking(
    booking_repo: BookingRepository,
    *,
    candidate: ReservationCandidate,
    user_id: int,
    today: date,
    spot_numbers: Iterable[int] = VALID_SPOT_NUMBERS,
    max_motorcycles: int = MAX_MOTORCYCLES,
    waitlist_repo: WaitlistRepository | None = None,
    audit_repo: BookingAuditRepository | None = None,
) -> Booking:
    spot_numbers = frozenset(spot_numbers)
    day = parse_booking_date(candidate.date)

    existing = []
    owner_bookings = []
    if day is not None and candidate.spot_number in spot_numbers:
        existing = await booking_repo.list_for_spot_date(candidate.spot_number, day)
        owner_bookings = await booking_repo.list_for_owner_date(candidate.owner_name, day)

    result = evaluate(
        candidate,
        existing,
        owner_bookings,
        today,
        max_motorcycles=max_motorcycles,
        valid_spot_numbers=spot_numbers,
    )
    if isinstance(result, Rejected):
        raise BookingRejectedError(result.reason)

    # TODO: the snapshot read above and this insert are not atomic, so two
    # concurrent requests can both pass evaluate(). Needs a per (spot_number, date)
    # lock row or a conditional insert in the store to close the gap.
    booking = await booking_repo.create(
        spot_number=candidate.spot_number,
        day=result.date,
        slot=candidate.slot,
        vehicle_class=candidate.vehicle_class,
        user_id=user_id,
        owner_name=candidate.owner_name,
    )

    if waitlist_repo is not None:
        await _fulfil_waitlist(waitlist_repo, booking)
    if audit_repo is not None:
        await audit_repo.record(
            booking_id=booking.id,
            user_id=user_id,
            action=HistoryAction.CREATED,
            old_data=None,
            new_data=booking.snapshot(),
        )
    return booking


async def _fulfil_waitlist(waitlist_repo: WaitlistRepository, booking: Booking) -> list[WaitlistEntry]:
    """The booker's own open waitlist entries covered by the new booking are done."""
    fulfilled: list[WaitlistEntry] = []
    entries = await waitlist_repo.list_active_for_user_spot_date(
        booking.user_id, booking.spot_number, booking.booking_date
    )
    for entry in entries:
        if overlaps(entry.duration, booking.duration):
            fulfilled.append(await waitlist_repo.set_status(entry, WaitlistStatus.FULFILLED))
    return fulfilled


async def cancel_booking(
    booking_repo: BookingRepository,
    waitlist_repo: WaitlistRepository,
    *,
    booking_id: int,
    user_id: int,
    now: datetime | None = None,
    audit_repo: BookingAuditRepository | None = None,
) -> tuple[Booking, list[WaitlistEntry]]:
    """Delete the caller's booking and notify waitlist entries for the freed slot."""
    booking = await booking_repo.get_for_user_for_update(booking_id, user_id)
    if booking is None:
        raise BookingNotFoundError("booking not found")

    spot_number, day, slot = booking.spot_number, booking.booking_date, booking.duration
    old_data = booking.snapshot()
    await booking_repo.delete(booking)
    if audit_repo is not None:
        await audit_repo.record(
            booking_id=booking_id,
            user_id=user_id,
            action=HistoryAction.CANCELLED,
            old_data=old_data,
            new_data=None,
        )

    notified_at = now or utc_now_naive()
    notified: list[WaitlistEntry] = []
    for entry in await waitlist_repo.list_waiting(spot_number, day):
        if overlaps(entry.duration, slot):
            notified.append(await waitlist_repo.mark_notified(entry, notified_at))
    return booking, notified


async def list_user_bookings(booking_repo: BookingRepository, *, user_id: int) -> list[Booking]:
    return await booking_repo.list_by_user(user_id)


async def get_user_booking(booking_repo: BookingRepository, *, booking_id: int, user_id: int) -> Booking | None:
    return await booking_repo.get_for_user(booking_id, user_id)


async def list_spot_bookings(
    booking_repo: BookingRepository,
    *,
    spot_number: int,
    start: date | None,
    end: date | None,
    spot_numbers: Iterable[int] = VALID_SPOT_NUMBERS,
) -> list[Booking]:
    if spot_number not in frozenset(spot_numbers):
        raise InputError(f"unknown spot {spot_number}")
    if start is not None and end is not None and start > end:
        raise InputError("start must not be later than end")
    return await booking_repo.list_for_spot(spot_number, start, end)
