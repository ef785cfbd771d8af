from datetime import date, datetime, timedelta
from typing import Iterable

from ..domain.errors import DuplicateWaitlistError, InputError, WaitlistEntryNotFoundError
from ..domain.repositories import WaitlistRepository
from ..domain.services import VALID_SPOT_NUMBERS
from ..models import TimeSlot, VehicleClass, WaitlistEntry, WaitlistStatus


async def join_waitlist(
    waitlist_repo: WaitlistRepository,
    *,
    user_id: int,
    spot_number: int,
    day: date,
    slot: TimeSlot,
    vehicle_class: VehicleClass,
    today: date,
    spot_numbers: Iterable[int] = VALID_SPOT_NUMBERS,
) -> WaitlistEntry:
    if spot_number not in frozenset(spot_numbers):
        raise InputError(f"unknown spot {spot_number}")
    if day < today:
        raise InputError("cannot join the waitlist for a past date")
    if await waitlist_repo.exists(user_id=user_id, spot_number=spot_number, day=day, slot=slot):
        raise DuplicateWaitlistError("already on the waitlist for this spot and time")
    return await waitlist_repo.create(
        user_id=user_id,
        spot_number=spot_number,
        day=day,
        slot=slot,
        vehicle_class=vehicle_class,
    )


async def leave_waitlist(waitlist_repo: WaitlistRepository, *, entry_id: int, user_id: int) -> WaitlistEntry:
    entry = await waitlist_repo.get_for_user(entry_id, user_id)
    if entry is None:
        raise WaitlistEntryNotFoundError("waitlist entry not found")
    await waitlist_repo.delete(entry)
    return entry


async def list_user_waitlist(waitlist_repo: WaitlistRepository, *, user_id: int) -> list[WaitlistEntry]:
    return await waitlist_repo.list_active_by_user(user_id)


async def expire_waitlist_entries(
    waitlist_repo: WaitlistRepository,
    *,
    today: date,
    now: datetime,
    notice_window: timedelta,
) -> list[WaitlistEntry]:
    """
    Close out entries that can no longer turn into a booking: open entries for a
    day before `today`, and notified entries whose notice is older than
    `notice_window`.
    """
    expired: list[WaitlistEntry] = []
    for entry in await waitlist_repo.list_expirable(today=today, notified_before=now - notice_window):
        expired.append(await waitlist_repo.set_status(entry, WaitlistStatus.EXPIRED))
    return expired
