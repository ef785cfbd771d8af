from __future__ import annotations

from datetime import date, datetime
from typing import Any, Protocol

from ..models import (
    Booking,
    BookingAudit,
    HistoryAction,
    RecurrencePattern,
    RecurringBooking,
    TimeSlot,
    VehicleClass,
    WaitlistEntry,
    WaitlistStatus,
)
from .entities import Reservation


class BookingRepository(Protocol):
    async def list_for_spot_date(self, spot_number: int, day: date) -> list[Reservation]: ...

    async def list_for_owner_date(self, owner_name: str, day: date) -> list[Reservation]: ...

    async def list_for_date(self, day: date) -> list[Reservation]: ...

    async def create(
        self,
        *,
        spot_number: int,
        day: date,
        slot: TimeSlot,
        vehicle_class: VehicleClass,
        user_id: int,
        owner_name: str,
    ) -> Booking: ...

    async def get_for_user(self, booking_id: int, user_id: int) -> Booking | None: ...

    async def get_for_user_for_update(self, booking_id: int, user_id: int) -> Booking | None: ...

    async def delete(self, booking: Booking) -> None: ...

    async def list_by_user(self, user_id: int) -> list[Booking]: ...

    async def list_for_spot(self, spot_number: int, start: date | None, end: date | None) -> list[Booking]: ...


class WaitlistRepository(Protocol):
    async def exists(self, *, user_id: int, spot_number: int, day: date, slot: TimeSlot) -> bool: ...

    async def create(
        self,
        *,
        user_id: int,
        spot_number: int,
        day: date,
        slot: TimeSlot,
        vehicle_class: VehicleClass,
    ) -> WaitlistEntry: ...

    async def list_active_by_user(self, user_id: int) -> list[WaitlistEntry]: ...

    async def get_for_user(self, entry_id: int, user_id: int) -> WaitlistEntry | None: ...

    async def delete(self, entry: WaitlistEntry) -> None: ...

    async def list_waiting(self, spot_number: int, day: date) -> list[WaitlistEntry]: ...

    async def mark_notified(self, entry: WaitlistEntry, at: datetime) -> WaitlistEntry: ...

    async def list_active_for_user_spot_date(self, user_id: int, spot_number: int, day: date) -> list[WaitlistEntry]: ...

    async def list_expirable(self, *, today: date, notified_before: datetime) -> list[WaitlistEntry]: ...

    async def set_status(self, entry: WaitlistEntry, status: WaitlistStatus) -> WaitlistEntry: ...


class RecurringBookingRepository(Protocol):
    async def create(
        self,
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
    ) -> RecurringBooking: ...

    async def list_by_user(self, user_id: int) -> list[RecurringBooking]: ...

    async def get_for_user(self, recurring_id: int, user_id: int) -> RecurringBooking | None: ...

    async def delete(self, recurring: RecurringBooking) -> None: ...

    async def save(self, recurring: RecurringBooking) -> RecurringBooking: ...


class BookingAuditRepository(Protocol):
    async def record(
        self,
        *,
        booking_id: int | None,
        user_id: int,
        action: HistoryAction,
        old_data: dict[str, Any] | None,
        new_data: dict[str, Any] | None,
    ) -> BookingAudit: ...

    async def list_for_user(self, user_id: int, limit: int) -> list[BookingAudit]: ...
