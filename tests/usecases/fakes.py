from datetime import date, datetime, timezone
from typing import Any, List, Optional

from parking.domain.entities import Reservation
from parking.models import (
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


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FakeBookingRepo:
    def __init__(self, bookings: Optional[List[Booking]] = None) -> None:
        self.bookings: List[Booking] = list(bookings or [])
        self.deleted: List[Booking] = []
        self._next_id = max((b.id for b in self.bookings), default=0) + 1

    def add(
        self,
        spot_number: int,
        day: date,
        slot: TimeSlot,
        vehicle_class: VehicleClass = VehicleClass.CAR,
        *,
        user_id: int = 1,
        owner_name: str = "Someone",
    ) -> Booking:
        booking = Booking(
            id=self._next_id,
            spot_number=spot_number,
            booking_date=day,
            duration=slot,
            vehicle_type=vehicle_class,
            user_id=user_id,
            user_name=owner_name,
            created_at=utc_now_naive(),
        )
        self._next_id += 1
        self.bookings.append(booking)
        return booking

    async def list_for_spot_date(self, spot_number: int, day: date) -> List[Reservation]:
        return [
            b.to_reservation() for b in self.bookings if b.spot_number == spot_number and b.booking_date == day
        ]

    async def list_for_owner_date(self, owner_name: str, day: date) -> List[Reservation]:
        return [b.to_reservation() for b in self.bookings if b.user_name == owner_name and b.booking_date == day]

    async def list_for_date(self, day: date) -> List[Reservation]:
        return [b.to_reservation() for b in self.bookings if b.booking_date == day]

    async def create(
        self,
        *,
        spot_number: int,
        day: date,
        slot: TimeSlot,
        vehicle_class: VehicleClass,
        user_id: int,
        owner_name: str,
    ) -> Booking:
        return self.add(spot_number, day, slot, vehicle_class, user_id=user_id, owner_name=owner_name)

    async def get_for_user(self, booking_id: int, user_id: int) -> Optional[Booking]:
        for b in self.bookings:
            if b.id == booking_id and b.user_id == user_id:
                return b
        return None

    async def get_for_user_for_update(self, booking_id: int, user_id: int) -> Optional[Booking]:
        return await self.get_for_user(booking_id, user_id)

    async def delete(self, booking: Booking) -> None:
        self.bookings.remove(booking)
        self.deleted.append(booking)

    async def list_by_user(self, user_id: int) -> List[Booking]:
        return [b for b in self.bookings if b.user_id == user_id]

    async def list_for_spot(self, spot_number: int, start: date | None, end: date | None) -> List[Booking]:
        return [
            b
            for b in self.bookings
            if b.spot_number == spot_number
            and (start is None or b.booking_date >= start)
            and (end is None or b.booking_date <= end)
        ]


class FakeWaitlistRepo:
    def __init__(self) -> None:
        self.entries: List[WaitlistEntry] = []
        self._next_id = 1

    async def exists(self, *, user_id: int, spot_number: int, day: date, slot: TimeSlot) -> bool:
        return any(
            e.user_id == user_id and e.spot_number == spot_number and e.booking_date == day and e.duration == slot
            for e in self.entries
        )

    async def create(
        self,
        *,
        user_id: int,
        spot_number: int,
        day: date,
        slot: TimeSlot,
        vehicle_class: VehicleClass,
    ) -> WaitlistEntry:
        entry = WaitlistEntry(
            id=self._next_id,
            user_id=user_id,
            spot_number=spot_number,
            booking_date=day,
            duration=slot,
            vehicle_type=vehicle_class,
            status=WaitlistStatus.WAITING,
            created_at=utc_now_naive(),
        )
        self._next_id += 1
        self.entries.append(entry)
        return entry

    async def list_active_by_user(self, user_id: int) -> List[WaitlistEntry]:
        return [
            e
            for e in self.entries
            if e.user_id == user_id and e.status in (WaitlistStatus.WAITING, WaitlistStatus.NOTIFIED)
        ]

    async def get_for_user(self, entry_id: int, user_id: int) -> Optional[WaitlistEntry]:
        for e in self.entries:
            if e.id == entry_id and e.user_id == user_id:
                return e
        return None

    async def delete(self, entry: WaitlistEntry) -> None:
        self.entries.remove(entry)

    async def list_waiting(self, spot_number: int, day: date) -> List[WaitlistEntry]:
        return [
            e
            for e in self.entries
            if e.spot_number == spot_number and e.booking_date == day and e.status == WaitlistStatus.WAITING
        ]

    async def mark_notified(self, entry: WaitlistEntry, at: datetime) -> WaitlistEntry:
        entry.status = WaitlistStatus.NOTIFIED
        entry.notified_at = at
        return entry

    async def list_active_for_user_spot_date(self, user_id: int, spot_number: int, day: date) -> List[WaitlistEntry]:
        return [
            e
            for e in self.entries
            if e.user_id == user_id
            and e.spot_number == spot_number
            and e.booking_date == day
            and e.status in (WaitlistStatus.WAITING, WaitlistStatus.NOTIFIED)
        ]

    async def list_expirable(self, *, today: date, notified_before: datetime) -> List[WaitlistEntry]:
        return [
            e
            for e in self.entries
            if (e.booking_date < today and e.status in (WaitlistStatus.WAITING, WaitlistStatus.NOTIFIED))
            or (e.status == WaitlistStatus.NOTIFIED and e.notified_at is not None and e.notified_at < notified_before)
        ]

    async def set_status(self, entry: WaitlistEntry, status: WaitlistStatus) -> WaitlistEntry:
        entry.status = status
        return entry


class FakeRecurringRepo:
    def __init__(self) -> None:
        self.items: List[RecurringBooking] = []
        self.saved = 0
        self._next_id = 1

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
    ) -> RecurringBooking:
        now = utc_now_naive()
        recurring = RecurringBooking(
            id=self._next_id,
            user_id=user_id,
            user_name=user_name,
            spot_number=spot_number,
            vehicle_type=vehicle_class,
            duration=slot,
            pattern=pattern,
            days_of_week=",".join(str(d) for d in weekdays),
            start_date=start_date,
            end_date=end_date,
            is_active=True,
            last_generated_date=None,
            created_at=now,
            updated_at=now,
        )
        self._next_id += 1
        self.items.append(recurring)
        return recurring

    async def list_by_user(self, user_id: int) -> List[RecurringBooking]:
        return [r for r in self.items if r.user_id == user_id]

    async def get_for_user(self, recurring_id: int, user_id: int) -> Optional[RecurringBooking]:
        for r in self.items:
            if r.id == recurring_id and r.user_id == user_id:
                return r
        return None

    async def delete(self, recurring: RecurringBooking) -> None:
        self.items.remove(recurring)

    async def save(self, recurring: RecurringBooking) -> RecurringBooking:
        self.saved += 1
        return recurring


class FakeAuditRepo:
    def __init__(self) -> None:
        self.rows: List[BookingAudit] = []

    async def record(
        self,
        *,
        booking_id: int | None,
        user_id: int,
        action: HistoryAction,
        old_data: dict[str, Any] | None,
        new_data: dict[str, Any] | None,
    ) -> BookingAudit:
        row = BookingAudit(
            id=len(self.rows) + 1,
            booking_id=booking_id,
            user_id=user_id,
            action=action,
            old_data=old_data,
            new_data=new_data,
            created_at=utc_now_naive(),
        )
        self.rows.append(row)
        return row

    async def list_for_user(self, user_id: int, limit: int) -> List[BookingAudit]:
        mine = [r for r in self.rows if r.user_id == user_id]
        return sorted(mine, key=lambda r: (r.created_at, r.id), reverse=True)[:limit]
