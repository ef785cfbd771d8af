from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.entities import Reservation
from ..domain.repositories import (
    BookingAuditRepository,
    BookingRepository,
    RecurringBookingRepository,
    WaitlistRepository,
)
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
from ..utils.time import utc_now_naive


class SqlAlchemyBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _reservations(self, stmt: Select) -> List[Reservation]:
        rows = await self.session.scalars(stmt)
        return [booking.to_reservation() for booking in rows.all()]

    async def list_for_spot_date(self, spot_number: int, day: date) -> List[Reservation]:
        stmt = select(Booking).where(Booking.spot_number == spot_number, Booking.booking_date == day)
        return await self._reservations(stmt)

    async def list_for_owner_date(self, owner_name: str, day: date) -> List[Reservation]:
        stmt = select(Booking).where(Booking.user_name == owner_name, Booking.booking_date == day)
        return await self._reservations(stmt)

    async def list_for_date(self, day: date) -> List[Reservation]:
        stmt = select(Booking).where(Booking.booking_date == day).order_by(Booking.spot_number, Booking.id)
        return await self._reservations(stmt)

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
        booking = Booking(
            spot_number=spot_number,
            booking_date=day,
            duration=slot,
            vehicle_type=vehicle_class,
            user_id=user_id,
            user_name=owner_name,
            created_at=utc_now_naive(),
        )
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_for_user(self, booking_id: int, user_id: int) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id)
        return await self.session.scalar(stmt)

    async def get_for_user_for_update(self, booking_id: int, user_id: int) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id).with_for_update()
        return await self.session.scalar(stmt)

    async def delete(self, booking: Booking) -> None:
        await self.session.delete(booking)
        await self.session.flush()

    async def list_by_user(self, user_id: int) -> List[Booking]:
        stmt = select(Booking).where(Booking.user_id == user_id).order_by(Booking.booking_date, Booking.id)
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_for_spot(self, spot_number: int, start: date | None, end: date | None) -> List[Booking]:
        stmt = select(Booking).where(Booking.spot_number == spot_number)
        if start is not None:
            stmt = stmt.where(Booking.booking_date >= start)
        if end is not None:
            stmt = stmt.where(Booking.booking_date <= end)
        rows = await self.session.scalars(stmt.order_by(Booking.booking_date, Booking.id))
        return list(rows.all())


class SqlAlchemyWaitlistRepository(WaitlistRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def exists(self, *, user_id: int, spot_number: int, day: date, slot: TimeSlot) -> bool:
        stmt = select(WaitlistEntry.id).where(
            WaitlistEntry.user_id == user_id,
            WaitlistEntry.spot_number == spot_number,
            WaitlistEntry.booking_date == day,
            WaitlistEntry.duration == slot,
        )
        return await self.session.scalar(stmt) is not None

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
            user_id=user_id,
            spot_number=spot_number,
            booking_date=day,
            duration=slot,
            vehicle_type=vehicle_class,
            status=WaitlistStatus.WAITING,
            created_at=utc_now_naive(),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_active_by_user(self, user_id: int) -> List[WaitlistEntry]:
        stmt = (
            select(WaitlistEntry)
            .where(
                WaitlistEntry.user_id == user_id,
                WaitlistEntry.status.in_([WaitlistStatus.WAITING, WaitlistStatus.NOTIFIED]),
            )
            .order_by(WaitlistEntry.booking_date)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def get_for_user(self, entry_id: int, user_id: int) -> Optional[WaitlistEntry]:
        stmt = select(WaitlistEntry).where(WaitlistEntry.id == entry_id, WaitlistEntry.user_id == user_id)
        return await self.session.scalar(stmt)

    async def delete(self, entry: WaitlistEntry) -> None:
        await self.session.delete(entry)
        await self.session.flush()

    async def list_waiting(self, spot_number: int, day: date) -> List[WaitlistEntry]:
        stmt = (
            select(WaitlistEntry)
            .where(
                WaitlistEntry.spot_number == spot_number,
                WaitlistEntry.booking_date == day,
                WaitlistEntry.status == WaitlistStatus.WAITING,
            )
            .order_by(WaitlistEntry.created_at, WaitlistEntry.id)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def mark_notified(self, entry: WaitlistEntry, at: datetime) -> WaitlistEntry:
        entry.status = WaitlistStatus.NOTIFIED
        entry.notified_at = at
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_active_for_user_spot_date(self, user_id: int, spot_number: int, day: date) -> List[WaitlistEntry]:
        stmt = select(WaitlistEntry).where(
            WaitlistEntry.user_id == user_id,
            WaitlistEntry.spot_number == spot_number,
            WaitlistEntry.booking_date == day,
            WaitlistEntry.status.in_([WaitlistStatus.WAITING, WaitlistStatus.NOTIFIED]),
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_expirable(self, *, today: date, notified_before: datetime) -> List[WaitlistEntry]:
        stmt = (
            select(WaitlistEntry)
            .where(
                or_(
                    and_(
                        WaitlistEntry.booking_date < today,
                        WaitlistEntry.status.in_([WaitlistStatus.WAITING, WaitlistStatus.NOTIFIED]),
                    ),
                    and_(
                        WaitlistEntry.status == WaitlistStatus.NOTIFIED,
                        WaitlistEntry.notified_at < notified_before,
                    ),
                )
            )
            .order_by(WaitlistEntry.id)
            .with_for_update()
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def set_status(self, entry: WaitlistEntry, status: WaitlistStatus) -> WaitlistEntry:
        entry.status = status
        self.session.add(entry)
        await self.session.flush()
        return entry


class SqlAlchemyRecurringBookingRepository(RecurringBookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

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
            created_at=now,
            updated_at=now,
        )
        self.session.add(recurring)
        await self.session.flush()
        return recurring

    async def list_by_user(self, user_id: int) -> List[RecurringBooking]:
        stmt = (
            select(RecurringBooking)
            .where(RecurringBooking.user_id == user_id)
            .order_by(RecurringBooking.created_at.desc())
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def get_for_user(self, recurring_id: int, user_id: int) -> Optional[RecurringBooking]:
        stmt = select(RecurringBooking).where(
            RecurringBooking.id == recurring_id,
            RecurringBooking.user_id == user_id,
        )
        return await self.session.scalar(stmt)

    async def delete(self, recurring: RecurringBooking) -> None:
        await self.session.delete(recurring)
        await self.session.flush()

    async def save(self, recurring: RecurringBooking) -> RecurringBooking:
        recurring.updated_at = utc_now_naive()
        self.session.add(recurring)
        await self.session.flush()
        return recurring


class SqlAlchemyBookingAuditRepository(BookingAuditRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

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
            booking_id=booking_id,
            user_id=user_id,
            action=action,
            old_data=old_data,
            new_data=new_data,
            created_at=utc_now_naive(),
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_for_user(self, user_id: int, limit: int) -> List[BookingAudit]:
        stmt = (
            select(BookingAudit)
            .where(BookingAudit.user_id == user_id)
            .order_by(BookingAudit.created_at.desc(), BookingAudit.id.desc())
            .limit(limit)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())
