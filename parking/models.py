from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any, Optional

from sqlalchemy import JSON, Enum, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import BigInteger, Boolean, Date, DateTime, Integer, String

from .domain.entities import Reservation


class Base(DeclarativeBase):
    pass


class TimeSlot(StrEnum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    FULL_DAY = "full"


class VehicleClass(StrEnum):
    CAR = "car"
    MOTORCYCLE = "motorcycle"


class WaitlistStatus(StrEnum):
    WAITING = "waiting"
    NOTIFIED = "notified"
    EXPIRED = "expired"
    FULFILLED = "fulfilled"


class RecurrencePattern(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class HistoryAction(StrEnum):
    CREATED = "created"
    CANCELLED = "cancelled"
    MODIFIED = "modified"


def _enum_column(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("idx_bookings_spot_date", "spot_number", "date"),
        Index("idx_bookings_owner_date", "user_name", "date"),
        Index("idx_bookings_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    spot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    booking_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    duration: Mapped[TimeSlot] = mapped_column(_enum_column(TimeSlot), nullable=False)
    vehicle_type: Mapped[VehicleClass] = mapped_column(_enum_column(VehicleClass), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    def to_reservation(self) -> Reservation:
        return Reservation(
            id=self.id,
            spot_number=self.spot_number,
            date=self.booking_date,
            slot=TimeSlot(self.duration),
            vehicle_class=VehicleClass(self.vehicle_type),
            owner_name=self.user_name,
            created_at=self.created_at,
        )

    def snapshot(self) -> dict[str, Any]:
        """Plain-JSON copy of the booked fields, stored in the booking history."""
        return {
            "spot_number": self.spot_number,
            "date": self.booking_date.isoformat(),
            "duration": TimeSlot(self.duration).value,
            "vehicle_type": VehicleClass(self.vehicle_type).value,
            "user_name": self.user_name,
        }


class WaitlistEntry(Base):
    __tablename__ = "booking_waitlist"
    __table_args__ = (
        UniqueConstraint("user_id", "spot_number", "date", "duration", name="uq_waitlist_user_spot_slot"),
        Index("idx_waitlist_spot_date", "spot_number", "date"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    spot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    booking_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    duration: Mapped[TimeSlot] = mapped_column(_enum_column(TimeSlot), nullable=False)
    vehicle_type: Mapped[VehicleClass] = mapped_column(_enum_column(VehicleClass), nullable=False)
    status: Mapped[WaitlistStatus] = mapped_column(
        _enum_column(WaitlistStatus),
        nullable=False,
        default=WaitlistStatus.WAITING,
    )
    notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class RecurringBooking(Base):
    __tablename__ = "recurring_bookings"
    __table_args__ = (Index("idx_recurring_user", "user_id"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    spot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    vehicle_type: Mapped[VehicleClass] = mapped_column(_enum_column(VehicleClass), nullable=False)
    duration: Mapped[TimeSlot] = mapped_column(_enum_column(TimeSlot), nullable=False)
    pattern: Mapped[RecurrencePattern] = mapped_column(_enum_column(RecurrencePattern), nullable=False)
    # ISO weekdays, comma separated ("1,3,5" = Mon, Wed, Fri)
    days_of_week: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_generated_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    @property
    def weekdays(self) -> tuple[int, ...]:
        return tuple(int(d) for d in self.days_of_week.split(",") if d.strip())


class BookingAudit(Base):
    __tablename__ = "booking_audit"
    __table_args__ = (Index("idx_booking_audit_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    # no foreign key: history outlives the cancelled booking row
    booking_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    action: Mapped[HistoryAction] = mapped_column(_enum_column(HistoryAction), nullable=False)
    old_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    new_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
