from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.availability import SpotAvailability
from .domain.entities import ReservationCandidate
from .domain.recurrence import format_days_of_week
from .domain.services import ConflictReason
from .models import (
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
from .utils.time import local_today


def _ser_utc(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


class BookingCreate(BaseModel):
    spot_number: int
    # kept as a string so an unparseable date is reported as a booking rejection
    date: str
    duration: TimeSlot
    vehicle_type: VehicleClass
    # The owner identity used by the one-booking-per-day rule. It is supplied by
    # the client and not derived from X-User-Id, so the rule holds per name.
    user_name: str = Field(min_length=1, max_length=255)

    def to_candidate(self) -> ReservationCandidate:
        return ReservationCandidate(
            spot_number=self.spot_number,
            date=self.date,
            slot=self.duration,
            vehicle_class=self.vehicle_type,
            owner_name=self.user_name.strip(),
        )


class BookingRead(BaseModel):
    booking_id: int
    spot_number: int
    date: date
    duration: TimeSlot
    vehicle_type: VehicleClass
    user_id: int
    user_name: str
    created_at: datetime
    lead_time_days: int

    @field_serializer("created_at")
    def _ser_datetime(self, dt: datetime) -> Optional[str]:
        return _ser_utc(dt)

    @classmethod
    def from_db(cls, *, booking: Booking, tz_name: str = "UTC") -> "BookingRead":
        """`tz_name` is the zone booking dates live in; `created_at` is stored as naive UTC."""
        return cls(
            booking_id=booking.id,
            spot_number=booking.spot_number,
            date=booking.booking_date,
            duration=booking.duration,
            vehicle_type=booking.vehicle_type,
            user_id=booking.user_id,
            user_name=booking.user_name,
            created_at=booking.created_at,
            lead_time_days=(booking.booking_date - local_today(tz_name, now=booking.created_at)).days,
        )


class SpotAvailabilityRead(BaseModel):
    spot_number: int
    date: date
    status: str
    car_count: int
    motorcycle_count: int
    free_car_slots: List[TimeSlot]

    @classmethod
    def from_domain(cls, summary: SpotAvailability) -> "SpotAvailabilityRead":
        return cls(
            spot_number=summary.spot_number,
            date=summary.date,
            status=summary.status.value,
            car_count=summary.car_count,
            motorcycle_count=summary.motorcycle_count,
            free_car_slots=list(summary.free_car_slots),
        )


class WaitlistJoin(BaseModel):
    spot_number: int
    date: date
    duration: TimeSlot
    vehicle_type: VehicleClass


class WaitlistRead(BaseModel):
    entry_id: int
    spot_number: int
    date: date
    duration: TimeSlot
    vehicle_type: VehicleClass
    status: WaitlistStatus
    notified_at: Optional[datetime]

    @field_serializer("notified_at")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _ser_utc(dt)

    @classmethod
    def from_db(cls, *, entry: WaitlistEntry) -> "WaitlistRead":
        return cls(
            entry_id=entry.id,
            spot_number=entry.spot_number,
            date=entry.booking_date,
            duration=entry.duration,
            vehicle_type=entry.vehicle_type,
            status=entry.status,
            notified_at=entry.notified_at,
        )


class RecurringBookingCreate(BaseModel):
    spot_number: int
    vehicle_type: VehicleClass
    duration: TimeSlot
    pattern: RecurrencePattern
    days_of_week: List[int] = Field(default_factory=list)
    start_date: date
    end_date: Optional[date] = None
    user_name: str = Field(min_length=1, max_length=255)


class RecurringActiveUpdate(BaseModel):
    is_active: bool


class RecurringBookingRead(BaseModel):
    recurring_id: int
    spot_number: int
    vehicle_type: VehicleClass
    duration: TimeSlot
    pattern: RecurrencePattern
    days_of_week: List[int]
    days_label: str
    start_date: date
    end_date: Optional[date]
    is_active: bool
    last_generated_date: Optional[date]

    @classmethod
    def from_db(cls, *, recurring: RecurringBooking) -> "RecurringBookingRead":
        return cls(
            recurring_id=recurring.id,
            spot_number=recurring.spot_number,
            vehicle_type=recurring.vehicle_type,
            duration=recurring.duration,
            pattern=recurring.pattern,
            days_of_week=list(recurring.weekdays),
            days_label=format_days_of_week(recurring.weekdays),
            start_date=recurring.start_date,
            end_date=recurring.end_date,
            is_active=recurring.is_active,
            last_generated_date=recurring.last_generated_date,
        )


class SkippedDate(BaseModel):
    date: date
    reason: ConflictReason
    message: str


class GenerationReportRead(BaseModel):
    created: List[BookingRead]
    skipped: List[SkippedDate]


class BookingHistoryRead(BaseModel):
    history_id: int
    booking_id: Optional[int]
    action: HistoryAction
    old_data: Optional[Dict[str, Any]]
    new_data: Optional[Dict[str, Any]]
    created_at: datetime

    @field_serializer("created_at")
    def _ser_datetime(self, dt: datetime) -> Optional[str]:
        return _ser_utc(dt)

    @classmethod
    def from_db(cls, *, entry: BookingAudit) -> "BookingHistoryRead":
        return cls(
            history_id=entry.id,
            booking_id=entry.booking_id,
            action=entry.action,
            old_data=entry.old_data,
            new_data=entry.new_data,
            created_at=entry.created_at,
        )


class WaitlistExpiryRead(BaseModel):
    expired: int
