from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import TimeSlot, VehicleClass


@dataclass(frozen=True)
class Reservation:
    """A stored booking as seen by the conflict engine and the classifier."""

    id: int
    spot_number: int
    date: date
    slot: TimeSlot
    vehicle_class: VehicleClass
    owner_name: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class ReservationCandidate:
    """A proposed booking. `date` may still be an unparsed ISO string."""

    spot_number: int
    date: date | str
    slot: TimeSlot
    vehicle_class: VehicleClass
    owner_name: str
