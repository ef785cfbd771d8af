from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Sequence

from ..models import TimeSlot, VehicleClass
from .entities import Reservation
from .services import MAX_MOTORCYCLES, overlaps


class SpotStatus(StrEnum):
    AVAILABLE = "available"
    PARTIAL = "partial"
    FULL = "full"


@dataclass(frozen=True)
class SpotAvailability:
    spot_number: int
    date: date
    status: SpotStatus
    car_count: int
    motorcycle_count: int
    free_car_slots: tuple[TimeSlot, ...]


def classify(existing: Sequence[Reservation], *, max_motorcycles: int = MAX_MOTORCYCLES) -> SpotStatus:
    """
    Coarse daily status of one spot, for display only.

    Motorcycles are counted per day rather than per overlapping window, so a
    spot reported as PARTIAL can still reject a particular booking. Admission
    is decided by `services.evaluate` alone.
    """
    if not existing:
        return SpotStatus.AVAILABLE

    car_slots = {r.slot for r in existing if r.vehicle_class == VehicleClass.CAR}
    cars_full = TimeSlot.FULL_DAY in car_slots or {TimeSlot.MORNING, TimeSlot.AFTERNOON} <= car_slots
    if cars_full:
        return SpotStatus.FULL

    motorcycles = sum(1 for r in existing if r.vehicle_class == VehicleClass.MOTORCYCLE)
    if motorcycles >= max_motorcycles:
        # saturated for motorcycles, a car may still fit a free window
        return SpotStatus.PARTIAL
    return SpotStatus.PARTIAL


def summarize(
    spot_number: int,
    day: date,
    existing: Sequence[Reservation],
    *,
    max_motorcycles: int = MAX_MOTORCYCLES,
) -> SpotAvailability:
    free = tuple(slot for slot in TimeSlot if not any(overlaps(slot, r.slot) for r in existing))
    return SpotAvailability(
        spot_number=spot_number,
        date=day,
        status=classify(existing, max_motorcycles=max_motorcycles),
        car_count=sum(1 for r in existing if r.vehicle_class == VehicleClass.CAR),
        motorcycle_count=sum(1 for r in existing if r.vehicle_class == VehicleClass.MOTORCYCLE),
        free_car_slots=free,
    )
