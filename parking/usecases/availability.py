from collections import defaultdict
from datetime import date
from typing import Iterable

from ..domain.availability import SpotAvailability, summarize
from ..domain.entities import Reservation
from ..domain.repositories import BookingRepository
from ..domain.services import MAX_MOTORCYCLES, VALID_SPOT_NUMBERS


async def list_availability(
    booking_repo: BookingRepository,
    *,
    day: date,
    spot_numbers: Iterable[int] = VALID_SPOT_NUMBERS,
    max_motorcycles: int = MAX_MOTORCYCLES,
) -> list[SpotAvailability]:
    by_spot: dict[int, list[Reservation]] = defaultdict(list)
    for reservation in await booking_repo.list_for_date(day):
        by_spot[reservation.spot_number].append(reservation)
    return [
        summarize(spot, day, by_spot[spot], max_motorcycles=max_motorcycles)
        for spot in sorted(spot_numbers)
    ]
