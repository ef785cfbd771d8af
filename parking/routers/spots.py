from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_session, get_today
from ..domain.errors import InputError
from ..infrastructure.repositories import SqlAlchemyBookingRepository
from ..schemas import BookingRead, SpotAvailabilityRead
from ..usecases import availability as availability_usecase
from ..usecases import bookings as booking_usecase

router = APIRouter(prefix="/spots", tags=["spots"])


@router.get("/availability", response_model=List[SpotAvailabilityRead])
async def list_availability(
    day: Optional[date] = Query(default=None, alias="date", description="Defaults to today"),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    today: date = Depends(get_today),
) -> list[SpotAvailabilityRead]:
    booking_repo = SqlAlchemyBookingRepository(session)
    summaries = await availability_usecase.list_availability(
        booking_repo,
        day=day or today,
        spot_numbers=settings.spot_numbers,
        max_motorcycles=settings.max_motorcycles,
    )
    return [SpotAvailabilityRead.from_domain(summary) for summary in summaries]


@router.get("/{spot_number}/bookings", response_model=List[BookingRead])
async def list_spot_bookings(
    spot_number: int,
    start: Optional[date] = Query(default=None),
    end: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> list[BookingRead]:
    booking_repo = SqlAlchemyBookingRepository(session)
    try:
        rows = await booking_usecase.list_spot_bookings(
            booking_repo,
            spot_number=spot_number,
            start=start,
            end=end,
            spot_numbers=settings.spot_numbers,
        )
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return [BookingRead.from_db(booking=booking, tz_name=settings.timezone) for booking in rows]
