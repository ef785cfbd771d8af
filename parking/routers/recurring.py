from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_current_user_id, get_session, get_today
from ..domain.errors import InputError, RecurringBookingNotFoundError
from ..infrastructure.repositories import (
    SqlAlchemyBookingAuditRepository,
    SqlAlchemyBookingRepository,
    SqlAlchemyRecurringBookingRepository,
    SqlAlchemyWaitlistRepository,
)
from ..schemas import (
    BookingRead,
    GenerationReportRead,
    RecurringActiveUpdate,
    RecurringBookingCreate,
    RecurringBookingRead,
    SkippedDate,
)
from ..usecases import recurring as recurring_usecase

router = APIRouter(prefix="", tags=["recurring-bookings"])

_NOT_FOUND = "recurring booking not found"


@router.post("/recurring-bookings", response_model=RecurringBookingRead, status_code=status.HTTP_201_CREATED)
async def create_recurring_booking(
    payload: RecurringBookingCreate,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> RecurringBookingRead:
    recurring_repo = SqlAlchemyRecurringBookingRepository(session)
    async with session.begin():
        try:
            recurring = await recurring_usecase.create_recurring_booking(
                recurring_repo,
                user_id=user_id,
                user_name=payload.user_name.strip(),
                spot_number=payload.spot_number,
                vehicle_class=payload.vehicle_type,
                slot=payload.duration,
                pattern=payload.pattern,
                weekdays=tuple(payload.days_of_week),
                start_date=payload.start_date,
                end_date=payload.end_date,
                spot_numbers=settings.spot_numbers,
            )
        except InputError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return RecurringBookingRead.from_db(recurring=recurring)


@router.get("/me/recurring-bookings", response_model=List[RecurringBookingRead])
async def list_my_recurring_bookings(
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> list[RecurringBookingRead]:
    recurring_repo = SqlAlchemyRecurringBookingRepository(session)
    rows = await recurring_usecase.list_user_recurring_bookings(recurring_repo, user_id=user_id)
    return [RecurringBookingRead.from_db(recurring=recurring) for recurring in rows]


@router.delete("/me/recurring-bookings/{recurring_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recurring_booking(
    recurring_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> None:
    recurring_repo = SqlAlchemyRecurringBookingRepository(session)
    async with session.begin():
        try:
            await recurring_usecase.delete_recurring_booking(
                recurring_repo,
                recurring_id=recurring_id,
                user_id=user_id,
            )
        except RecurringBookingNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)


@router.post("/me/recurring-bookings/{recurring_id}/active", response_model=RecurringBookingRead)
async def set_recurring_active(
    payload: RecurringActiveUpdate,
    recurring_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> RecurringBookingRead:
    recurring_repo = SqlAlchemyRecurringBookingRepository(session)
    async with session.begin():
        try:
            recurring = await recurring_usecase.set_recurring_active(
                recurring_repo,
                recurring_id=recurring_id,
                user_id=user_id,
                is_active=payload.is_active,
            )
        except RecurringBookingNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return RecurringBookingRead.from_db(recurring=recurring)


@router.post("/me/recurring-bookings/{recurring_id}/generate", response_model=GenerationReportRead)
async def generate_recurring_bookings(
    recurring_id: int = Path(..., ge=1),
    until: date = Query(..., description="Last date to generate bookings for (inclusive)"),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    today: date = Depends(get_today),
) -> GenerationReportRead:
    recurring_repo = SqlAlchemyRecurringBookingRepository(session)
    booking_repo = SqlAlchemyBookingRepository(session)
    waitlist_repo = SqlAlchemyWaitlistRepository(session)
    audit_repo = SqlAlchemyBookingAuditRepository(session)
    async with session.begin():
        try:
            report = await recurring_usecase.generate_recurring_bookings(
                recurring_repo,
                booking_repo,
                recurring_id=recurring_id,
                user_id=user_id,
                until=until,
                today=today,
                spot_numbers=settings.spot_numbers,
                max_motorcycles=settings.max_motorcycles,
                days_ahead=settings.recurring_days_ahead,
                waitlist_repo=waitlist_repo,
                audit_repo=audit_repo,
            )
        except InputError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        except RecurringBookingNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND)
    return GenerationReportRead(
        created=[BookingRead.from_db(booking=booking, tz_name=settings.timezone) for booking in report.created],
        skipped=[SkippedDate(date=day, reason=reason, message=reason.message) for day, reason in report.skipped],
    )
