from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_current_user_id, get_session, get_today
from ..domain.errors import BookingNotFoundError, BookingRejectedError, InputError
from ..domain.services import ConflictReason
from ..infrastructure.repositories import (
    SqlAlchemyBookingAuditRepository,
    SqlAlchemyBookingRepository,
    SqlAlchemyWaitlistRepository,
)
from ..schemas import BookingCreate, BookingRead
from ..usecases import bookings as booking_usecase
from ..utils.audit_log import emit_audit_log_or_500

router = APIRouter(prefix="", tags=["bookings"])

_REJECTION_STATUS = {
    ConflictReason.INVALID_RESOURCE: status.HTTP_404_NOT_FOUND,
    ConflictReason.INVALID_DATE: status.HTTP_400_BAD_REQUEST,
    ConflictReason.PAST_DATE: status.HTTP_400_BAD_REQUEST,
    ConflictReason.DUPLICATE_OWNER_FOR_DATE: status.HTTP_409_CONFLICT,
    ConflictReason.CAR_SLOT_CONFLICT: status.HTTP_409_CONFLICT,
    ConflictReason.CAR_PRESENT_CONFLICT: status.HTTP_409_CONFLICT,
    ConflictReason.MOTORCYCLE_CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
}


def rejection_http_error(reason: ConflictReason) -> HTTPException:
    return HTTPException(
        status_code=_REJECTION_STATUS[reason],
        detail={"reason": reason.value, "message": reason.message},
    )


@router.post("/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    today: date = Depends(get_today),
) -> BookingRead:
    booking_repo = SqlAlchemyBookingRepository(session)
    waitlist_repo = SqlAlchemyWaitlistRepository(session)
    audit_repo = SqlAlchemyBookingAuditRepository(session)
    candidate = payload.to_candidate()
    async with session.begin():
        try:
            booking = await booking_usecase.create_booking(
                booking_repo,
                candidate=candidate,
                user_id=user_id,
                today=today,
                spot_numbers=settings.spot_numbers,
                max_motorcycles=settings.max_motorcycles,
                waitlist_repo=waitlist_repo,
                audit_repo=audit_repo,
            )
        except InputError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        except BookingRejectedError as exc:
            emit_audit_log_or_500(
                action="booking.rejected",
                initiator="user",
                booking_id=None,
                spot_number=candidate.spot_number,
                booking_date=candidate.date,
                slot=candidate.slot,
                vehicle_class=candidate.vehicle_class,
                user_id=user_id,
                owner_name=candidate.owner_name,
                reason=exc.reason,
            )
            raise rejection_http_error(exc.reason)
        except IntegrityError:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This booking already exists or conflicts with another booking",
            )

        emit_audit_log_or_500(
            action="booking.created",
            initiator="user",
            booking_id=booking.id,
            spot_number=booking.spot_number,
            booking_date=booking.booking_date,
            slot=booking.duration,
            vehicle_class=booking.vehicle_type,
            user_id=user_id,
            owner_name=booking.user_name,
        )

    return BookingRead.from_db(booking=booking, tz_name=settings.timezone)


@router.get("/me/bookings", response_model=List[BookingRead])
async def list_my_bookings(
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> list[BookingRead]:
    booking_repo = SqlAlchemyBookingRepository(session)
    rows = await booking_usecase.list_user_bookings(booking_repo, user_id=user_id)
    return [BookingRead.from_db(booking=booking, tz_name=settings.timezone) for booking in rows]


@router.get("/me/bookings/{booking_id}", response_model=BookingRead)
async def get_my_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> BookingRead:
    booking_repo = SqlAlchemyBookingRepository(session)
    booking = await booking_usecase.get_user_booking(booking_repo, booking_id=booking_id, user_id=user_id)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    return BookingRead.from_db(booking=booking, tz_name=settings.timezone)


@router.post("/me/bookings/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> BookingRead:
    booking_repo = SqlAlchemyBookingRepository(session)
    waitlist_repo = SqlAlchemyWaitlistRepository(session)
    audit_repo = SqlAlchemyBookingAuditRepository(session)
    async with session.begin():
        try:
            cancelled, notified = await booking_usecase.cancel_booking(
                booking_repo,
                waitlist_repo,
                booking_id=booking_id,
                user_id=user_id,
                audit_repo=audit_repo,
            )
        except BookingNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")

        emit_audit_log_or_500(
            action="booking.cancelled",
            initiator="user",
            booking_id=cancelled.id,
            spot_number=cancelled.spot_number,
            booking_date=cancelled.booking_date,
            slot=cancelled.duration,
            vehicle_class=cancelled.vehicle_type,
            user_id=user_id,
            owner_name=cancelled.user_name,
        )
        for entry in notified:
            emit_audit_log_or_500(
                action="waitlist.notified",
                initiator="system",
                booking_id=None,
                spot_number=entry.spot_number,
                booking_date=entry.booking_date,
                slot=entry.duration,
                vehicle_class=entry.vehicle_type,
                user_id=entry.user_id,
                extra={"waitlist_entry_id": entry.id, "freed_by_booking_id": cancelled.id},
            )

    return BookingRead.from_db(booking=cancelled, tz_name=settings.timezone)
