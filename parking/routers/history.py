from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_user_id, get_session
from ..domain.errors import InputError
from ..infrastructure.repositories import SqlAlchemyBookingAuditRepository
from ..schemas import BookingHistoryRead
from ..usecases import history as history_usecase

router = APIRouter(prefix="", tags=["history"])


@router.get("/me/booking-history", response_model=List[BookingHistoryRead])
async def list_my_booking_history(
    limit: int = Query(default=50),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> list[BookingHistoryRead]:
    audit_repo = SqlAlchemyBookingAuditRepository(session)
    try:
        rows = await history_usecase.list_booking_history(audit_repo, user_id=user_id, limit=limit)
    except InputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return [BookingHistoryRead.from_db(entry=entry) for entry in rows]
