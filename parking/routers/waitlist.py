from datetime import date, timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..deps import get_current_user_id, get_session, get_today
from ..domain.errors import DuplicateWaitlistError, InputError, WaitlistEntryNotFoundError
from ..infrastructure.repositories import SqlAlchemyWaitlistRepository
from ..schemas import WaitlistExpiryRead, WaitlistJoin, WaitlistRead
from ..usecases import waitlist as waitlist_usecase
from ..utils.audit_log import emit_audit_log_or_500
from ..utils.time import utc_now_naive

router = APIRouter(prefix="", tags=["waitlist"])

_DUPLICATE_DETAIL = "already on the waitlist for this spot and time"


@router.post("/waitlist", response_model=WaitlistRead, status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    payload: WaitlistJoin,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    today: date = Depends(get_today),
) -> WaitlistRead:
    waitlist_repo = SqlAlchemyWaitlistRepository(session)
    async with session.begin():
        try:
            entry = await waitlist_usecase.join_waitlist(
                waitlist_repo,
                user_id=user_id,
                spot_number=payload.spot_number,
                day=payload.date,
                slot=payload.duration,
                vehicle_class=payload.vehicle_type,
                today=today,
                spot_numbers=settings.spot_numbers,
            )
        except InputError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
        except (DuplicateWaitlistError, IntegrityError):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_DUPLICATE_DETAIL)

        emit_audit_log_or_500(
            action="waitlist.joined",
            initiator="user",
            booking_id=None,
            spot_number=entry.spot_number,
            booking_date=entry.booking_date,
            slot=entry.duration,
            vehicle_class=entry.vehicle_type,
            user_id=user_id,
            extra={"waitlist_entry_id": entry.id},
        )

    return WaitlistRead.from_db(entry=entry)


@router.post("/waitlist/expire", response_model=WaitlistExpiryRead)
async def expire_waitlist(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    today: date = Depends(get_today),
) -> WaitlistExpiryRead:
    waitlist_repo = SqlAlchemyWaitlistRepository(session)
    async with session.begin():
        expired = await waitlist_usecase.expire_waitlist_entries(
            waitlist_repo,
            today=today,
            now=utc_now_naive(),
            notice_window=timedelta(hours=settings.waitlist_notice_hours),
        )
        for entry in expired:
            emit_audit_log_or_500(
                action="waitlist.expired",
                initiator="system",
                booking_id=None,
                spot_number=entry.spot_number,
                booking_date=entry.booking_date,
                slot=entry.duration,
                vehicle_class=entry.vehicle_type,
                user_id=entry.user_id,
                extra={"waitlist_entry_id": entry.id},
            )
    return WaitlistExpiryRead(expired=len(expired))


@router.get("/me/waitlist", response_model=List[WaitlistRead])
async def list_my_waitlist(
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> list[WaitlistRead]:
    waitlist_repo = SqlAlchemyWaitlistRepository(session)
    entries = await waitlist_usecase.list_user_waitlist(waitlist_repo, user_id=user_id)
    return [WaitlistRead.from_db(entry=entry) for entry in entries]


@router.delete("/me/waitlist/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_waitlist(
    entry_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> None:
    waitlist_repo = SqlAlchemyWaitlistRepository(session)
    async with session.begin():
        try:
            await waitlist_usecase.leave_waitlist(waitlist_repo, entry_id=entry_id, user_id=user_id)
        except WaitlistEntryNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="waitlist entry not found")
