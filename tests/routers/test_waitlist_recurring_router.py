from datetime import date, datetime
from typing import Any, cast

import pytest
from fastapi import HTTPException
from parking.config import Settings
from parking.domain.errors import DuplicateWaitlistError, InputError, RecurringBookingNotFoundError
from parking.domain.services import ConflictReason
from parking.models import Booking, TimeSlot, VehicleClass, WaitlistEntry, WaitlistStatus
from parking.routers import recurring as recurring_router
from parking.routers import waitlist as waitlist_router
from parking.schemas import WaitlistJoin
from parking.usecases.recurring import GenerationReport
from parking.utils import audit_log
from sqlalchemy.ext.asyncio import AsyncSession

TODAY = date(2026, 3, 2)


class DummySession:
    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> "DummySession":
        return self


@pytest.mark.asyncio
async def test_join_waitlist_duplicate_returns_409(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_join(*args: object, **kwargs: object) -> None:
        raise DuplicateWaitlistError("dup")

    monkeypatch.setattr(waitlist_router, "SqlAlchemyWaitlistRepository", lambda s: s)
    monkeypatch.setattr(waitlist_router.waitlist_usecase, "join_waitlist", fake_join)

    payload = WaitlistJoin(spot_number=84, date=date(2026, 3, 3), duration=TimeSlot.MORNING, vehicle_type=VehicleClass.CAR)
    with pytest.raises(HTTPException) as excinfo:
        await waitlist_router.join_waitlist(
            payload=payload,
            session=cast(AsyncSession, DummySession()),
            user_id=1,
            settings=Settings(),
            today=TODAY,
        )
    assert excinfo.value.status_code == 409


@pytest.mark.asyncio
async def test_generate_returns_created_and_skipped(monkeypatch: pytest.MonkeyPatch) -> None:
    booking = Booking(
        id=9,
        spot_number=84,
        booking_date=date(2026, 3, 2),
        duration=TimeSlot.FULL_DAY,
        vehicle_type=VehicleClass.CAR,
        user_id=1,
        user_name="Alice",
        created_at=datetime(2026, 3, 1, 12, 0),
    )
    seen: dict[str, Any] = {}

    async def fake_generate(*args: object, **kwargs: Any) -> GenerationReport:
        seen.update(kwargs)
        return GenerationReport(created=[booking], skipped=[(date(2026, 3, 4), ConflictReason.CAR_SLOT_CONFLICT)])

    monkeypatch.setattr(recurring_router, "SqlAlchemyRecurringBookingRepository", lambda s: s)
    monkeypatch.setattr(recurring_router, "SqlAlchemyBookingRepository", lambda s: s)
    monkeypatch.setattr(recurring_router.recurring_usecase, "generate_recurring_bookings", fake_generate)

    result = await recurring_router.generate_recurring_bookings(
        recurring_id=3,
        until=date(2026, 3, 9),
        session=cast(AsyncSession, DummySession()),
        user_id=1,
        settings=Settings(),
        today=TODAY,
    )

    assert seen["recurring_id"] == 3 and seen["today"] == TODAY
    assert seen["days_ahead"] == 30
    assert [b.booking_id for b in result.created] == [9]
    assert result.skipped[0].reason == ConflictReason.CAR_SLOT_CONFLICT
    assert result.skipped[0].message == ConflictReason.CAR_SLOT_CONFLICT.message


@pytest.mark.asyncio
async def test_delete_unknown_recurring_returns_404(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_delete(*args: object, **kwargs: object) -> None:
        raise RecurringBookingNotFoundError("missing")

    monkeypatch.setattr(recurring_router, "SqlAlchemyRecurringBookingRepository", lambda s: s)
    monkeypatch.setattr(recurring_router.recurring_usecase, "delete_recurring_booking", fake_delete)

    with pytest.raises(HTTPException) as excinfo:
        await recurring_router.delete_recurring_booking(
            recurring_id=3,
            session=cast(AsyncSession, DummySession()),
            user_id=1,
        )
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_generate_beyond_horizon_returns_400(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_generate(*args: object, **kwargs: object) -> GenerationReport:
        raise InputError("until must not be later than 2026-04-01 (30 days ahead)")

    monkeypatch.setattr(recurring_router, "SqlAlchemyRecurringBookingRepository", lambda s: s)
    monkeypatch.setattr(recurring_router, "SqlAlchemyBookingRepository", lambda s: s)
    monkeypatch.setattr(recurring_router.recurring_usecase, "generate_recurring_bookings", fake_generate)

    with pytest.raises(HTTPException) as excinfo:
        await recurring_router.generate_recurring_bookings(
            recurring_id=3,
            until=date(2076, 3, 2),
            session=cast(AsyncSession, DummySession()),
            user_id=1,
            settings=Settings(),
            today=TODAY,
        )
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_expire_waitlist_reports_count_and_audits(monkeypatch: pytest.MonkeyPatch) -> None:
    entry = WaitlistEntry(
        id=4,
        user_id=2,
        spot_number=85,
        booking_date=date(2026, 3, 1),
        duration=TimeSlot.MORNING,
        vehicle_type=VehicleClass.CAR,
        status=WaitlistStatus.EXPIRED,
        created_at=datetime(2026, 2, 27, 8, 0),
    )
    seen: dict[str, Any] = {}
    calls: list[dict[str, Any]] = []

    async def fake_expire(*args: object, **kwargs: Any) -> list[WaitlistEntry]:
        seen.update(kwargs)
        return [entry]

    monkeypatch.setattr(waitlist_router, "SqlAlchemyWaitlistRepository", lambda s: s)
    monkeypatch.setattr(waitlist_router.waitlist_usecase, "expire_waitlist_entries", fake_expire)
    monkeypatch.setattr(audit_log, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await waitlist_router.expire_waitlist(
        session=cast(AsyncSession, DummySession()),
        settings=Settings(waitlist_notice_hours=6),
        today=TODAY,
    )

    assert result.expired == 1
    assert seen["today"] == TODAY
    assert seen["notice_window"].total_seconds() == 6 * 3600
    assert [c["action"] for c in calls] == ["waitlist.expired"]
    assert calls[0]["extra"] == {"waitlist_entry_id": 4}


@pytest.mark.asyncio
async def test_join_waitlist_log_failure_returns_500(monkeypatch: pytest.MonkeyPatch) -> None:
    entry = WaitlistEntry(
        id=1,
        user_id=1,
        spot_number=84,
        booking_date=date(2026, 3, 3),
        duration=TimeSlot.MORNING,
        vehicle_type=VehicleClass.CAR,
        status=WaitlistStatus.WAITING,
        created_at=datetime(2026, 3, 2, 8, 0),
    )

    async def fake_join(*args: object, **kwargs: object) -> WaitlistEntry:
        return entry

    def failing_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(waitlist_router, "SqlAlchemyWaitlistRepository", lambda s: s)
    monkeypatch.setattr(waitlist_router.waitlist_usecase, "join_waitlist", fake_join)
    monkeypatch.setattr(audit_log, "emit_audit_log", failing_emit)

    payload = WaitlistJoin(spot_number=84, date=date(2026, 3, 3), duration=TimeSlot.MORNING, vehicle_type=VehicleClass.CAR)
    with pytest.raises(HTTPException) as excinfo:
        await waitlist_router.join_waitlist(
            payload=payload,
            session=cast(AsyncSession, DummySession()),
            user_id=1,
            settings=Settings(),
            today=TODAY,
        )
    assert excinfo.value.status_code == 500
