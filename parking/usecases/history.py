from ..domain.errors import InputError
from ..domain.repositories import BookingAuditRepository
from ..models import BookingAudit

MAX_HISTORY_LIMIT = 200


async def list_booking_history(
    audit_repo: BookingAuditRepository,
    *,
    user_id: int,
    limit: int = 50,
) -> list[BookingAudit]:
    """The caller's booking history, newest first."""
    if not 1 <= limit <= MAX_HISTORY_LIMIT:
        raise InputError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")
    return await audit_repo.list_for_user(user_id, limit)
