from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Literal, Optional

from fastapi import HTTPException, status

from .request_id import get_request_id

AuditAction = Literal[
    "booking.created",
    "booking.cancelled",
    "booking.rejected",
    "waitlist.joined",
    "waitlist.notified",
    "waitlist.expired",
]
AuditInitiator = Literal["user", "system"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    booking_id: Optional[int],
    spot_number: Optional[int],
    booking_date: Optional[date | str],
    slot: Optional[str],
    vehicle_class: Optional[str],
    user_id: Optional[int],
    owner_name: Optional[str] = None,
    reason: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit structured JSON audit log. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "booking_id": booking_id,
        "spot_number": spot_number,
        "date": _to_str(booking_date),
        "slot": _to_str(slot),
        "vehicle_class": _to_str(vehicle_class),
        "user_id": user_id,
        "owner_name": owner_name,
        "reason": _to_str(reason),
    }
    if extra:
        payload.update(extra)

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc


def emit_audit_log_or_500(**kwargs: Any) -> None:
    """Emit an audit record from a request handler; a logging failure becomes HTTP 500."""
    try:
        emit_audit_log(**kwargs)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc
