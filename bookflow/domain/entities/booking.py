from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class BookingStatus(str, Enum):
    PROVISIONAL = "provisional"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED})

# older backend builds report provisional bookings as "pending"
_STATUS_ALIASES = {"pending": BookingStatus.PROVISIONAL}


def parse_iso_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class Booking:
    id: str
    customer_id: str
    service: str | None
    date_time: datetime | None
    status: BookingStatus = BookingStatus.PROVISIONAL
    calendar_sync_id: str | None = None
    checkout_handle: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Booking:
        """Build a booking from the backend's camelCase representation."""
        customer_id = payload.get("customerId") or (payload.get("customer") or {}).get("id") or ""
        return cls(
            id=str(payload["id"]),
            customer_id=str(customer_id),
            service=payload.get("service"),
            date_time=_optional_datetime(payload.get("dateTime")),
            status=_status(payload.get("status")),
            calendar_sync_id=payload.get("calendarSyncId") or None,
            checkout_handle=payload.get("checkoutRequestId") or None,
            created_at=_optional_datetime(payload.get("createdAt")),
            updated_at=_optional_datetime(payload.get("updatedAt")),
        )


def _status(value: Any) -> BookingStatus:
    if not value:
        return BookingStatus.PROVISIONAL
    return _STATUS_ALIASES.get(str(value)) or BookingStatus(str(value))


def _optional_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        return None
