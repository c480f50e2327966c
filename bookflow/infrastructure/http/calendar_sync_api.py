from __future__ import annotations

import logging
from typing import Any

from bookflow.application.ports.calendar import CalendarSyncPort
from bookflow.domain.entities.booking import Booking
from bookflow.infrastructure.http.gateway import ApiGateway


class HttpCalendarSync(CalendarSyncPort):
    """Triggers the backend's batch calendar sync and reads back the event ids it assigned."""

    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway
        self._logger = logging.getLogger(__name__)

    async def sync(self, bookings: list[Booking]) -> dict[str, str]:
        data = await self._gateway.post("/calendar/sync")
        synced: dict[str, str] = {}
        for item in _entries(data):
            booking_id = item.get("bookingId") or item.get("id")
            sync_id = item.get("calendarSyncId") or item.get("eventId")
            if booking_id and sync_id:
                synced[str(booking_id)] = str(sync_id)
        self._logger.info("Calendar sync finished", extra={"status": f"{len(synced)} synced"})
        return synced


def _entries(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        for key in ("synced", "bookings", "results"):
            if isinstance(data.get(key), list):
                return [item for item in data[key] if isinstance(item, dict)]
    return []
