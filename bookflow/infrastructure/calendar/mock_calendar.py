from __future__ import annotations

import logging

from bookflow.application.ports.calendar import CalendarSyncPort
from bookflow.domain.entities.booking import Booking


class MockCalendarSync(CalendarSyncPort):
    def __init__(self) -> None:
        self._events: dict[str, str] = {}
        self._logger = logging.getLogger(__name__)

    async def sync(self, bookings: list[Booking]) -> dict[str, str]:
        synced: dict[str, str] = {}
        for booking in bookings:
            if booking.id in self._events:
                synced[booking.id] = self._events[booking.id]
                continue
            event_id = f"mock_event_{len(self._events) + 1}"
            self._events[booking.id] = event_id
            synced[booking.id] = event_id
            self._logger.info(
                "Mock calendar event created",
                extra={
                    "booking_id": booking.id,
                    "date": booking.date_time.isoformat() if booking.date_time else None,
                },
            )
        return synced
