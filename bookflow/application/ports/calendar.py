from __future__ import annotations

from abc import ABC, abstractmethod

from bookflow.domain.entities.booking import Booking


class CalendarSyncPort(ABC):
    @abstractmethod
    async def sync(self, bookings: list[Booking]) -> dict[str, str]:
        """Create external calendar events. Returns booking_id -> calendar_sync_id."""
        raise NotImplementedError
