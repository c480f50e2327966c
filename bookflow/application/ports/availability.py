from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from bookflow.domain.entities.availability_slot import AvailabilitySlot


class AvailabilitySourcePort(ABC):
    @abstractmethod
    async def fetch_available_hours(self, day: date, service: str | None = None) -> list[AvailabilitySlot]:
        """Authoritative slots for a day. Raises AvailabilityFetchError when unreachable."""
        raise NotImplementedError
