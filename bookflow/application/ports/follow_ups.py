from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from bookflow.domain.entities.follow_up import ScheduledFollowUp


class FollowUpSchedulerPort(ABC):
    @abstractmethod
    async def schedule(self, follow_up: ScheduledFollowUp) -> None:
        """Queue a reminder or follow-up message for a booking."""
        raise NotImplementedError

    @abstractmethod
    async def list_for_booking(self, booking_id: str, kind: str) -> list[dict[str, Any]]:
        raise NotImplementedError
