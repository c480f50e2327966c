from __future__ import annotations

from typing import Any

from bookflow.application.ports.follow_ups import FollowUpSchedulerPort
from bookflow.domain.entities.follow_up import ScheduledFollowUp
from bookflow.infrastructure.http.gateway import ApiGateway

_COLLECTIONS = {"reminder": "/reminders", "followup": "/followups"}


class HttpFollowUpScheduler(FollowUpSchedulerPort):
    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway

    async def schedule(self, follow_up: ScheduledFollowUp) -> None:
        await self._gateway.post(
            _COLLECTIONS[follow_up.kind],
            json={
                "bookingId": follow_up.booking_id,
                "type": follow_up.type,
                "scheduledFor": follow_up.scheduled_for.isoformat(),
            },
        )

    async def list_for_booking(self, booking_id: str, kind: str) -> list[dict[str, Any]]:
        data = await self._gateway.get(f"{_COLLECTIONS[kind]}/booking/{booking_id}")
        return data if isinstance(data, list) else []
