from __future__ import annotations

import logging
from datetime import date

from bookflow.application.exceptions import AvailabilityFetchError, GatewayError
from bookflow.application.ports.availability import AvailabilitySourcePort
from bookflow.domain.entities.availability_slot import AvailabilitySlot
from bookflow.domain.entities.booking import parse_iso_datetime
from bookflow.infrastructure.http.gateway import ApiGateway


class HttpAvailabilitySource(AvailabilitySourcePort):
    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway
        self._logger = logging.getLogger(__name__)

    async def fetch_available_hours(self, day: date, service: str | None = None) -> list[AvailabilitySlot]:
        params = {"service": service} if service else None
        try:
            data = await self._gateway.get(f"/bookings/available-hours/{day.isoformat()}", params=params)
        except GatewayError as e:
            raise AvailabilityFetchError(f"Could not fetch availability for {day.isoformat()}") from e

        if not isinstance(data, list):
            raise AvailabilityFetchError(f"Malformed availability payload for {day.isoformat()}")

        slots: list[AvailabilitySlot] = []
        for item in data:
            try:
                slots.append(
                    AvailabilitySlot(
                        time=parse_iso_datetime(item["time"]),
                        available=bool(item.get("available", False)),
                    )
                )
            except (KeyError, TypeError, ValueError, AttributeError):
                self._logger.debug("Skipping malformed slot", extra={"date": day.isoformat()})
                continue
        return slots
