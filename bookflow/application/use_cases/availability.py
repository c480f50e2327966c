from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from bookflow.application.exceptions import AvailabilityFetchError
from bookflow.application.ports.availability import AvailabilitySourcePort
from bookflow.domain.entities.availability_slot import AvailabilitySlot


class AvailabilityResolver:
    """Bookable slots for a day: authoritative data when present, a fixed open grid otherwise.

    Fetch failures never propagate; the grid marks every slot available.
    """

    def __init__(
        self,
        source: AvailabilitySourcePort,
        timezone: ZoneInfo,
        day_start: time = time(9, 0),
        day_end: time = time(17, 0),
        step_minutes: int = 30,
        alert_threshold: int = 3,
    ) -> None:
        if step_minutes <= 0:
            raise ValueError("step_minutes must be positive")
        self._source = source
        self._timezone = timezone
        self._day_start = day_start
        self._day_end = day_end
        self._step = timedelta(minutes=step_minutes)
        self._alert_threshold = alert_threshold
        self._consecutive_fallbacks = 0
        self._logger = logging.getLogger(__name__)

    async def resolve(self, day: date, service: str | None = None) -> list[AvailabilitySlot]:
        try:
            slots = await self._source.fetch_available_hours(day, service)
        except AvailabilityFetchError as e:
            return self._fall_back(day, reason="fetch_failed", error=str(e))

        if not slots:
            return self._fall_back(day, reason="empty")

        self._consecutive_fallbacks = 0
        return list(slots)

    async def find_slot(self, when: datetime, service: str | None = None) -> AvailabilitySlot | None:
        """Slot starting exactly at `when`, or None if the day's grid does not offer it."""
        when = self.localize(when)
        local_day = when.astimezone(self._timezone).date()
        for slot in await self.resolve(local_day, service):
            if self.localize(slot.time) == when:
                return slot
        return None

    def fallback_grid(self, day: date) -> list[AvailabilitySlot]:
        slots: list[AvailabilitySlot] = []
        current = datetime.combine(day, self._day_start, tzinfo=self._timezone)
        end = datetime.combine(day, self._day_end, tzinfo=self._timezone)
        while current < end:
            slots.append(AvailabilitySlot(time=current, available=True))
            current += self._step
        return slots

    def localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self._timezone)
        return value

    @property
    def consecutive_fallbacks(self) -> int:
        return self._consecutive_fallbacks

    def _fall_back(self, day: date, reason: str, error: str | None = None) -> list[AvailabilitySlot]:
        self._consecutive_fallbacks += 1
        extra = {"date": day.isoformat(), "reason": reason, "error": error}
        if self._consecutive_fallbacks >= self._alert_threshold:
            self._logger.warning("Availability service repeatedly unavailable; serving fallback grid", extra=extra)
        else:
            self._logger.info("Serving fallback availability grid", extra=extra)
        return self.fallback_grid(day)
