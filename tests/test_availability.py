"""
Tests for availability resolution and the fallback grid.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time

import pytest

from bookflow.application.use_cases.availability import AvailabilityResolver
from bookflow.domain.entities.availability_slot import AvailabilitySlot
from fakes import TZ, FakeAvailabilitySource


def _expected_grid_labels() -> list[str]:
    return [f"{h:02d}:{m:02d}" for h in range(9, 17) for m in (0, 30)]


@pytest.mark.asyncio
async def test_network_error_serves_full_fallback_grid():
    """Availability fetch failing for 2025-03-11 yields the 16-slot open grid."""
    resolver = AvailabilityResolver(FakeAvailabilitySource(error=True), timezone=TZ)

    slots = await resolver.resolve(date(2025, 3, 11))

    assert len(slots) == 16
    assert [s.label for s in slots] == _expected_grid_labels()
    assert all(s.available for s in slots)
    assert all(s.time.date() == date(2025, 3, 11) for s in slots)


@pytest.mark.asyncio
async def test_empty_authoritative_response_serves_fallback_grid():
    resolver = AvailabilityResolver(FakeAvailabilitySource(slots=[]), timezone=TZ)

    slots = await resolver.resolve(date(2025, 3, 12), "Gold Package")

    assert len(slots) == 16
    assert slots[0].label == "09:00"
    assert slots[-1].label == "16:30"


@pytest.mark.asyncio
async def test_authoritative_slots_returned_verbatim():
    day = date(2025, 3, 10)
    authoritative = [
        AvailabilitySlot(time=datetime.combine(day, time(10, 0), tzinfo=TZ), available=False),
        AvailabilitySlot(time=datetime.combine(day, time(11, 0), tzinfo=TZ), available=True),
    ]
    source = FakeAvailabilitySource(slots=authoritative)
    resolver = AvailabilityResolver(source, timezone=TZ)

    slots = await resolver.resolve(day, "Gold Package")

    assert slots == authoritative
    assert source.requests == [(day, "Gold Package")]
    assert resolver.consecutive_fallbacks == 0


@pytest.mark.asyncio
async def test_each_call_queries_the_source_again():
    source = FakeAvailabilitySource(error=True)
    resolver = AvailabilityResolver(source, timezone=TZ)

    await resolver.resolve(date(2025, 3, 11))
    await resolver.resolve(date(2025, 3, 11))

    assert len(source.requests) == 2


@pytest.mark.asyncio
async def test_repeated_fallback_is_escalated_to_warning(caplog):
    resolver = AvailabilityResolver(FakeAvailabilitySource(error=True), timezone=TZ, alert_threshold=2)

    with caplog.at_level(logging.INFO, logger="bookflow.application.use_cases.availability"):
        await resolver.resolve(date(2025, 3, 11))
        await resolver.resolve(date(2025, 3, 12))

    levels = [r.levelno for r in caplog.records]
    assert levels == [logging.INFO, logging.WARNING]
    assert resolver.consecutive_fallbacks == 2


@pytest.mark.asyncio
async def test_find_slot_reports_unavailable_slot_without_blocking():
    day = date(2025, 3, 10)
    taken = AvailabilitySlot(time=datetime.combine(day, time(10, 0), tzinfo=TZ), available=False)
    resolver = AvailabilityResolver(FakeAvailabilitySource(slots=[taken]), timezone=TZ)

    slot = await resolver.find_slot(datetime(2025, 3, 10, 10, 0))

    assert slot == taken
    assert await resolver.find_slot(datetime(2025, 3, 10, 10, 15)) is None


def test_fallback_grid_respects_configured_hours():
    resolver = AvailabilityResolver(
        FakeAvailabilitySource(),
        timezone=TZ,
        day_start=time(10, 0),
        day_end=time(12, 0),
        step_minutes=60,
    )

    assert [s.label for s in resolver.fallback_grid(date(2025, 3, 10))] == ["10:00", "11:00"]
