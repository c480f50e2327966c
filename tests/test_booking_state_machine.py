"""
Tests for booking status transitions.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, time, timedelta, timezone

import pytest

from bookflow.application.exceptions import StateTransitionError, ValidationError
from bookflow.domain.entities.availability_slot import AvailabilitySlot
from bookflow.domain.entities.booking import Booking, BookingStatus
from bookflow.infrastructure.events.memory_channel import InMemoryUpdateChannel
from fakes import FIXED_NOW, SCENARIO_A_PATCH, TZ, FakeAvailabilitySource, make_workflow


async def _paid_booking(wf):
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)
    wf.payments.statuses = ["success"]
    return await wf.poller.run("ws_1")


@pytest.mark.asyncio
async def test_confirm_twice_dispatches_side_effects_once():
    wf = make_workflow()
    outcome = await _paid_booking(wf)

    again = await wf.state_machine.confirm("b1")

    assert outcome.booking.status == BookingStatus.CONFIRMED
    assert again.status == BookingStatus.CONFIRMED
    assert wf.api.count("confirm") == 1
    assert wf.follow_ups.types("reminder").count("confirmation") == 1


@pytest.mark.asyncio
async def test_confirm_requires_verified_payment():
    wf = make_workflow()
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)

    with pytest.raises(StateTransitionError):
        await wf.state_machine.confirm("b1")

    assert wf.api.count("confirm") == 0
    assert wf.repository.get("b1").status == BookingStatus.PROVISIONAL


@pytest.mark.asyncio
async def test_cancelled_booking_cannot_be_confirmed():
    wf = make_workflow()
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)
    await wf.state_machine.cancel("b1")

    with pytest.raises(StateTransitionError):
        await wf.state_machine.confirm("b1")


@pytest.mark.asyncio
async def test_cancel_is_allowed_from_confirmed_and_is_final():
    wf = make_workflow()
    await _paid_booking(wf)

    cancelled = await wf.state_machine.cancel("b1")
    again = await wf.state_machine.cancel("b1")

    assert cancelled.status == BookingStatus.CANCELLED
    assert again.status == BookingStatus.CANCELLED
    assert wf.api.count("cancel") == 1


@pytest.mark.asyncio
async def test_rejected_transition_leaves_local_state_unchanged():
    wf = make_workflow()
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)
    wf.api.reject.add("cancel")

    with pytest.raises(StateTransitionError) as exc_info:
        await wf.state_machine.cancel("b1")

    assert exc_info.value.booking_id == "b1"
    assert wf.repository.get("b1").status == BookingStatus.PROVISIONAL


@pytest.mark.asyncio
async def test_unknown_booking_is_loaded_from_backend():
    wf = make_workflow()
    wf.api.server["b9"] = Booking(id="b9", customer_id="c9", service="Gold Package", date_time=None)

    booking = await wf.state_machine.cancel("b9")

    assert ("get", "b9") in wf.api.calls
    assert wf.repository.get("b9") == booking
    assert booking.status == BookingStatus.CANCELLED


@pytest.mark.asyncio
async def test_reschedule_rejects_past_dates():
    wf = make_workflow()
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)

    with pytest.raises(ValidationError):
        await wf.state_machine.reschedule("b1", FIXED_NOW - timedelta(minutes=1))

    assert wf.api.count("update") == 0


@pytest.mark.asyncio
async def test_reschedule_rejects_cancelled_booking_even_for_future_dates():
    wf = make_workflow()
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)
    await wf.state_machine.cancel("b1")

    with pytest.raises(StateTransitionError):
        await wf.state_machine.reschedule("b1", FIXED_NOW + timedelta(days=3))


@pytest.mark.asyncio
async def test_reschedule_keeps_status_and_checks_new_slot():
    wf = make_workflow()
    await _paid_booking(wf)
    new_time = datetime(2025, 3, 12, 11, 0, tzinfo=TZ)

    result = await wf.state_machine.reschedule("b1", new_time, "Silver Package")

    assert result.booking.status == BookingStatus.CONFIRMED
    assert result.booking.date_time == new_time
    assert result.booking.service == "Silver Package"
    assert result.slot_available is True
    assert wf.availability.requests == [(date(2025, 3, 12), "Silver Package")]


@pytest.mark.asyncio
async def test_reschedule_into_unavailable_slot_warns_but_proceeds():
    day = date(2025, 3, 12)
    taken = AvailabilitySlot(time=datetime.combine(day, time(11, 0), tzinfo=TZ), available=False)
    wf = make_workflow(availability=FakeAvailabilitySource(slots=[taken]))
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)

    result = await wf.state_machine.reschedule("b1", datetime(2025, 3, 12, 8, 0, tzinfo=timezone.utc))

    assert result.slot_available is False
    assert result.warning == "Selected time is marked unavailable"
    assert result.booking.status == BookingStatus.PROVISIONAL


@pytest.mark.asyncio
async def test_server_conflict_on_reschedule_is_a_transition_error():
    wf = make_workflow()
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)
    wf.api.reject.add("update")
    before = wf.repository.get("b1")

    with pytest.raises(StateTransitionError):
        await wf.state_machine.reschedule("b1", FIXED_NOW + timedelta(days=3))

    assert wf.repository.get("b1") == before


@pytest.mark.asyncio
async def test_transitions_are_broadcast_on_the_update_channel():
    channel = InMemoryUpdateChannel()
    wf = make_workflow(channel=channel)
    stream = channel.subscribe_bookings()
    next_update = asyncio.ensure_future(stream.__anext__())
    await asyncio.sleep(0)
    await wf.flow.prepare("c1", SCENARIO_A_PATCH)

    provisional = await next_update
    await wf.state_machine.cancel("b1")
    cancelled = await stream.__anext__()
    await stream.aclose()

    assert provisional.status == BookingStatus.PROVISIONAL
    assert cancelled.status == BookingStatus.CANCELLED
    assert channel.subscriber_count == 0
