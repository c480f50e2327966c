"""
End-to-end booking flow tests over in-memory collaborators.
"""

from __future__ import annotations

import asyncio

import pytest

from bookflow.application.dto.gateway_responses import DraftCompletionDTO
from bookflow.application.exceptions import PaymentInitiationError, PollingTimeoutError, ValidationError
from bookflow.application.use_cases.booking_flow import FlowRegistry, FlowScope
from bookflow.domain.entities.booking import BookingStatus
from bookflow.domain.entities.poll_outcome import PollState
from fakes import SCENARIO_A_PATCH, make_workflow


@pytest.mark.asyncio
async def test_paid_booking_is_confirmed_and_reminded_once():
    """Gold Package booking paid on the third status check."""
    wf = make_workflow(statuses=["pending", "pending", "success"])

    outcome = await wf.flow.run("c1", SCENARIO_A_PATCH)
    await wf.state_machine.confirm("b1")

    assert wf.payments.requests == ["ws_1", "ws_1", "ws_1"]
    assert outcome.booking.status == BookingStatus.CONFIRMED
    assert wf.follow_ups.types("reminder").count("confirmation") == 1
    assert wf.drafts.get_draft("c1") is None


@pytest.mark.asyncio
async def test_missing_handle_aborts_flow_before_polling():
    wf = make_workflow(completion=DraftCompletionDTO(message="queued"))

    with pytest.raises(PaymentInitiationError):
        await wf.flow.run("c1", SCENARIO_A_PATCH)

    assert wf.repository.list() == []
    assert wf.payments.requests == []
    assert wf.drafts.get_draft("c1") is not None


@pytest.mark.asyncio
async def test_unpaid_booking_times_out_provisional():
    wf = make_workflow(statuses=["pending"])

    with pytest.raises(PollingTimeoutError) as exc_info:
        await wf.flow.run("c1", SCENARIO_A_PATCH)

    assert len(wf.payments.requests) == 20
    assert exc_info.value.outcome.booking.status == BookingStatus.PROVISIONAL
    assert wf.repository.get("b1").status == BookingStatus.PROVISIONAL


@pytest.mark.asyncio
async def test_invalid_draft_never_reaches_payment():
    wf = make_workflow()

    with pytest.raises(ValidationError):
        await wf.flow.run("c1", {**SCENARIO_A_PATCH, "recipient_phone": "0712"})

    assert ("complete", "c1") not in wf.api.calls


@pytest.mark.asyncio
async def test_closing_scope_cancels_polling():
    wf = make_workflow(statuses=["pending"], interval=0.01, max_attempts=1000)

    async with FlowScope() as scope:
        run = await wf.flow.start("c1", SCENARIO_A_PATCH, scope)
        await asyncio.sleep(0.03)
        assert run.state == "running"

    issued = len(wf.payments.requests)
    await asyncio.sleep(0.03)

    assert run.state == "cancelled"
    assert run.outcome() is None
    assert scope.active == 0
    assert len(wf.payments.requests) == issued


@pytest.mark.asyncio
async def test_closed_scope_refuses_new_tasks():
    scope = FlowScope()
    await scope.close()

    async def noop():
        return None

    with pytest.raises(RuntimeError):
        scope.spawn(noop())


@pytest.mark.asyncio
async def test_registry_reports_outcomes_by_handle():
    wf = make_workflow(statuses=["pending"], max_attempts=3)
    registry = FlowRegistry(wf.flow)

    run = await registry.start("c1", SCENARIO_A_PATCH)
    with pytest.raises(PollingTimeoutError):
        await run.task

    tracked = registry.get("ws_1")
    assert tracked.state == PollState.TIMED_OUT.value
    assert tracked.outcome().attempts == 3
    assert tracked.error() is None
    assert await registry.stop("ws_1") is True
    assert await registry.stop("ws_1") is False


@pytest.mark.asyncio
async def test_registry_close_stops_every_flow():
    wf = make_workflow(statuses=["pending"], interval=0.01, max_attempts=1000)
    registry = FlowRegistry(wf.flow)
    first = await registry.start("c1", SCENARIO_A_PATCH)
    wf.api.completion = wf.api.completion.model_copy(update={"checkout_request_id": "ws_2", "booking_id": "b2"})
    second = await registry.start("c2", SCENARIO_A_PATCH)

    await registry.close()

    assert first.task.cancelled()
    assert second.task.cancelled()
    assert registry.get("ws_1") is None


@pytest.mark.asyncio
async def test_retry_for_same_customer_cancels_earlier_flow():
    wf = make_workflow(statuses=["pending"], interval=0.01, max_attempts=1000)
    registry = FlowRegistry(wf.flow)
    first = await registry.start("c1", SCENARIO_A_PATCH)
    wf.api.completion = wf.api.completion.model_copy(update={"checkout_request_id": "ws_2", "booking_id": "b2"})

    second = await registry.start("c1", SCENARIO_A_PATCH)
    first_requests = wf.payments.requests.count("ws_1")
    await asyncio.sleep(0.03)

    assert first.task.cancelled()
    assert second.state == "running"
    assert registry.get("ws_1") is None
    assert registry.get("ws_2") is second
    assert wf.payments.requests.count("ws_1") == first_requests
    assert "ws_2" in wf.payments.requests
    assert wf.repository.get("b1").status == BookingStatus.PROVISIONAL
    await registry.close()


@pytest.mark.asyncio
async def test_finished_runs_are_forgotten_after_retention():
    wf = make_workflow(statuses=["success"])
    registry = FlowRegistry(wf.flow, retention_seconds=0.02)

    run = await registry.start("c1", SCENARIO_A_PATCH)
    outcome = await run.task
    await asyncio.sleep(0)

    assert outcome.state == PollState.SUCCESS
    assert registry.get("ws_1") is run

    await asyncio.sleep(0.05)

    assert registry.get("ws_1") is None
    assert registry.tracked == 0


@pytest.mark.asyncio
async def test_new_flow_after_finished_one_keeps_the_finished_result():
    wf = make_workflow(statuses=["success"])
    registry = FlowRegistry(wf.flow)
    first = await registry.start("c1", SCENARIO_A_PATCH)
    await first.task
    await asyncio.sleep(0)
    wf.api.completion = wf.api.completion.model_copy(update={"checkout_request_id": "ws_2", "booking_id": "b2"})

    await registry.start("c1", SCENARIO_A_PATCH)

    assert registry.get("ws_1").state == PollState.SUCCESS.value
    await registry.close()
