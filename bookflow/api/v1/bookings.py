from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import StreamingResponse

from bookflow.api.v1.schemas import (
    BookingListSchema,
    BookingSchema,
    CalendarSyncResponseSchema,
    DraftPatchSchema,
    DraftSchema,
    FlowSchema,
    InvoiceSchema,
    PaymentEventSchema,
    RescheduleRequestSchema,
    RescheduleResponseSchema,
    SlotSchema,
)
from bookflow.application.exceptions import (
    AuthenticationError,
    BookflowError,
    GatewayError,
    PaymentInitiationError,
    StateTransitionError,
    ValidationError,
)
from bookflow.application.use_cases.booking_flow import FlowRun
from bookflow.wiring.dependencies import Container, get_container

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_http(e: BookflowError) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail={"message": str(e), "fields": e.fields})
    if isinstance(e, StateTransitionError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, AuthenticationError):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, (PaymentInitiationError, GatewayError)):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _flow_schema(run: FlowRun) -> FlowSchema:
    outcome = run.outcome()
    if outcome is not None:
        return FlowSchema.from_outcome(outcome)
    error = run.error()
    return FlowSchema(
        checkout_handle=run.checkout_handle,
        booking_id=run.attempt.booking_ref,
        state=run.state,
        error=str(error) if error else None,
    )


@router.get("/availability/{day}", response_model=list[SlotSchema])
async def availability(
    day: date,
    service: str | None = Query(None),
    c: Container = Depends(get_container),
):
    slots = await c.resolver.resolve(day, service)
    return [SlotSchema.from_entity(s) for s in slots]


@router.put("/drafts/{customer_id}", response_model=DraftSchema)
async def upsert_draft(
    customer_id: str,
    req: DraftPatchSchema,
    c: Container = Depends(get_container),
):
    try:
        draft = await c.drafts.upsert_draft(customer_id, req.to_patch())
    except BookflowError as e:
        raise _to_http(e) from e
    return DraftSchema.from_entity(draft)


@router.post("/flows/{customer_id}", response_model=FlowSchema, status_code=202)
async def start_flow(customer_id: str, c: Container = Depends(get_container)):
    try:
        run = await c.flows.start(customer_id)
    except BookflowError as e:
        raise _to_http(e) from e
    return _flow_schema(run)


@router.get("/flows/{checkout_handle}", response_model=FlowSchema)
async def flow_status(checkout_handle: str, c: Container = Depends(get_container)):
    run = c.flows.get(checkout_handle)
    if run is None:
        raise HTTPException(status_code=404, detail="Unknown checkout handle")
    return _flow_schema(run)


@router.delete("/flows/{checkout_handle}", status_code=204)
async def stop_flow(checkout_handle: str, c: Container = Depends(get_container)) -> Response:
    if not await c.flows.stop(checkout_handle):
        raise HTTPException(status_code=404, detail="Unknown checkout handle")
    return Response(status_code=204)


@router.post("/flows/{checkout_handle}/recheck", response_model=FlowSchema)
async def recheck_flow(
    checkout_handle: str,
    booking_id: str | None = Query(None),
    c: Container = Depends(get_container),
):
    try:
        outcome = await c.poller.check_once(checkout_handle, booking_id=booking_id)
    except BookflowError as e:
        raise _to_http(e) from e
    return FlowSchema.from_outcome(outcome)


@router.post("/payments/{checkout_handle}/events", status_code=202)
async def payment_event(checkout_handle: str, req: PaymentEventSchema, c: Container = Depends(get_container)):
    accepted = c.channel.publish_payment(checkout_handle, req.status)
    return {"accepted": accepted}


@router.get("/bookings", response_model=BookingListSchema)
async def list_bookings(
    status: str | None = Query(None),
    page: int | None = Query(None, ge=1),
    limit: int | None = Query(None, ge=1),
    c: Container = Depends(get_container),
):
    try:
        bookings, total = await c.queries.list_bookings(status=status, page=page, limit=limit)
    except BookflowError as e:
        raise _to_http(e) from e
    return BookingListSchema(bookings=[BookingSchema.from_entity(b) for b in bookings], total=total)


@router.get("/bookings/stream")
async def booking_stream(c: Container = Depends(get_container)) -> StreamingResponse:
    async def events() -> AsyncIterator[str]:
        async for booking in c.channel.subscribe_bookings():
            yield f"data: {json.dumps(BookingSchema.from_entity(booking).model_dump(mode='json'))}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/bookings/{booking_id}", response_model=BookingSchema)
async def get_booking(booking_id: str, c: Container = Depends(get_container)):
    try:
        booking = await c.queries.get_booking(booking_id)
    except BookflowError as e:
        raise _to_http(e) from e
    return BookingSchema.from_entity(booking)


@router.post("/bookings/{booking_id}/confirm", response_model=BookingSchema)
async def confirm_booking(booking_id: str, c: Container = Depends(get_container)):
    try:
        booking = await c.state_machine.confirm(booking_id)
    except BookflowError as e:
        raise _to_http(e) from e
    return BookingSchema.from_entity(booking)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingSchema)
async def cancel_booking(booking_id: str, c: Container = Depends(get_container)):
    try:
        booking = await c.state_machine.cancel(booking_id)
    except BookflowError as e:
        raise _to_http(e) from e
    return BookingSchema.from_entity(booking)


@router.put("/bookings/{booking_id}", response_model=RescheduleResponseSchema)
async def reschedule_booking(
    booking_id: str,
    req: RescheduleRequestSchema,
    c: Container = Depends(get_container),
):
    try:
        result = await c.state_machine.reschedule(booking_id, req.date_time, req.service)
    except BookflowError as e:
        raise _to_http(e) from e
    return RescheduleResponseSchema(
        booking=BookingSchema.from_entity(result.booking),
        slot_available=result.slot_available,
        warning=result.warning,
    )


@router.post("/bookings/{booking_id}/invoice", response_model=InvoiceSchema)
async def generate_invoice(booking_id: str, c: Container = Depends(get_container)):
    try:
        invoice = await c.dispatcher.generate_invoice(booking_id)
    except BookflowError as e:
        raise _to_http(e) from e
    return InvoiceSchema(**asdict(invoice))


@router.post("/invoices/{invoice_id}/send", status_code=204)
async def send_invoice(invoice_id: str, c: Container = Depends(get_container)) -> Response:
    try:
        await c.dispatcher.send_invoice(invoice_id)
    except BookflowError as e:
        raise _to_http(e) from e
    return Response(status_code=204)


@router.post("/calendar/sync", response_model=CalendarSyncResponseSchema)
async def sync_calendar(c: Container = Depends(get_container)):
    try:
        synced = await c.dispatcher.sync_calendar()
    except BookflowError as e:
        raise _to_http(e) from e
    logger.info("Calendar sync requested", extra={"status": f"{len(synced)} synced"})
    return CalendarSyncResponseSchema(synced=synced)
