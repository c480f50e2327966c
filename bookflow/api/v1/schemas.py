from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from bookflow.domain.entities.availability_slot import AvailabilitySlot
from bookflow.domain.entities.booking import Booking
from bookflow.domain.entities.booking_draft import BookingDraft
from bookflow.domain.entities.poll_outcome import PollOutcome


class SlotSchema(BaseModel):
    time: datetime
    available: bool

    @classmethod
    def from_entity(cls, slot: AvailabilitySlot) -> SlotSchema:
        return cls(time=slot.time, available=slot.available)


class DraftPatchSchema(BaseModel):
    service: str | None = None
    package_id: str | None = None
    date: dt.date | None = None
    time: str | None = None
    date_time_iso: str | None = None
    name: str | None = None
    recipient_name: str | None = None
    recipient_phone: str | None = None

    def to_patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class DraftSchema(BaseModel):
    customer_id: str
    service: str | None = None
    package_id: str | None = None
    date_time_iso: str | None = None
    recipient_name: str | None = None
    recipient_phone: str | None = None

    @classmethod
    def from_entity(cls, draft: BookingDraft) -> DraftSchema:
        return cls(
            customer_id=draft.customer_id,
            service=draft.service,
            package_id=draft.package_id,
            date_time_iso=draft.date_time_iso,
            recipient_name=draft.recipient_name,
            recipient_phone=draft.recipient_phone,
        )


class BookingSchema(BaseModel):
    id: str
    customer_id: str
    service: str | None = None
    date_time: datetime | None = None
    status: str
    calendar_sync_id: str | None = None
    checkout_handle: str | None = None

    @classmethod
    def from_entity(cls, booking: Booking) -> BookingSchema:
        return cls(
            id=booking.id,
            customer_id=booking.customer_id,
            service=booking.service,
            date_time=booking.date_time,
            status=booking.status.value,
            calendar_sync_id=booking.calendar_sync_id,
            checkout_handle=booking.checkout_handle,
        )


class FlowSchema(BaseModel):
    checkout_handle: str
    booking_id: str | None = None
    state: str
    attempts: int | None = None
    message: str | None = None
    booking: BookingSchema | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: PollOutcome) -> FlowSchema:
        return cls(
            checkout_handle=outcome.checkout_handle,
            booking_id=outcome.booking.id if outcome.booking else None,
            state=outcome.state.value,
            attempts=outcome.attempts,
            message=outcome.message,
            booking=BookingSchema.from_entity(outcome.booking) if outcome.booking else None,
        )


class RescheduleRequestSchema(BaseModel):
    date_time: datetime
    service: str | None = None


class RescheduleResponseSchema(BaseModel):
    booking: BookingSchema
    slot_available: bool
    warning: str | None = None


class PaymentEventSchema(BaseModel):
    status: str = Field(min_length=1)


class InvoiceSchema(BaseModel):
    id: str
    invoice_number: str
    booking_id: str
    total: float
    balance_due: float
    status: str


class CalendarSyncResponseSchema(BaseModel):
    synced: dict[str, str] = Field(default_factory=dict)


class BookingListSchema(BaseModel):
    bookings: list[BookingSchema]
    total: int
