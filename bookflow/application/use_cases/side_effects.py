from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from bookflow.application.exceptions import GatewayError, StateTransitionError
from bookflow.application.ports.booking_repository import BookingRepositoryPort
from bookflow.application.ports.calendar import CalendarSyncPort
from bookflow.application.ports.follow_ups import FollowUpSchedulerPort
from bookflow.application.ports.invoices import InvoicePort
from bookflow.domain.entities.booking import Booking, BookingStatus
from bookflow.domain.entities.follow_up import ScheduledFollowUp
from bookflow.domain.entities.invoice import Invoice

REMINDER_OFFSETS = {
    "48hr": timedelta(hours=48),
    "24hr": timedelta(hours=24),
}
REVIEW_REQUEST_DELAY = timedelta(days=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SideEffectDispatcher:
    """Downstream actions bound to confirmed bookings.

    Reminders and follow-ups fire once per (booking, status) pair. Invoices and
    calendar sync only run when an operator asks for them.
    """

    def __init__(
        self,
        follow_ups: FollowUpSchedulerPort,
        invoices: InvoicePort,
        calendar: CalendarSyncPort,
        repository: BookingRepositoryPort,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._follow_ups = follow_ups
        self._invoices = invoices
        self._calendar = calendar
        self._repository = repository
        self._clock = clock
        self._dispatched: set[tuple[str, BookingStatus]] = set()
        self._scheduled: set[tuple[str, str, str]] = set()
        self._logger = logging.getLogger(__name__)

    async def on_transition(self, booking: Booking) -> bool:
        """Returns True when follow-ups were queued by this call."""
        if booking.status != BookingStatus.CONFIRMED:
            return False
        key = (booking.id, booking.status)
        if key in self._dispatched:
            self._logger.debug("Side effects already dispatched", extra={"booking_id": booking.id})
            return False

        self._dispatched.add(key)
        try:
            for follow_up in self.plan_follow_ups(booking):
                item_key = (follow_up.booking_id, follow_up.kind, follow_up.type)
                if item_key in self._scheduled:
                    continue
                await self._follow_ups.schedule(follow_up)
                self._scheduled.add(item_key)
        except GatewayError as e:
            # allow a later transition replay to finish the remaining items
            self._dispatched.discard(key)
            self._logger.error(
                "Scheduling follow-ups failed",
                extra={"booking_id": booking.id, "error": str(e)},
            )
            return False

        self._logger.info("Reminders and follow-ups queued", extra={"booking_id": booking.id})
        return True

    def plan_follow_ups(self, booking: Booking) -> list[ScheduledFollowUp]:
        now = self._clock()
        plan = [ScheduledFollowUp(booking.id, "reminder", "confirmation", now)]
        if booking.date_time is None:
            return plan

        for reminder_type, offset in REMINDER_OFFSETS.items():
            at = booking.date_time - offset
            if at > now:
                plan.append(ScheduledFollowUp(booking.id, "reminder", reminder_type, at))
        plan.append(
            ScheduledFollowUp(booking.id, "followup", "review_request", booking.date_time + REVIEW_REQUEST_DELAY)
        )
        return plan

    async def generate_invoice(self, booking_id: str) -> Invoice:
        booking = self._repository.get(booking_id)
        if booking is None or booking.status != BookingStatus.CONFIRMED:
            raise StateTransitionError("Invoices can only be generated for confirmed bookings", booking_id)
        invoice = await self._invoices.generate(booking_id)
        self._logger.info("Invoice generated", extra={"booking_id": booking_id})
        return invoice

    async def send_invoice(self, invoice_id: str) -> None:
        await self._invoices.send(invoice_id)

    async def sync_calendar(self) -> dict[str, str]:
        pending = [b for b in self._repository.list(BookingStatus.CONFIRMED) if not b.calendar_sync_id]
        if not pending:
            return {}

        synced = await self._calendar.sync(pending)
        applied: dict[str, str] = {}
        for booking in pending:
            sync_id = synced.get(booking.id)
            if sync_id:
                self._repository.save(replace(booking, calendar_sync_id=sync_id))
                applied[booking.id] = sync_id
        self._logger.info("Calendar sync applied", extra={"status": f"{len(applied)}/{len(pending)}"})
        return applied
