from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from bookflow.application.exceptions import (
    AuthenticationError,
    GatewayError,
    StateTransitionError,
    ValidationError,
)
from bookflow.application.ports.booking_api import BookingApiPort
from bookflow.application.ports.booking_repository import BookingRepositoryPort
from bookflow.application.ports.update_channel import UpdateChannelPort
from bookflow.application.use_cases.availability import AvailabilityResolver
from bookflow.application.use_cases.side_effects import SideEffectDispatcher
from bookflow.domain.entities.booking import Booking, BookingStatus


@dataclass(frozen=True)
class RescheduleResult:
    booking: Booking
    slot_available: bool
    warning: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingStateMachine:
    """provisional -> confirmed | cancelled, plus same-state reschedule.

    Local state only changes after the backend acknowledges a transition.
    Slot conflicts are decided server-side.
    """

    def __init__(
        self,
        api: BookingApiPort,
        repository: BookingRepositoryPort,
        resolver: AvailabilityResolver,
        dispatcher: SideEffectDispatcher,
        channel: UpdateChannelPort | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._api = api
        self._repository = repository
        self._resolver = resolver
        self._dispatcher = dispatcher
        self._channel = channel
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def confirm(self, booking_id: str) -> Booking:
        booking = await self._load(booking_id)
        if booking.status == BookingStatus.CONFIRMED:
            # no-op unless an earlier dispatch failed part-way
            await self._dispatcher.on_transition(booking)
            return booking
        if booking.status == BookingStatus.CANCELLED:
            raise StateTransitionError("Cancelled bookings cannot be confirmed", booking_id)
        if not any(a.is_successful for a in self._repository.attempts_for_booking(booking_id)):
            raise StateTransitionError("Booking has no verified payment", booking_id)

        updated = await self._call("confirm", booking_id, self._api.confirm)
        if updated.status != BookingStatus.CONFIRMED:
            raise StateTransitionError(f"Backend left booking {updated.status.value}", booking_id)

        saved = self._commit(updated)
        self._logger.info("Booking confirmed", extra={"booking_id": booking_id})
        await self._dispatcher.on_transition(saved)
        return saved

    async def cancel(self, booking_id: str) -> Booking:
        booking = await self._load(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            return booking

        updated = await self._call("cancel", booking_id, self._api.cancel)
        if updated.status != BookingStatus.CANCELLED:
            raise StateTransitionError(f"Backend left booking {updated.status.value}", booking_id)

        saved = self._commit(updated)
        self._logger.info("Booking cancelled", extra={"booking_id": booking_id})
        return saved

    async def reschedule(
        self,
        booking_id: str,
        new_date_time: datetime,
        new_service: str | None = None,
    ) -> RescheduleResult:
        booking = await self._load(booking_id)
        if booking.status == BookingStatus.CANCELLED:
            raise StateTransitionError("Cancelled bookings cannot be rescheduled", booking_id)

        when = self._resolver.localize(new_date_time)
        if when < self._clock():
            raise ValidationError("Cannot reschedule into the past", fields=["date_time"])

        service = new_service or booking.service
        slot = await self._resolver.find_slot(when, service)
        warning = None
        if slot is None:
            warning = "Selected time is outside the offered slots"
        elif not slot.available:
            warning = "Selected time is marked unavailable"
        if warning:
            self._logger.warning(warning, extra={"booking_id": booking_id, "date": when.isoformat()})

        payload = {"dateTime": when.isoformat(), "service": service}
        updated = await self._call("reschedule", booking_id, lambda bid: self._api.update(bid, payload))
        saved = self._commit(updated)
        return RescheduleResult(booking=saved, slot_available=warning is None, warning=warning)

    async def refresh(self, booking_id: str) -> Booking:
        try:
            booking = await self._api.get_booking(booking_id)
        except AuthenticationError:
            raise
        except GatewayError as e:
            raise StateTransitionError(f"Booking {booking_id} could not be loaded: {e}", booking_id) from e
        return self._commit(booking)

    async def _load(self, booking_id: str) -> Booking:
        booking = self._repository.get(booking_id)
        if booking is not None:
            return booking
        return await self.refresh(booking_id)

    async def _call(
        self,
        action: str,
        booking_id: str,
        request: Callable[[str], Awaitable[Booking]],
    ) -> Booking:
        try:
            return await request(booking_id)
        except AuthenticationError:
            raise
        except GatewayError as e:
            self._logger.error(
                "Booking transition rejected",
                extra={"booking_id": booking_id, "reason": action, "error": str(e)},
            )
            raise StateTransitionError(f"{action} rejected: {e}", booking_id) from e

    def _commit(self, booking: Booking) -> Booking:
        saved = self._repository.save(booking)
        if self._channel is not None:
            self._channel.publish_booking(saved)
        return saved
