from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from bookflow.application.dto.gateway_responses import DraftCompletionDTO
from bookflow.application.exceptions import GatewayError, PaymentInitiationError
from bookflow.application.ports.booking_api import BookingApiPort
from bookflow.application.ports.booking_repository import BookingRepositoryPort
from bookflow.application.ports.update_channel import UpdateChannelPort
from bookflow.domain.entities.booking import Booking, BookingStatus, parse_iso_datetime
from bookflow.domain.entities.booking_draft import BookingDraft
from bookflow.domain.entities.payment_attempt import PaymentAttempt, PaymentStatus


class PaymentInitiator:
    """Triggers the mobile-money push for a committed draft.

    No booking is recorded unless the gateway hands back a checkout handle
    and the booking it belongs to can be identified.
    """

    def __init__(
        self,
        api: BookingApiPort,
        repository: BookingRepositoryPort,
        channel: UpdateChannelPort | None = None,
    ) -> None:
        self._api = api
        self._repository = repository
        self._channel = channel
        self._logger = logging.getLogger(__name__)

    async def initiate(self, draft: BookingDraft) -> PaymentAttempt:
        customer_id = draft.customer_id
        try:
            completion = await self._api.complete_draft(customer_id)
        except GatewayError as e:
            self._logger.error("Payment push failed", extra={"customer_id": customer_id, "error": str(e)})
            raise PaymentInitiationError(f"Payment push failed: {e}") from e

        handle = completion.checkout_request_id
        if not handle:
            self._logger.error(
                "Payment gateway returned no checkout handle",
                extra={"customer_id": customer_id, "reason": completion.message},
            )
            raise PaymentInitiationError("Payment gateway did not return a checkout handle")

        booking = await self._provisional_booking(draft, completion, handle)
        if booking is None:
            self._logger.error(
                "Payment pushed but booking reference is unknown",
                extra={"customer_id": customer_id, "checkout_handle": handle},
            )
            raise PaymentInitiationError(
                "Payment was pushed but the booking it belongs to could not be identified",
                checkout_handle=handle,
            )

        attempt = PaymentAttempt(
            checkout_handle=handle,
            status=PaymentStatus.PENDING,
            amount=completion.amount,
            booking_ref=booking.id,
        )
        self._repository.save_attempt(attempt)
        saved = self._repository.save(booking)
        if self._channel is not None:
            self._channel.watch_payment(handle)
            self._channel.publish_booking(saved)

        self._logger.info(
            "Payment initiated",
            extra={"customer_id": customer_id, "booking_id": booking.id, "checkout_handle": handle},
        )
        return attempt

    async def _provisional_booking(
        self,
        draft: BookingDraft,
        completion: DraftCompletionDTO,
        handle: str,
    ) -> Booking | None:
        payload = completion.booking
        booking_id = completion.resolved_booking_id()

        if booking_id is None:
            try:
                status = await self._api.get_customer_status(draft.customer_id)
            except GatewayError as e:
                self._logger.warning(
                    "Booking status lookup failed",
                    extra={"customer_id": draft.customer_id, "error": str(e)},
                )
                return None
            if status.booking and status.booking.get("id"):
                payload = status.booking
                booking_id = str(status.booking["id"])

        if booking_id is None:
            return None

        booking = None
        if payload and payload.get("id"):
            try:
                booking = Booking.from_payload(payload)
            except ValueError as e:
                self._logger.warning(
                    "Unreadable booking in completion response; using the draft",
                    extra={"booking_id": booking_id, "error": str(e)},
                )
        if booking is not None:
            if not booking.customer_id:
                booking = replace(booking, customer_id=draft.customer_id)
        else:
            now = datetime.now(timezone.utc)
            booking = Booking(
                id=booking_id,
                customer_id=draft.customer_id,
                service=draft.service,
                date_time=parse_iso_datetime(draft.date_time_iso) if draft.date_time_iso else None,
                created_at=now,
                updated_at=now,
            )
        return replace(booking, status=BookingStatus.PROVISIONAL, checkout_handle=handle)
