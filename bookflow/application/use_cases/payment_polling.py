from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from bookflow.application.exceptions import (
    AuthenticationError,
    GatewayError,
    PollingTimeoutError,
    StateTransitionError,
)
from bookflow.application.ports.booking_repository import BookingRepositoryPort
from bookflow.application.ports.payment_api import PaymentApiPort
from bookflow.application.ports.update_channel import UpdateChannelPort
from bookflow.application.use_cases.booking_state_machine import BookingStateMachine
from bookflow.domain.entities.booking import BookingStatus
from bookflow.domain.entities.payment_attempt import PaymentAttempt, PaymentFailurePolicy, PaymentStatus
from bookflow.domain.entities.poll_outcome import PollOutcome, PollState


class PaymentStatusPoller:
    """Reconciles one payment attempt with its booking.

    Every attempt waits one interval (returning early if the update channel pushes
    a status) and then, unless a status was pushed, issues a single status request.
    Runs are keyed by checkout handle and share nothing; stopping a run is done
    by cancelling the task that awaits it.
    """

    def __init__(
        self,
        payments: PaymentApiPort,
        state_machine: BookingStateMachine,
        repository: BookingRepositoryPort,
        channel: UpdateChannelPort | None = None,
        interval_seconds: float = 3.0,
        max_attempts: int = 20,
        failure_policy: PaymentFailurePolicy = PaymentFailurePolicy.KEEP_PROVISIONAL,
    ) -> None:
        self._payments = payments
        self._state_machine = state_machine
        self._repository = repository
        self._channel = channel
        self._interval = interval_seconds
        self._max_attempts = max_attempts
        self._failure_policy = failure_policy
        self._logger = logging.getLogger(__name__)

    async def run(self, checkout_handle: str) -> PollOutcome:
        """Poll until a terminal status or the attempt budget runs out.

        Raises PollingTimeoutError when the budget is exhausted or a response is
        malformed; the booking is left provisional in both cases.
        """
        self._require_attempt(checkout_handle)
        if self._channel is not None:
            self._channel.watch_payment(checkout_handle)
        try:
            for attempt_no in range(1, self._max_attempts + 1):
                status = await self._wait(checkout_handle)
                if status is None:
                    try:
                        response = await self._payments.get_status(checkout_handle)
                    except AuthenticationError:
                        raise
                    except GatewayError as e:
                        self._logger.warning(
                            "Payment status request failed",
                            extra={"checkout_handle": checkout_handle, "attempt": attempt_no, "error": str(e)},
                        )
                        continue
                    if not response.status:
                        self._logger.warning(
                            "Malformed payment status response; stopping",
                            extra={"checkout_handle": checkout_handle, "attempt": attempt_no},
                        )
                        raise self._timed_out(checkout_handle, attempt_no, "Malformed payment status response")
                    status = response.status

                payment_status = _parse_status(status)
                if payment_status is None:
                    self._logger.debug(
                        "Unrecognised payment status treated as pending",
                        extra={"checkout_handle": checkout_handle, "status": status},
                    )
                    continue
                if payment_status != PaymentStatus.PENDING:
                    return await self._settle(checkout_handle, payment_status, attempt_no)
        except asyncio.CancelledError:
            self._logger.info("Payment polling cancelled", extra={"checkout_handle": checkout_handle})
            raise
        finally:
            if self._channel is not None:
                self._channel.discard_payment(checkout_handle)

        self._logger.info(
            "Payment not confirmed within polling budget; booking stays provisional",
            extra={"checkout_handle": checkout_handle, "attempt": self._max_attempts},
        )
        raise self._timed_out(
            checkout_handle,
            self._max_attempts,
            "Payment is still pending. Check the payment manually before confirming.",
        )

    async def check_once(self, checkout_handle: str, booking_id: str | None = None) -> PollOutcome:
        """Single manual re-check, e.g. after a timed-out run."""
        attempt = self._repository.get_attempt(checkout_handle)
        if attempt is None:
            if booking_id is None:
                raise StateTransitionError(f"Unknown checkout handle {checkout_handle}")
            attempt = self._repository.save_attempt(
                PaymentAttempt(checkout_handle=checkout_handle, booking_ref=booking_id)
            )

        response = await self._payments.get_status(checkout_handle)
        payment_status = _parse_status(response.status) if response.status else None
        if payment_status is None or payment_status == PaymentStatus.PENDING:
            booking = self._repository.get(attempt.booking_ref) if attempt.booking_ref else None
            return PollOutcome(checkout_handle, PollState.PENDING, attempts=1, booking=booking)
        return await self._settle(checkout_handle, payment_status, 1)

    async def _wait(self, checkout_handle: str) -> str | None:
        if self._channel is not None:
            return await self._channel.wait_for_payment(checkout_handle, self._interval)
        await asyncio.sleep(self._interval)
        return None

    async def _settle(self, checkout_handle: str, status: PaymentStatus, attempts: int) -> PollOutcome:
        attempt = self._repository.save_attempt(replace(self._require_attempt(checkout_handle), status=status))
        booking_id = attempt.booking_ref
        extra = {"checkout_handle": checkout_handle, "booking_id": booking_id, "status": status.value}

        if attempt.is_successful:
            if booking_id is None:
                return PollOutcome(checkout_handle, PollState(status.value), attempts)
            booking = self._repository.get(booking_id)
            if booking is not None and booking.status == BookingStatus.CANCELLED:
                self._logger.warning("Payment arrived for a cancelled booking; not reinstating", extra=extra)
                return PollOutcome(
                    checkout_handle,
                    PollState(status.value),
                    attempts,
                    booking=booking,
                    message="Payment received for a cancelled booking. Refund or rebook manually.",
                )
            booking = await self._state_machine.confirm(booking_id)
            self._logger.info("Payment confirmed", extra=extra)
            return PollOutcome(checkout_handle, PollState(status.value), attempts, booking=booking)

        self._logger.warning("Payment failed", extra=extra)
        booking = self._repository.get(booking_id) if booking_id else None
        if self._failure_policy == PaymentFailurePolicy.CANCEL and booking_id:
            try:
                booking = await self._state_machine.cancel(booking_id)
                message = "Payment failed. Booking cancelled."
            except StateTransitionError as e:
                self._logger.error("Could not cancel booking after failed payment", extra={**extra, "error": str(e)})
                message = "Payment failed. Booking could not be cancelled automatically."
        else:
            message = "Payment failed. Booking kept provisional for a retry."
        return PollOutcome(checkout_handle, PollState.FAILED, attempts, booking=booking, message=message)

    def _timed_out(self, checkout_handle: str, attempts: int, message: str) -> PollingTimeoutError:
        attempt = self._repository.get_attempt(checkout_handle)
        booking = self._repository.get(attempt.booking_ref) if attempt and attempt.booking_ref else None
        outcome = PollOutcome(checkout_handle, PollState.TIMED_OUT, attempts, booking=booking, message=message)
        return PollingTimeoutError(message, outcome)

    def _require_attempt(self, checkout_handle: str) -> PaymentAttempt:
        attempt = self._repository.get_attempt(checkout_handle)
        if attempt is None:
            raise StateTransitionError(f"Unknown checkout handle {checkout_handle}")
        return attempt


def _parse_status(value: str) -> PaymentStatus | None:
    try:
        return PaymentStatus(value.lower())
    except (ValueError, AttributeError):
        return None
