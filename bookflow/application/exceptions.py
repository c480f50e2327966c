from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bookflow.domain.entities.poll_outcome import PollOutcome


class BookflowError(RuntimeError):
    """Base class for booking workflow failures."""
    pass


class ValidationError(BookflowError):
    """Raised locally when a draft or slot selection is incomplete; never reaches the network."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = list(fields or [])


class GatewayError(BookflowError):
    """Raised when the backend cannot be reached or answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GatewayError):
    """Raised when the backend rejects the admin session."""
    pass


class AvailabilityFetchError(BookflowError):
    """Raised when authoritative availability cannot be fetched."""
    pass


class PaymentInitiationError(BookflowError):
    """Raised when the payment push did not yield a trackable checkout handle."""

    def __init__(self, message: str, checkout_handle: str | None = None) -> None:
        super().__init__(message)
        self.checkout_handle = checkout_handle


class PollingTimeoutError(BookflowError):
    """Raised when the polling budget is spent without a terminal payment status.

    Not a failure of the booking: the booking stays provisional.
    """

    def __init__(self, message: str, outcome: "PollOutcome") -> None:
        super().__init__(message)
        self.outcome = outcome


class StateTransitionError(BookflowError):
    """Raised when a confirm/cancel/reschedule is rejected locally or by the backend."""

    def __init__(self, message: str, booking_id: str | None = None) -> None:
        super().__init__(message)
        self.booking_id = booking_id
