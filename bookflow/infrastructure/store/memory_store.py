from __future__ import annotations

from dataclasses import replace

from bookflow.application.ports.booking_repository import BookingRepositoryPort
from bookflow.domain.entities.booking import Booking, BookingStatus
from bookflow.domain.entities.payment_attempt import PaymentAttempt


class MemoryBookingRepository(BookingRepositoryPort):
    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._attempts: dict[str, PaymentAttempt] = {}

    def get(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    def save(self, booking: Booking) -> Booking:
        existing = self._bookings.get(booking.id)
        if existing is not None:
            # backend payloads do not echo client-side links; keep the ones we already know
            booking = replace(
                booking,
                checkout_handle=booking.checkout_handle or existing.checkout_handle,
                calendar_sync_id=booking.calendar_sync_id or existing.calendar_sync_id,
            )
        self._bookings[booking.id] = booking
        return booking

    def list(self, status: BookingStatus | None = None) -> list[Booking]:
        return [b for b in self._bookings.values() if status is None or b.status == status]

    def get_attempt(self, checkout_handle: str) -> PaymentAttempt | None:
        return self._attempts.get(checkout_handle)

    def save_attempt(self, attempt: PaymentAttempt) -> PaymentAttempt:
        self._attempts[attempt.checkout_handle] = attempt
        return attempt

    def attempts_for_booking(self, booking_id: str) -> list[PaymentAttempt]:
        return [a for a in self._attempts.values() if a.booking_ref == booking_id]
