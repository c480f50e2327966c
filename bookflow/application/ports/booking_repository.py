from __future__ import annotations

from abc import ABC, abstractmethod

from bookflow.domain.entities.booking import Booking, BookingStatus
from bookflow.domain.entities.payment_attempt import PaymentAttempt


class BookingRepositoryPort(ABC):
    @abstractmethod
    def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, booking: Booking) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def list(self, status: BookingStatus | None = None) -> list[Booking]:
        raise NotImplementedError

    @abstractmethod
    def get_attempt(self, checkout_handle: str) -> PaymentAttempt | None:
        raise NotImplementedError

    @abstractmethod
    def save_attempt(self, attempt: PaymentAttempt) -> PaymentAttempt:
        raise NotImplementedError

    @abstractmethod
    def attempts_for_booking(self, booking_id: str) -> list[PaymentAttempt]:
        raise NotImplementedError
