from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from bookflow.domain.entities.booking import Booking


class UpdateChannelPort(ABC):
    @abstractmethod
    def watch_payment(self, checkout_handle: str) -> None:
        """Start buffering pushed statuses for `checkout_handle` until it is discarded."""
        raise NotImplementedError

    @abstractmethod
    def publish_payment(self, checkout_handle: str, status: str) -> bool:
        """Returns False, dropping the status, when the handle is not being watched."""
        raise NotImplementedError

    @abstractmethod
    async def wait_for_payment(self, checkout_handle: str, timeout: float) -> str | None:
        """Wait up to `timeout` seconds for a pushed status. Returns None when nothing arrived."""
        raise NotImplementedError

    @abstractmethod
    def discard_payment(self, checkout_handle: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def publish_booking(self, booking: Booking) -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe_bookings(self) -> AsyncIterator[Booking]:
        raise NotImplementedError
