from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from bookflow.application.ports.update_channel import UpdateChannelPort
from bookflow.domain.entities.booking import Booking

_MAX_BUFFERED = 8


class InMemoryUpdateChannel(UpdateChannelPort):
    """Process-local push channel fed by the payment webhook relay."""

    def __init__(self) -> None:
        self._payments: dict[str, asyncio.Queue[str]] = {}
        self._subscribers: set[asyncio.Queue[Booking]] = set()
        self._logger = logging.getLogger(__name__)

    def watch_payment(self, checkout_handle: str) -> None:
        self._payments.setdefault(checkout_handle, asyncio.Queue(maxsize=_MAX_BUFFERED))

    def publish_payment(self, checkout_handle: str, status: str) -> bool:
        queue = self._payments.get(checkout_handle)
        if queue is None:
            self._logger.debug(
                "Payment update for unwatched handle dropped",
                extra={"checkout_handle": checkout_handle, "status": status},
            )
            return False
        if queue.full():
            # keep the newest status
            queue.get_nowait()
        queue.put_nowait(status)
        self._logger.debug("Payment update pushed", extra={"checkout_handle": checkout_handle, "status": status})
        return True

    async def wait_for_payment(self, checkout_handle: str, timeout: float) -> str | None:
        queue = self._payments.get(checkout_handle)
        if queue is None:
            await asyncio.sleep(max(timeout, 0))
            return None
        if not queue.empty():
            return queue.get_nowait()
        if timeout <= 0:
            await asyncio.sleep(0)
            return None
        try:
            return await asyncio.wait_for(queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def discard_payment(self, checkout_handle: str) -> None:
        self._payments.pop(checkout_handle, None)

    def publish_booking(self, booking: Booking) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(booking)

    async def subscribe_bookings(self) -> AsyncIterator[Booking]:
        queue: asyncio.Queue[Booking] = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def watched_count(self) -> int:
        return len(self._payments)
