from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Mapping
from dataclasses import dataclass
from typing import Any

from bookflow.application.exceptions import PollingTimeoutError
from bookflow.application.use_cases.draft import BookingDraftManager
from bookflow.application.use_cases.payment_initiation import PaymentInitiator
from bookflow.application.use_cases.payment_polling import PaymentStatusPoller
from bookflow.domain.entities.payment_attempt import PaymentAttempt
from bookflow.domain.entities.poll_outcome import PollOutcome

logger = logging.getLogger(__name__)


class FlowScope:
    """Background tasks owned by one dashboard view. Closing the view cancels them."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        if self._closed:
            coro.close()
            raise RuntimeError("Flow scope is already closed")
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def close(self) -> None:
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def active(self) -> int:
        return len(self._tasks)

    async def __aenter__(self) -> FlowScope:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


@dataclass(frozen=True)
class FlowRun:
    attempt: PaymentAttempt
    task: asyncio.Task[PollOutcome]

    @property
    def checkout_handle(self) -> str:
        return self.attempt.checkout_handle

    @property
    def state(self) -> str:
        if not self.task.done():
            return "running"
        if self.task.cancelled():
            return "cancelled"
        outcome = self.outcome()
        return outcome.state.value if outcome else "error"

    def outcome(self) -> PollOutcome | None:
        if not self.task.done() or self.task.cancelled():
            return None
        exc = self.task.exception()
        if isinstance(exc, PollingTimeoutError):
            return exc.outcome
        if exc is not None:
            return None
        return self.task.result()

    def error(self) -> BaseException | None:
        if not self.task.done() or self.task.cancelled():
            return None
        exc = self.task.exception()
        return None if isinstance(exc, PollingTimeoutError) else exc


class BookingFlow:
    """draft commit -> payment push -> polling, strictly in that order."""

    def __init__(
        self,
        drafts: BookingDraftManager,
        initiator: PaymentInitiator,
        poller: PaymentStatusPoller,
    ) -> None:
        self._drafts = drafts
        self._initiator = initiator
        self._poller = poller

    async def prepare(self, customer_id: str, patch: Mapping[str, Any] | None = None) -> PaymentAttempt:
        if patch:
            await self._drafts.upsert_draft(customer_id, patch)
        draft = self._drafts.commit_draft(customer_id)
        attempt = await self._initiator.initiate(draft)
        self._drafts.discard(customer_id)
        return attempt

    async def run(self, customer_id: str, patch: Mapping[str, Any] | None = None) -> PollOutcome:
        attempt = await self.prepare(customer_id, patch)
        return await self._poller.run(attempt.checkout_handle)

    async def start(
        self,
        customer_id: str,
        patch: Mapping[str, Any] | None,
        scope: FlowScope,
    ) -> FlowRun:
        attempt = await self.prepare(customer_id, patch)
        task = scope.spawn(self._poller.run(attempt.checkout_handle), name=f"poll:{attempt.checkout_handle}")
        task.add_done_callback(_log_finished)
        return FlowRun(attempt=attempt, task=task)


class FlowRegistry:
    """Live flows by checkout handle, each in its own scope.

    At most one flow runs per customer: starting another one for the same
    customer closes the earlier scope first. Finished runs stay readable for
    `retention_seconds` and are then forgotten.
    """

    def __init__(self, flow: BookingFlow, retention_seconds: float = 300.0) -> None:
        self._flow = flow
        self._retention = retention_seconds
        self._runs: dict[str, tuple[FlowScope, FlowRun]] = {}
        self._by_customer: dict[str, str] = {}
        self._expiry: dict[str, asyncio.TimerHandle] = {}

    async def start(self, customer_id: str, patch: Mapping[str, Any] | None = None) -> FlowRun:
        previous = self._by_customer.pop(customer_id, None)
        if previous is not None:
            logger.info(
                "Replacing running flow for customer",
                extra={"customer_id": customer_id, "checkout_handle": previous},
            )
            await self.stop(previous)

        scope = FlowScope()
        run = await self._flow.start(customer_id, patch, scope)
        handle = run.checkout_handle
        await self.stop(handle)
        self._runs[handle] = (scope, run)
        self._by_customer[customer_id] = handle
        run.task.add_done_callback(lambda _: self._schedule_expiry(customer_id, run))
        return run

    def get(self, checkout_handle: str) -> FlowRun | None:
        entry = self._runs.get(checkout_handle)
        return entry[1] if entry else None

    async def stop(self, checkout_handle: str) -> bool:
        entry = self._runs.pop(checkout_handle, None)
        timer = self._expiry.pop(checkout_handle, None)
        if timer is not None:
            timer.cancel()
        if entry is None:
            return False
        for customer_id, handle in list(self._by_customer.items()):
            if handle == checkout_handle:
                del self._by_customer[customer_id]
        await entry[0].close()
        return True

    async def close(self) -> None:
        for timer in self._expiry.values():
            timer.cancel()
        self._expiry.clear()
        entries = list(self._runs.values())
        self._runs.clear()
        self._by_customer.clear()
        for scope, _ in entries:
            await scope.close()

    @property
    def tracked(self) -> int:
        return len(self._runs)

    def _schedule_expiry(self, customer_id: str, run: FlowRun) -> None:
        handle = run.checkout_handle
        entry = self._runs.get(handle)
        if entry is None or entry[1] is not run:
            return
        if self._by_customer.get(customer_id) == handle:
            del self._by_customer[customer_id]
        loop = asyncio.get_running_loop()
        self._expiry[handle] = loop.call_later(self._retention, self._forget, run)

    def _forget(self, run: FlowRun) -> None:
        handle = run.checkout_handle
        self._expiry.pop(handle, None)
        entry = self._runs.get(handle)
        if entry is not None and entry[1] is run:
            del self._runs[handle]


def _log_finished(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None and not isinstance(exc, PollingTimeoutError):
        logger.error("Booking flow polling failed", extra={"reason": task.get_name(), "error": str(exc)})
