from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import time
from zoneinfo import ZoneInfo

import httpx

from bookflow.application.ports.calendar import CalendarSyncPort
from bookflow.application.use_cases.availability import AvailabilityResolver
from bookflow.application.use_cases.booking_flow import BookingFlow, FlowRegistry
from bookflow.application.use_cases.booking_queries import BookingQueries
from bookflow.application.use_cases.booking_state_machine import BookingStateMachine
from bookflow.application.use_cases.draft import BookingDraftManager
from bookflow.application.use_cases.payment_initiation import PaymentInitiator
from bookflow.application.use_cases.payment_polling import PaymentStatusPoller
from bookflow.application.use_cases.side_effects import SideEffectDispatcher
from bookflow.core.config import Settings, settings as default_settings
from bookflow.domain.entities.admin_session import AdminSession
from bookflow.domain.entities.payment_attempt import PaymentFailurePolicy
from bookflow.infrastructure.calendar.mock_calendar import MockCalendarSync
from bookflow.infrastructure.events.memory_channel import InMemoryUpdateChannel
from bookflow.infrastructure.http.availability_api import HttpAvailabilitySource
from bookflow.infrastructure.http.booking_api import HttpBookingApi
from bookflow.infrastructure.http.calendar_sync_api import HttpCalendarSync
from bookflow.infrastructure.http.follow_up_api import HttpFollowUpScheduler
from bookflow.infrastructure.http.gateway import ApiGateway
from bookflow.infrastructure.http.invoice_api import HttpInvoiceApi
from bookflow.infrastructure.http.payment_api import HttpPaymentApi
from bookflow.infrastructure.store.memory_store import MemoryBookingRepository


@dataclass
class Container:
    session: AdminSession
    gateway: ApiGateway
    repository: MemoryBookingRepository
    channel: InMemoryUpdateChannel
    resolver: AvailabilityResolver
    drafts: BookingDraftManager
    initiator: PaymentInitiator
    dispatcher: SideEffectDispatcher
    state_machine: BookingStateMachine
    poller: PaymentStatusPoller
    flow: BookingFlow
    flows: FlowRegistry
    queries: BookingQueries

    async def aclose(self) -> None:
        await self.flows.close()
        await self.gateway.aclose()


_container: Container | None = None


def get_calendar_sync(config: Settings, gateway: ApiGateway) -> CalendarSyncPort:
    if config.ENV.lower() in {"dev", "local"}:
        return MockCalendarSync()
    return HttpCalendarSync(gateway)


def build_container(
    config: Settings | None = None,
    session: AdminSession | None = None,
    http: httpx.AsyncClient | None = None,
) -> Container:
    config = config or default_settings
    session = session or AdminSession(token=config.API_TOKEN)
    tz = ZoneInfo(config.BUSINESS_TIMEZONE)

    gateway = ApiGateway(config.API_BASE_URL, session, timeout=config.HTTP_TIMEOUT_SECONDS, http=http)
    booking_api = HttpBookingApi(gateway)
    repository = MemoryBookingRepository()
    channel = InMemoryUpdateChannel()

    resolver = AvailabilityResolver(
        HttpAvailabilitySource(gateway),
        timezone=tz,
        day_start=time.fromisoformat(config.FALLBACK_DAY_START),
        day_end=time.fromisoformat(config.FALLBACK_DAY_END),
        step_minutes=config.FALLBACK_STEP_MINUTES,
        alert_threshold=config.FALLBACK_ALERT_THRESHOLD,
    )
    drafts = BookingDraftManager(booking_api, timezone=tz, min_phone_length=config.MIN_RECIPIENT_PHONE_LENGTH)
    initiator = PaymentInitiator(booking_api, repository, channel)
    follow_ups = HttpFollowUpScheduler(gateway)
    invoices = HttpInvoiceApi(gateway)
    dispatcher = SideEffectDispatcher(
        follow_ups=follow_ups,
        invoices=invoices,
        calendar=get_calendar_sync(config, gateway),
        repository=repository,
    )
    state_machine = BookingStateMachine(booking_api, repository, resolver, dispatcher, channel)
    poller = PaymentStatusPoller(
        HttpPaymentApi(gateway),
        state_machine,
        repository,
        channel=channel,
        interval_seconds=config.PAYMENT_POLL_INTERVAL_MS / 1000,
        max_attempts=config.PAYMENT_POLL_MAX_ATTEMPTS,
        failure_policy=PaymentFailurePolicy(config.PAYMENT_FAILURE_POLICY),
    )
    flow = BookingFlow(drafts, initiator, poller)

    logging.getLogger(__name__).info(
        "Booking workflow wired",
        extra={"reason": f"env={config.ENV} failure_policy={config.PAYMENT_FAILURE_POLICY}"},
    )
    return Container(
        session=session,
        gateway=gateway,
        repository=repository,
        channel=channel,
        resolver=resolver,
        drafts=drafts,
        initiator=initiator,
        dispatcher=dispatcher,
        state_machine=state_machine,
        poller=poller,
        flow=flow,
        flows=FlowRegistry(flow, retention_seconds=config.FLOW_RETENTION_SECONDS),
        queries=BookingQueries(booking_api, repository, follow_ups, invoices),
    )


def get_container() -> Container:
    global _container
    if _container is None:
        _container = build_container()
    return _container


async def close_container() -> None:
    global _container
    if _container is not None:
        await _container.aclose()
        _container = None
