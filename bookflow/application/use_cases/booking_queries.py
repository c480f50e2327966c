from __future__ import annotations

from bookflow.application.ports.booking_api import BookingApiPort
from bookflow.application.ports.booking_repository import BookingRepositoryPort
from bookflow.application.ports.follow_ups import FollowUpSchedulerPort
from bookflow.application.ports.invoices import InvoicePort
from bookflow.domain.entities.booking import Booking
from bookflow.domain.entities.catalog import Package, Service
from bookflow.domain.entities.invoice import Invoice


class BookingQueries:
    """Read side used by the dashboard lists. Refreshes the local repository as it reads."""

    def __init__(
        self,
        api: BookingApiPort,
        repository: BookingRepositoryPort,
        follow_ups: FollowUpSchedulerPort,
        invoices: InvoicePort,
    ) -> None:
        self._api = api
        self._repository = repository
        self._follow_ups = follow_ups
        self._invoices = invoices

    async def list_bookings(
        self,
        status: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[Booking], int]:
        bookings, total = await self._api.list_bookings(status=status, page=page, limit=limit)
        return [self._repository.save(b) for b in bookings], total

    async def get_booking(self, booking_id: str) -> Booking:
        return self._repository.save(await self._api.get_booking(booking_id))

    async def packages(self) -> list[Package]:
        return await self._api.get_packages()

    async def services(self) -> list[Service]:
        return await self._api.get_services()

    async def reminders(self, booking_id: str) -> list[dict]:
        return await self._follow_ups.list_for_booking(booking_id, "reminder")

    async def followups(self, booking_id: str) -> list[dict]:
        return await self._follow_ups.list_for_booking(booking_id, "followup")

    async def invoices(self, booking_id: str) -> list[Invoice]:
        return await self._invoices.list_for_booking(booking_id)
