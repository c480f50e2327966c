from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from bookflow.application.dto.gateway_responses import CustomerBookingStatusDTO, DraftCompletionDTO
from bookflow.domain.entities.booking import Booking
from bookflow.domain.entities.catalog import Package, Service


class BookingApiPort(ABC):
    @abstractmethod
    async def save_draft(self, customer_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def complete_draft(self, customer_id: str) -> DraftCompletionDTO:
        """Commit the customer's draft and trigger the mobile-money push."""
        raise NotImplementedError

    @abstractmethod
    async def get_customer_status(self, customer_id: str) -> CustomerBookingStatusDTO:
        raise NotImplementedError

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Booking:
        raise NotImplementedError

    @abstractmethod
    async def list_bookings(
        self,
        status: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[Booking], int]:
        """Returns (bookings, total)."""
        raise NotImplementedError

    @abstractmethod
    async def confirm(self, booking_id: str) -> Booking:
        raise NotImplementedError

    @abstractmethod
    async def cancel(self, booking_id: str) -> Booking:
        raise NotImplementedError

    @abstractmethod
    async def update(self, booking_id: str, payload: dict[str, Any]) -> Booking:
        raise NotImplementedError

    @abstractmethod
    async def get_packages(self) -> list[Package]:
        raise NotImplementedError

    @abstractmethod
    async def get_services(self) -> list[Service]:
        raise NotImplementedError
