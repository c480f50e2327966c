from __future__ import annotations

import logging
from typing import Any

import pydantic

from bookflow.application.dto.gateway_responses import CustomerBookingStatusDTO, DraftCompletionDTO
from bookflow.application.exceptions import GatewayError
from bookflow.application.ports.booking_api import BookingApiPort
from bookflow.domain.entities.booking import Booking
from bookflow.domain.entities.catalog import Package, Service
from bookflow.infrastructure.http.gateway import ApiGateway

logger = logging.getLogger(__name__)


class HttpBookingApi(BookingApiPort):
    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway

    async def save_draft(self, customer_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._gateway.post(f"/bookings/draft/{customer_id}", json=payload)
        return data if isinstance(data, dict) else {}

    async def complete_draft(self, customer_id: str) -> DraftCompletionDTO:
        data = await self._gateway.post(f"/bookings/complete-draft/{customer_id}")
        try:
            return DraftCompletionDTO.model_validate(data if isinstance(data, dict) else {})
        except pydantic.ValidationError as e:
            raise GatewayError(f"Unreadable draft completion response: {e}") from e

    async def get_customer_status(self, customer_id: str) -> CustomerBookingStatusDTO:
        data = await self._gateway.get(f"/bookings/status/{customer_id}")
        return CustomerBookingStatusDTO.model_validate(data if isinstance(data, dict) else {})

    async def get_booking(self, booking_id: str) -> Booking:
        return _booking(await self._gateway.get(f"/bookings/{booking_id}"))

    async def list_bookings(
        self,
        status: str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[Booking], int]:
        params = {k: v for k, v in {"status": status, "page": page, "limit": limit}.items() if v is not None}
        data = await self._gateway.get("/bookings", params=params or None)
        data = data if isinstance(data, dict) else {}
        bookings = []
        for item in data.get("bookings") or []:
            try:
                bookings.append(_booking(item))
            except GatewayError as e:
                logger.warning("Skipping unreadable booking in listing", extra={"error": str(e)})
        return bookings, int(data.get("total") or len(bookings))

    async def confirm(self, booking_id: str) -> Booking:
        return _booking(await self._gateway.post(f"/bookings/{booking_id}/confirm"))

    async def cancel(self, booking_id: str) -> Booking:
        return _booking(await self._gateway.post(f"/bookings/{booking_id}/cancel"))

    async def update(self, booking_id: str, payload: dict[str, Any]) -> Booking:
        return _booking(await self._gateway.put(f"/bookings/{booking_id}", json=payload))

    async def get_packages(self) -> list[Package]:
        data = await self._gateway.get("/bookings/packages")
        if not isinstance(data, list):
            return []
        return [Package.from_payload(item) for item in data]

    async def get_services(self) -> list[Service]:
        data = await self._gateway.get("/bookings/services")
        if not isinstance(data, list):
            return []
        return [Service(name=str(item.get("name")), duration=int(item.get("duration") or 0)) for item in data]


def _booking(data: Any) -> Booking:
    if not isinstance(data, dict) or not data.get("id"):
        raise GatewayError("Backend returned a booking without an id")
    try:
        return Booking.from_payload(data)
    except ValueError as e:
        raise GatewayError(f"Backend returned an unreadable booking: {e}") from e
