from __future__ import annotations

from bookflow.application.exceptions import GatewayError
from bookflow.application.ports.invoices import InvoicePort
from bookflow.domain.entities.invoice import Invoice
from bookflow.infrastructure.http.gateway import ApiGateway


class HttpInvoiceApi(InvoicePort):
    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway

    async def generate(self, booking_id: str) -> Invoice:
        data = await self._gateway.post(f"/invoices/generate/{booking_id}")
        if not isinstance(data, dict) or not data.get("id"):
            raise GatewayError("Backend returned an invoice without an id")
        return Invoice.from_payload(data)

    async def send(self, invoice_id: str) -> None:
        await self._gateway.post(f"/invoices/send/{invoice_id}")

    async def list_for_booking(self, booking_id: str) -> list[Invoice]:
        data = await self._gateway.get(f"/invoices/booking/{booking_id}")
        if not isinstance(data, list):
            return []
        return [Invoice.from_payload(item) for item in data if item.get("id")]
