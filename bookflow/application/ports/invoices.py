from __future__ import annotations

from abc import ABC, abstractmethod

from bookflow.domain.entities.invoice import Invoice


class InvoicePort(ABC):
    @abstractmethod
    async def generate(self, booking_id: str) -> Invoice:
        raise NotImplementedError

    @abstractmethod
    async def send(self, invoice_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def list_for_booking(self, booking_id: str) -> list[Invoice]:
        raise NotImplementedError
