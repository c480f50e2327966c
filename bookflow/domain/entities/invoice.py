from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Invoice:
    id: str
    invoice_number: str
    booking_id: str
    total: float
    balance_due: float
    status: str  # "pending" | "sent" | "paid"

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Invoice:
        return cls(
            id=str(payload["id"]),
            invoice_number=str(payload.get("invoiceNumber") or ""),
            booking_id=str(payload.get("bookingId") or ""),
            total=float(payload.get("total") or 0),
            balance_due=float(payload.get("balanceDue") or 0),
            status=str(payload.get("status") or "pending"),
        )
