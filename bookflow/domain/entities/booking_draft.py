from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BookingDraft:
    customer_id: str
    service: str | None = None
    package_id: str | None = None
    # selected_date / selected_time are the picker values; date_time_iso is what gets committed
    selected_date: str | None = None  # YYYY-MM-DD
    selected_time: str | None = None  # HH:MM
    date_time_iso: str | None = None
    name: str | None = None
    recipient_name: str | None = None
    recipient_phone: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "packageId": self.package_id,
            "dateTimeIso": self.date_time_iso,
            "name": self.name,
            "recipientName": self.recipient_name,
            "recipientPhone": self.recipient_phone,
        }
