from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DraftCompletionDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    message: str | None = None
    checkout_request_id: str | None = Field(default=None, alias="checkoutRequestId")
    booking_id: str | None = Field(default=None, alias="bookingId")
    booking: dict[str, Any] | None = None
    amount: float | None = None

    def resolved_booking_id(self) -> str | None:
        if self.booking_id:
            return self.booking_id
        if self.booking and self.booking.get("id"):
            return str(self.booking["id"])
        return None


class PaymentStatusDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str | None = None
    payment: dict[str, Any] | None = None


class CustomerBookingStatusDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str = "none"  # "pending" | "confirmed" | "none"
    booking: dict[str, Any] | None = None
