from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    CONFIRMED = "confirmed"
    FAILED = "failed"


SUCCESSFUL_PAYMENT_STATUSES = frozenset({PaymentStatus.SUCCESS, PaymentStatus.CONFIRMED})


class PaymentFailurePolicy(str, Enum):
    CANCEL = "cancel"
    KEEP_PROVISIONAL = "keep_provisional"


@dataclass(frozen=True)
class PaymentAttempt:
    checkout_handle: str
    status: PaymentStatus = PaymentStatus.PENDING
    amount: float | None = None
    booking_ref: str | None = None

    @property
    def is_successful(self) -> bool:
        return self.status in SUCCESSFUL_PAYMENT_STATUSES
