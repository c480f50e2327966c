from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from bookflow.domain.entities.booking import Booking


class PollState(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timedOut"


@dataclass(frozen=True)
class PollOutcome:
    checkout_handle: str
    state: PollState
    attempts: int
    booking: Booking | None = None
    message: str | None = None
