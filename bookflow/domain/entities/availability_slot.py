from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class AvailabilitySlot:
    time: datetime
    available: bool = True

    @property
    def label(self) -> str:
        return self.time.strftime("%H:%M")
