from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ScheduledFollowUp:
    booking_id: str
    kind: str  # "reminder" | "followup"
    type: str  # reminder: "confirmation", "24hr", "48hr"; followup: "review_request"
    scheduled_for: datetime
