from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Package:
    id: str
    name: str
    price: float = 0.0
    deposit: float = 0.0
    duration: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Package:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or ""),
            price=float(payload.get("price") or 0),
            deposit=float(payload.get("deposit") or 0),
            duration=payload.get("duration"),
        )


@dataclass(frozen=True)
class Service:
    name: str
    duration: int  # minutes
