from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import fields, replace
from datetime import date, datetime, time
from typing import Any
from zoneinfo import ZoneInfo

from bookflow.application.exceptions import ValidationError
from bookflow.application.ports.booking_api import BookingApiPort
from bookflow.domain.entities.booking import parse_iso_datetime
from bookflow.domain.entities.booking_draft import BookingDraft

_PATCHABLE = frozenset(f.name for f in fields(BookingDraft)) - {"customer_id"}


class BookingDraftManager:
    """Keeps one live draft per customer and mirrors it to the backend."""

    def __init__(self, api: BookingApiPort, timezone: ZoneInfo, min_phone_length: int = 8) -> None:
        self._api = api
        self._timezone = timezone
        self._min_phone_length = min_phone_length
        self._drafts: dict[str, BookingDraft] = {}
        self._logger = logging.getLogger(__name__)

    def get_draft(self, customer_id: str) -> BookingDraft | None:
        return self._drafts.get(customer_id)

    def discard(self, customer_id: str) -> None:
        self._drafts.pop(customer_id, None)

    async def upsert_draft(self, customer_id: str, patch: Mapping[str, Any]) -> BookingDraft:
        current = self._drafts.get(customer_id)
        updated = self._apply(current or BookingDraft(customer_id=customer_id), patch)
        if current is not None and updated == current:
            return current

        await self._api.save_draft(customer_id, updated.to_payload())
        self._drafts[customer_id] = updated
        self._logger.debug("Draft updated", extra={"customer_id": customer_id})
        return updated

    def commit_draft(self, customer_id: str) -> BookingDraft:
        draft = self._drafts.get(customer_id)
        if draft is None:
            raise ValidationError("No booking draft for customer", fields=["draft"])

        missing: list[str] = []
        if not (draft.recipient_name or "").strip():
            missing.append("recipient_name")
        if len((draft.recipient_phone or "").strip()) < self._min_phone_length:
            missing.append("recipient_phone")
        if not (draft.service or draft.package_id):
            missing.append("service")
        if not draft.date_time_iso:
            missing.append("date_time")
        else:
            try:
                parse_iso_datetime(draft.date_time_iso)
            except ValueError:
                missing.append("date_time")

        if missing:
            raise ValidationError(f"Draft is incomplete: {', '.join(missing)}", fields=missing)
        return draft

    def _apply(self, draft: BookingDraft, patch: Mapping[str, Any]) -> BookingDraft:
        unknown = sorted(set(patch) - _PATCHABLE - {"date", "time"})
        if unknown:
            raise ValidationError(f"Unknown draft fields: {', '.join(unknown)}", fields=unknown)

        changes = {k: v for k, v in patch.items() if k in _PATCHABLE}
        if "date" in patch:
            changes["selected_date"] = _date_str(patch["date"])
        if "time" in patch:
            changes["selected_time"] = _time_str(patch["time"])

        updated = replace(draft, **changes)
        picker_touched = {"date", "time", "selected_date", "selected_time"} & set(patch)
        if picker_touched and "date_time_iso" not in patch:
            combined = self._combine(updated.selected_date, updated.selected_time)
            cleared = any(patch[key] is None for key in picker_touched)
            # a half-filled picker leaves an explicit date_time_iso alone
            if combined is not None or cleared:
                updated = replace(updated, date_time_iso=combined)
        return updated

    def _combine(self, selected_date: str | None, selected_time: str | None) -> str | None:
        if not selected_date or not selected_time:
            return None
        try:
            day = date.fromisoformat(selected_date)
            at = time.fromisoformat(selected_time)
        except ValueError as e:
            raise ValidationError("Invalid date or time selection", fields=["date_time"]) from e
        return datetime.combine(day, at, tzinfo=self._timezone).isoformat()


def _date_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _time_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return str(value)
