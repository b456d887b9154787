"""
staybook.domain.slots

Weekly availability helpers for services.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_WS = re.compile(r"\s+")


def normalize_slot(value: str) -> str:
    # "09:00   AM " and "09:00 AM" are the same slot.
    return _WS.sub(" ", value).strip()


def weekday_name(d: date) -> str:
    return WEEKDAYS[d.weekday()]


def day_matches(day: str, d: date) -> bool:
    return day.strip().lower() == weekday_name(d).lower()


def find_day(availability: Iterable[Mapping[str, Any]], day: str) -> Mapping[str, Any] | None:
    wanted = day.strip().lower()
    for entry in availability:
        if str(entry.get("day", "")).strip().lower() == wanted:
            return entry
    return None


def has_slot(day_entry: Mapping[str, Any], slot_from: str, slot_to: str) -> bool:
    want = (normalize_slot(slot_from), normalize_slot(slot_to))
    return any(
        (normalize_slot(str(s.get("from", ""))), normalize_slot(str(s.get("to", "")))) == want
        for s in day_entry.get("slots", [])
    )
