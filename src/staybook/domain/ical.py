"""
staybook.domain.ical

Reservation events from iCalendar (RFC 5545) export feeds.

Responsibilities:
- Parse a feed with `icalendar` and reduce each VEVENT to plain values.
- Select the events that represent real Airbnb reservations.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from icalendar import Calendar, Component


@dataclass(frozen=True, slots=True)
class CalendarEvent:
    uid: str
    summary: str
    start: date
    end: date
    status: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return (self.status or "").upper() == "CANCELLED"


def _as_date(value: date | datetime) -> date:
    # Date-times keep the calendar day of their own timezone.
    return value.date() if isinstance(value, datetime) else value


def parse_events(text: str) -> list[CalendarEvent]:
    """
    Parse every VEVENT in `text`; events without UID or usable dates are skipped.

    Raises `ValueError` when `text` is not an iCalendar document at all.
    """

    calendar = Calendar.from_ical(text)
    events: list[CalendarEvent] = []
    for component in calendar.walk("VEVENT"):
        event = _build(component)
        if event is not None:
            events.append(event)
    return events


def _build(component: Component) -> CalendarEvent | None:
    uid = str(component.get("UID", "")).strip()
    if not uid or component.get("DTSTART") is None:
        return None
    try:
        start = component.decoded("DTSTART")
        if component.get("DTEND") is not None:
            end = component.decoded("DTEND")
        elif component.get("DURATION") is not None:
            end = start + component.decoded("DURATION")
        else:
            return None
    except (KeyError, ValueError, TypeError):
        return None
    if not isinstance(start, date) or not isinstance(end, date):
        return None

    status = component.get("STATUS")
    return CalendarEvent(
        uid=uid,
        summary=str(component.get("SUMMARY", "")).strip(),
        start=_as_date(start),
        end=_as_date(end),
        status=str(status) if status is not None else None,
    )


def airbnb_reservations(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    # Blocked/unavailable placeholders and our own exported events are not reservations.
    return [e for e in events if "@airbnb.com" in e.uid and "reserved" in e.summary.lower()]
