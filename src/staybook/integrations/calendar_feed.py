"""
staybook.integrations.calendar_feed

HTTP client boundary for external iCalendar export feeds (Airbnb).

Responsibilities:
- Fetch a feed over a shared `httpx.AsyncClient`.
- Parse it into reservation events.
"""

from __future__ import annotations

import httpx

from staybook.domain.ical import CalendarEvent, airbnb_reservations, parse_events


class CalendarFeedClient:
    def __init__(self, *, http: httpx.AsyncClient) -> None:
        self._http = http

    async def fetch_text(self, url: str) -> str:
        r = await self._http.get(url, headers={"Accept": "text/calendar"})
        r.raise_for_status()
        return r.text

    async def reservations(self, url: str) -> list[CalendarEvent]:
        return airbnb_reservations(parse_events(await self.fetch_text(url)))
