"""
staybook.domain

Pure booking logic with no I/O.

Responsibilities:
- Stay pricing and fee splits (`pricing`).
- Booking status transition tables (`transitions`).
- Service availability slot matching (`slots`).
- Earnings aggregation windows and monthly trends (`trends`).
- iCalendar feed parsing for external reservations (`ical`).
"""
