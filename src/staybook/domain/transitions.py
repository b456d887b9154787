"""
staybook.domain.transitions

Booking status state machine.

Responsibilities:
- Declare the legal status moves for hotel bookings and service bookings.
- Name the "active" status sets used for overlap/slot conflict checks and listings.
"""

from __future__ import annotations

from staybook.db.models import BookingStatus

S = BookingStatus

HOTEL_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.EXPIRED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED}),
}

SERVICE_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    S.PENDING: frozenset({S.NEED_ACCEPT, S.EXPIRED, S.CANCELLED}),
    S.NEED_ACCEPT: frozenset({S.CONFIRMED, S.REJECTED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.IN_WORKING, S.CANCELLED}),
    S.IN_WORKING: frozenset({S.COMPLETED_BY_PROVIDER}),
    S.COMPLETED_BY_PROVIDER: frozenset({S.COMPLETED}),
}

# Statuses that still hold a date range / time slot.
HOTEL_ACTIVE: frozenset[BookingStatus] = frozenset({S.PENDING, S.CONFIRMED})
SERVICE_ACTIVE: frozenset[BookingStatus] = frozenset(
    {S.PENDING, S.NEED_ACCEPT, S.CONFIRMED, S.IN_WORKING, S.COMPLETED_BY_PROVIDER}
)

# Owner-facing service booking views.
SERVICE_OWNER_ACTIVE: frozenset[BookingStatus] = frozenset(
    {S.CONFIRMED, S.IN_WORKING, S.COMPLETED_BY_PROVIDER}
)
SERVICE_OWNER_PAST: frozenset[BookingStatus] = frozenset({S.COMPLETED})

# Provider-facing service booking views.
SERVICE_PROVIDER_FILTERS: dict[str, frozenset[BookingStatus]] = {
    "new-requests": frozenset({S.NEED_ACCEPT}),
    "upcoming": frozenset({S.CONFIRMED}),
    "ongoing": frozenset({S.IN_WORKING, S.COMPLETED_BY_PROVIDER}),
    "completed": frozenset({S.COMPLETED}),
}


class IllegalTransition(ValueError):
    def __init__(self, current: BookingStatus, target: BookingStatus) -> None:
        super().__init__(f"Cannot move booking from {current.value} to {target.value}")
        self.current = current
        self.target = target


def can_transition(
    table: dict[BookingStatus, frozenset[BookingStatus]],
    current: BookingStatus,
    target: BookingStatus,
) -> bool:
    return target in table.get(current, frozenset())


def ensure_transition(
    table: dict[BookingStatus, frozenset[BookingStatus]],
    current: BookingStatus,
    target: BookingStatus,
) -> None:
    if not can_transition(table, current, target):
        raise IllegalTransition(current, target)
