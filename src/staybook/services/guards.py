"""
staybook.services.guards

Checks shared by services: resolve the caller's account and apply booking status moves.
"""

from __future__ import annotations

from staybook.auth.models import Principal
from staybook.db.models import BookingStatus, HotelBooking, ServiceBooking, User, UserStatus
from staybook.db.repositories.users import UserRepo
from staybook.domain.transitions import IllegalTransition, ensure_transition
from staybook.services.errors import Conflict, Forbidden, NotFound

Table = dict[BookingStatus, frozenset[BookingStatus]]


async def active_user(users: UserRepo, principal: Principal) -> User:
    user = await users.get(principal.user_id)
    if user is None or user.status == UserStatus.DELETED:
        raise NotFound("User not found")
    if user.status != UserStatus.ACTIVE:
        raise Forbidden("Account is not active")
    return user


def check_transition(
    table: Table, booking: HotelBooking | ServiceBooking, target: BookingStatus
) -> None:
    try:
        ensure_transition(table, booking.status, target)
    except IllegalTransition as e:
        raise Conflict(str(e)) from e


def apply_transition(
    table: Table, booking: HotelBooking | ServiceBooking, target: BookingStatus
) -> None:
    check_transition(table, booking, target)
    booking.status = target
