"""
tests.test_domain

Pure booking rules: stay pricing, payment splits, status transitions and slots.
"""

from __future__ import annotations

from datetime import date

import pytest

from staybook.db.models import BookingStatus
from staybook.domain.pricing import (
    DiscountPolicy,
    PriceRange,
    average_rating,
    hotel_split,
    percent_of,
    quote_stay,
    ranges_overlap,
    service_split,
)
from staybook.domain.slots import day_matches, find_day, has_slot, weekday_name
from staybook.domain.transitions import (
    HOTEL_TRANSITIONS,
    SERVICE_TRANSITIONS,
    IllegalTransition,
    can_transition,
    ensure_transition,
)

POLICY = DiscountPolicy(weekly_percent=10, monthly_percent=20)


def test_quote_uses_custom_price_for_covered_nights() -> None:
    q = quote_stay(
        base_price_cents=10_000,
        custom_prices=[PriceRange(date(2030, 1, 2), date(2030, 1, 2), 15_000)],
        start=date(2030, 1, 1),
        end=date(2030, 1, 4),
        policy=POLICY,
    )
    assert q.nights == 3
    assert q.subtotal_cents == 35_000
    assert q.discount_cents == 0
    assert q.total_cents == 35_000


def test_weekly_and_monthly_discounts_do_not_stack() -> None:
    week = quote_stay(
        base_price_cents=10_000, custom_prices=[], start=date(2030, 1, 1), end=date(2030, 1, 8), policy=POLICY
    )
    assert week.nights == 7
    assert week.discount_percent == 10
    assert week.total_cents == 63_000

    month = quote_stay(
        base_price_cents=10_000, custom_prices=[], start=date(2030, 1, 1), end=date(2030, 1, 29), policy=POLICY
    )
    assert month.nights == 28
    assert month.discount_percent == 20
    assert month.total_cents == 224_000


def test_quote_rejects_empty_stay() -> None:
    with pytest.raises(ValueError):
        quote_stay(
            base_price_cents=10_000, custom_prices=[], start=date(2030, 1, 1), end=date(2030, 1, 1), policy=POLICY
        )


def test_percent_rounds_half_up() -> None:
    assert percent_of(1_010, 5) == 51
    assert percent_of(999, 15) == 150


def test_average_rating_rounds_half_up() -> None:
    assert average_rating(4.25) == 4.3
    assert average_rating(4.35) == 4.4
    assert average_rating(4.5) == 4.5
    assert average_rating(0.0) == 0.0


def test_hotel_split_adds_vat_on_top_and_keeps_commission() -> None:
    split = hotel_split(amount_cents=10_000, commission_percent=15, vat_percent=5)
    assert split.total_cents == 10_500
    assert split.application_fee_cents == 2_000
    assert split.partner_share_cents == 8_500


def test_service_split() -> None:
    split = service_split(total_cents=5_000, platform_percent=10)
    assert split.admin_cents == 500
    assert split.provider_cents == 4_500


def test_back_to_back_stays_do_not_overlap() -> None:
    assert not ranges_overlap(date(2030, 1, 1), date(2030, 1, 3), date(2030, 1, 3), date(2030, 1, 5))
    assert ranges_overlap(date(2030, 1, 1), date(2030, 1, 4), date(2030, 1, 3), date(2030, 1, 5))


def test_transition_tables() -> None:
    S = BookingStatus
    assert can_transition(HOTEL_TRANSITIONS, S.PENDING, S.CONFIRMED)
    assert not can_transition(HOTEL_TRANSITIONS, S.EXPIRED, S.CONFIRMED)
    assert can_transition(SERVICE_TRANSITIONS, S.NEED_ACCEPT, S.REJECTED)
    assert not can_transition(SERVICE_TRANSITIONS, S.PENDING, S.CONFIRMED)
    # Terminal states have no way out.
    for terminal in (S.COMPLETED, S.CANCELLED, S.REJECTED):
        assert not can_transition(SERVICE_TRANSITIONS, terminal, S.CONFIRMED)

    with pytest.raises(IllegalTransition) as exc:
        ensure_transition(SERVICE_TRANSITIONS, S.IN_WORKING, S.CANCELLED)
    assert exc.value.current == S.IN_WORKING


def test_slot_lookup_normalizes_whitespace_and_case() -> None:
    availability = [{"day": "Monday", "slots": [{"from": "09:00 AM", "to": "11:00 AM"}]}]
    entry = find_day(availability, " monday ")
    assert entry is not None
    assert has_slot(entry, "09:00  AM", "11:00 AM ")
    assert not has_slot(entry, "10:00 AM", "11:00 AM")
    assert find_day(availability, "Tuesday") is None


def test_weekday_matching() -> None:
    monday = date(2030, 1, 7)
    assert weekday_name(monday) == "Monday"
    assert day_matches("monday", monday)
    assert not day_matches("Sunday", monday)
