"""
staybook.domain.pricing

Stay pricing and payment split arithmetic.

Responsibilities:
- Resolve the nightly price for each night of a stay (custom ranges override the base price).
- Apply the single tiered stay discount (monthly beats weekly).
- Compute the hotel checkout split (VAT + commission) and the service capture split.

All amounts are integer cents; percentages are rounded half-up to the nearest cent.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal


@dataclass(frozen=True, slots=True)
class PriceRange:
    # Inclusive on both ends.
    start: date
    end: date
    price_cents: int

    def covers(self, night: date) -> bool:
        return self.start <= night <= self.end


@dataclass(frozen=True, slots=True)
class DiscountPolicy:
    weekly_percent: float = 0.0
    monthly_percent: float = 0.0
    weekly_min_nights: int = 7
    monthly_min_nights: int = 28


@dataclass(frozen=True, slots=True)
class StayQuote:
    nights: int
    subtotal_cents: int
    discount_percent: float
    discount_cents: int

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents - self.discount_cents


@dataclass(frozen=True, slots=True)
class HotelSplit:
    amount_cents: int
    vat_cents: int
    commission_cents: int

    @property
    def total_cents(self) -> int:
        # What the guest is charged.
        return self.amount_cents + self.vat_cents

    @property
    def application_fee_cents(self) -> int:
        return self.commission_cents + self.vat_cents

    @property
    def partner_share_cents(self) -> int:
        return self.total_cents - self.application_fee_cents


@dataclass(frozen=True, slots=True)
class ServiceSplit:
    total_cents: int
    admin_cents: int

    @property
    def provider_cents(self) -> int:
        return self.total_cents - self.admin_cents


def percent_of(amount_cents: int, percent: float | int) -> int:
    value = Decimal(amount_cents) * Decimal(str(percent)) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def average_rating(value: float) -> float:
    # One decimal, halves rounded up: 4.25 -> 4.3.
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def iter_nights(start: date, end: date) -> Iterator[date]:
    """
    Yield each night of a `[start, end)` stay; the check-out day is not a night.
    """

    night = start
    while night < end:
        yield night
        night += timedelta(days=1)


def nightly_prices(
    *, base_price_cents: int, custom_prices: Iterable[PriceRange], start: date, end: date
) -> list[int]:
    ranges = list(custom_prices)
    prices: list[int] = []
    for night in iter_nights(start, end):
        # First matching custom range wins; overlapping ranges are rejected at write time.
        override = next((r.price_cents for r in ranges if r.covers(night)), None)
        prices.append(base_price_cents if override is None else override)
    return prices


def discount_percent_for(nights: int, policy: DiscountPolicy) -> float:
    if nights >= policy.monthly_min_nights and policy.monthly_percent > 0:
        return policy.monthly_percent
    if nights >= policy.weekly_min_nights and policy.weekly_percent > 0:
        return policy.weekly_percent
    return 0.0


def quote_stay(
    *,
    base_price_cents: int,
    custom_prices: Iterable[PriceRange],
    start: date,
    end: date,
    policy: DiscountPolicy,
) -> StayQuote:
    if end <= start:
        raise ValueError("stay must end after it starts")

    prices = nightly_prices(
        base_price_cents=base_price_cents, custom_prices=custom_prices, start=start, end=end
    )
    subtotal = sum(prices)
    pct = discount_percent_for(len(prices), policy)
    return StayQuote(
        nights=len(prices),
        subtotal_cents=subtotal,
        discount_percent=pct,
        discount_cents=percent_of(subtotal, pct) if pct else 0,
    )


def hotel_split(*, amount_cents: int, commission_percent: int, vat_percent: int) -> HotelSplit:
    return HotelSplit(
        amount_cents=amount_cents,
        vat_cents=percent_of(amount_cents, vat_percent),
        commission_cents=percent_of(amount_cents, commission_percent),
    )


def service_split(*, total_cents: int, platform_percent: int) -> ServiceSplit:
    return ServiceSplit(total_cents=total_cents, admin_cents=percent_of(total_cents, platform_percent))


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """
    Half-open overlap test for `[a_start, a_end)` and `[b_start, b_end)`.
    Back-to-back stays (one checks out the day the other checks in) do not overlap.
    """

    return a_start < b_end and b_start < a_end
