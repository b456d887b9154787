"""
staybook.api.schemas

Response models shared by several routers.

Request bodies live next to the endpoint that accepts them; these are the shapes
the API hands back for ORM rows. Money is always integer cents.
"""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from staybook.db.repositories.paging import Page

T = TypeVar("T")


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PageOut(BaseModel, Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int

    @classmethod
    def of(cls, page: Page[Any], item_model: type[BaseModel]) -> PageOut[Any]:
        return cls(
            items=[item_model.model_validate(i) for i in page.items],
            total=page.total,
            offset=page.offset,
            limit=page.limit,
        )


class UserOut(ORMModel):
    id: uuid.UUID
    email: str
    full_name: str
    contact_number: str | None
    country: str | None
    address: str | None
    profile_image: str | None
    role: str
    status: str
    is_stripe_connected: bool
    is_subscribed: bool
    created_at: datetime


class CustomPriceOut(ORMModel):
    start_date: date
    end_date: date
    price_cents: int


class InventoryItemOut(ORMModel):
    id: uuid.UUID
    name: str
    quantity: int
    missing_quantity: int
    description: str | None


class HotelOut(ORMModel):
    id: uuid.UUID
    partner_id: uuid.UUID
    property_title: str
    property_address: str
    property_description: str
    latitude: float | None
    longitude: float | None
    max_guests: int
    bedrooms: int
    bathrooms: int
    amenities: list[str]
    media: list[str]
    house_rules: str | None
    local_tips: str | None
    base_price_cents: int
    weekly_offer_percent: float
    monthly_offer_percent: float
    currency: str
    rating: float
    review_count: int
    custom_prices: list[CustomPriceOut] = Field(default_factory=list)


class HotelOwnerOut(HotelOut):
    # Access details are only shown to the owning partner.
    smart_lock_code: str | None
    key_box_pin: str | None
    security_keys: str | None
    sync_with_airbnb: bool
    airbnb_ical_url: str | None
    inventory_items: list[InventoryItemOut] = Field(default_factory=list)


class ReviewOut(ORMModel):
    id: uuid.UUID
    user_id: uuid.UUID
    rating: int
    comment: str | None
    created_at: datetime


class HotelBookingOut(ORMModel):
    id: uuid.UUID
    hotel_id: uuid.UUID
    user_id: uuid.UUID | None
    partner_id: uuid.UUID
    booked_from: date
    booked_to: date
    guests: int
    nights: int
    subtotal_cents: int
    discount_cents: int
    total_price_cents: int
    currency: str
    status: str
    source: str
    created_at: datetime


class ServiceOut(ORMModel):
    id: uuid.UUID
    provider_id: uuid.UUID
    service_name: str
    service_type: str
    description: str
    experience_years: int
    price_cents: int
    currency: str
    status: str
    cover_image: str | None
    availability: list[dict[str, Any]]
    rating: float
    review_count: int


class ServiceBookingOut(ORMModel):
    id: uuid.UUID
    service_id: uuid.UUID
    provider_id: uuid.UUID
    user_id: uuid.UUID
    hotel_id: uuid.UUID
    property: str
    service_name: str
    offered_services: list[dict[str, Any]]
    date: dt.date
    day: str
    slot_from: str
    slot_to: str
    special_instructions: str | None
    total_price_cents: int
    currency: str
    status: str
    created_at: datetime


class ProofOut(ORMModel):
    booking_id: uuid.UUID
    starting_urls: list[str]
    ending_urls: list[str]
    is_started: bool
    is_ended: bool


class PaymentOut(ORMModel):
    id: uuid.UUID
    booking_type: str
    hotel_booking_id: uuid.UUID | None
    service_booking_id: uuid.UUID | None
    subscription_id: uuid.UUID | None
    amount_cents: int
    currency: str
    status: str
    description: str | None
    created_at: datetime


class CheckoutOut(BaseModel):
    session_id: str
    url: str | None
