"""
staybook.db.models

Persistence schema for the marketplace.

Responsibilities:
- Accounts: User
- Hotels: Hotel, CustomPrice, InventoryItem, Favorite, Review, HotelBooking
- Services: Service, ServiceBooking, ProofVideo
- Money: Payment, ProcessedWebhookEvent, SubscriptionPlan, UserSubscription
- Communication: Notification, Channel, Message

Money is stored as integer minor units (cents) next to a lowercase ISO currency code.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staybook.db.base import Base


def utcnow() -> datetime:
    # Naive UTC timestamps; SQLite has no tz-aware column type.
    return datetime.now(UTC).replace(tzinfo=None)


def _enum(cls: type[enum.Enum]) -> Enum:
    return Enum(cls, native_enum=False, length=32, validate_strings=True)


class UserRole(enum.StrEnum):
    USER = "USER"
    PROPERTY_OWNER = "PROPERTY_OWNER"
    SERVICE_PROVIDER = "SERVICE_PROVIDER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class UserStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETED = "DELETED"


class BookingStatus(enum.StrEnum):
    # Shared by hotel and service bookings; see staybook.domain.transitions for legal moves.
    PENDING = "PENDING"
    NEED_ACCEPT = "NEED_ACCEPT"
    CONFIRMED = "CONFIRMED"
    IN_WORKING = "IN_WORKING"
    COMPLETED_BY_PROVIDER = "COMPLETED_BY_PROVIDER"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class BookingSource(enum.StrEnum):
    DIRECT = "DIRECT"
    AIRBNB = "AIRBNB"


class BookingType(enum.StrEnum):
    HOTEL = "HOTEL"
    SERVICE = "SERVICE"
    SUBSCRIPTION = "SUBSCRIPTION"


class ServiceStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"


class PaymentStatus(enum.StrEnum):
    UNPAID = "UNPAID"
    IN_HOLD = "IN_HOLD"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class SubscriptionStatus(enum.StrEnum):
    INCOMPLETE = "INCOMPLETE"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELED = "CANCELED"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    full_name: Mapped[str] = mapped_column(String(256), nullable=False)
    contact_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    profile_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    role: Mapped[UserRole] = mapped_column(_enum(UserRole), nullable=False, index=True)
    status: Mapped[UserStatus] = mapped_column(
        _enum(UserStatus), nullable=False, default=UserStatus.ACTIVE, index=True
    )

    fcm_token: Mapped[str | None] = mapped_column(String(512), nullable=True)

    stripe_account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_stripe_connected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_subscribed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class Hotel(Base):
    __tablename__ = "hotels"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    partner_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    property_title: Mapped[str] = mapped_column(String(256), nullable=False)
    property_address: Mapped[str] = mapped_column(String(512), nullable=False)
    property_description: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float | None] = mapped_column(nullable=True)
    longitude: Mapped[float | None] = mapped_column(nullable=True)

    max_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False)

    smart_lock_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    key_box_pin: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    media: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    house_rules: Mapped[str | None] = mapped_column(Text, nullable=True)
    security_keys: Mapped[str | None] = mapped_column(Text, nullable=True)
    local_tips: Mapped[str | None] = mapped_column(Text, nullable=True)

    base_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    weekly_offer_percent: Mapped[float] = mapped_column(nullable=False, default=0.0)
    monthly_offer_percent: Mapped[float] = mapped_column(nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="usd")

    rating: Mapped[float] = mapped_column(nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    sync_with_airbnb: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    airbnb_ical_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    custom_prices: Mapped[list[CustomPrice]] = relationship(
        back_populates="hotel", cascade="all, delete-orphan", lazy="selectin"
    )
    inventory_items: Mapped[list[InventoryItem]] = relationship(
        back_populates="hotel", cascade="all, delete-orphan", lazy="selectin"
    )


class CustomPrice(Base):
    __tablename__ = "custom_prices"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    hotel_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Inclusive on both ends: a night dated start_date..end_date uses `price_cents`.
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    hotel: Mapped[Hotel] = relationship(back_populates="custom_prices")


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    hotel_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    missing_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    hotel: Mapped[Hotel] = relationship(back_populates="inventory_items")


class Favorite(Base):
    __tablename__ = "favorites"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    hotel_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "hotel_id", name="uq_favorites_user_hotel"),)


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    hotel_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class HotelBooking(Base):
    __tablename__ = "hotel_bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    hotel_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Null for bookings imported from an external calendar.
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )
    partner_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    # Stay is [booked_from, booked_to): booked_to is the check-out day.
    booked_from: Mapped[date] = mapped_column(Date, nullable=False)
    booked_to: Mapped[date] = mapped_column(Date, nullable=False)
    guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    nights: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="usd")

    status: Mapped[BookingStatus] = mapped_column(
        _enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True
    )
    source: Mapped[BookingSource] = mapped_column(
        _enum(BookingSource), nullable=False, default=BookingSource.DIRECT
    )
    external_booking_id: Mapped[str | None] = mapped_column(String(256), nullable=True)
    checkout_session_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    hotel: Mapped[Hotel] = relationship(lazy="selectin")

    __table_args__ = (
        Index("ix_hotel_bookings_hotel_dates", "hotel_id", "booked_from", "booked_to"),
        # A shared iCal feed can list the same reservation UID for several listings.
        UniqueConstraint("hotel_id", "external_booking_id", name="uq_hotel_bookings_external"),
    )


class Service(Base):
    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    service_name: Mapped[str] = mapped_column(String(256), nullable=False)
    service_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    experience_years: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="usd")
    status: Mapped[ServiceStatus] = mapped_column(
        _enum(ServiceStatus), nullable=False, default=ServiceStatus.PENDING, index=True
    )
    cover_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    # [{"day": "Monday", "slots": [{"from": "09:00 AM", "to": "11:00 AM"}]}]
    availability: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    rating: Mapped[float] = mapped_column(nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class ServiceBooking(Base):
    __tablename__ = "service_bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("services.id"), nullable=False, index=True
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    # The property owner who ordered the service.
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    hotel_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("hotels.id"), nullable=False, index=True
    )

    property: Mapped[str] = mapped_column(String(256), nullable=False)
    service_name: Mapped[str] = mapped_column(String(256), nullable=False)
    offered_services: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    day: Mapped[str] = mapped_column(String(16), nullable=False)
    slot_from: Mapped[str] = mapped_column(String(32), nullable=False)
    slot_to: Mapped[str] = mapped_column(String(32), nullable=False)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="usd")
    status: Mapped[BookingStatus] = mapped_column(
        _enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True
    )
    checkout_session_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # Set when the payment hold is placed; the accept window is measured from here.
    held_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    service: Mapped[Service] = relationship(lazy="selectin")

    __table_args__ = (Index("ix_service_bookings_slot", "service_id", "date", "slot_from"),)


class ProofVideo(Base):
    __tablename__ = "proof_videos"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("service_bookings.id"), nullable=False, unique=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("services.id"), nullable=False
    )
    starting_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    ending_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_started: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_ended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    # Payee (hotel partner or service provider); null for subscription payments.
    partner_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )
    booking_type: Mapped[BookingType] = mapped_column(_enum(BookingType), nullable=False, index=True)
    hotel_booking_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("hotel_bookings.id"), nullable=True, index=True
    )
    service_booking_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("service_bookings.id"), nullable=True, index=True
    )
    subscription_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("user_subscriptions.id"), nullable=True
    )

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="usd")
    status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus), nullable=False, default=PaymentStatus.UNPAID, index=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    checkout_session_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True
    )
    payment_intent_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    charge_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    transfer_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # Split bookkeeping; admin_amount_cents is platform revenue.
    vat_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    admin_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    partner_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class ProcessedWebhookEvent(Base):
    __tablename__ = "processed_webhook_events"

    # Stripe event id ("evt_..."); primary key makes re-delivery a no-op.
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="usd")
    interval: Mapped[str] = mapped_column(String(16), nullable=False)
    interval_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    stripe_product_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    stripe_price_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("subscription_plans.id"), nullable=False
    )
    stripe_subscription_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    stripe_price_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[SubscriptionStatus] = mapped_column(
        _enum(SubscriptionStatus), nullable=False, default=SubscriptionStatus.INCOMPLETE, index=True
    )
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    end_date: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    booking_type: Mapped[BookingType | None] = mapped_column(_enum(BookingType), nullable=True)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pushed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)


class Channel(Base):
    __tablename__ = "channels"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    channel_name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    person1_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    person2_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    channel_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    files: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (Index("ix_messages_channel_created", "channel_id", "created_at"),)


class ContactReveal(Base):
    """
    A property owner's request to see a service provider's contact details.

    Contact details stay hidden until an admin sets `is_shown`.
    """

    __tablename__ = "contact_reveals"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    property_owner_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    is_shown: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("provider_id", "property_owner_id", name="uq_contact_reveals_pair"),
    )
