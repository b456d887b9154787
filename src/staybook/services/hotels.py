"""
staybook.services.hotels

Hotel (property) catalogue: listing management, discovery, favorites, media,
inventory and reviews.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import CustomPrice, Hotel, InventoryItem, Review, UserRole
from staybook.db.repositories.hotel_bookings import HotelBookingRepo
from staybook.db.repositories.hotels import HotelRepo, HotelSort
from staybook.db.repositories.paging import Page
from staybook.db.repositories.reviews import ReviewRepo
from staybook.db.repositories.service_bookings import ServiceBookingRepo
from staybook.db.repositories.users import UserRepo
from staybook.domain.pricing import PriceRange, average_rating
from staybook.integrations.storage import S3Storage
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, Conflict, Forbidden, NotFound
from staybook.services.guards import active_user

log = get_logger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "property_title",
        "property_address",
        "property_description",
        "latitude",
        "longitude",
        "max_guests",
        "bedrooms",
        "bathrooms",
        "smart_lock_code",
        "key_box_pin",
        "amenities",
        "house_rules",
        "security_keys",
        "local_tips",
        "base_price_cents",
        "weekly_offer_percent",
        "monthly_offer_percent",
        "currency",
        "sync_with_airbnb",
        "airbnb_ical_url",
    }
)


def validate_custom_prices(ranges: list[PriceRange]) -> None:
    for r in ranges:
        if r.end < r.start:
            raise BadRequest("Custom price range ends before it starts")
        if r.price_cents <= 0:
            raise BadRequest("Custom price must be positive")
    ordered = sorted(ranges, key=lambda r: r.start)
    for a, b in zip(ordered, ordered[1:], strict=False):
        # Inclusive ranges: sharing a single day is already an overlap.
        if b.start <= a.end:
            raise BadRequest("Custom price ranges overlap")


def price_ranges(hotel: Hotel) -> list[PriceRange]:
    return [
        PriceRange(start=cp.start_date, end=cp.end_date, price_cents=cp.price_cents)
        for cp in hotel.custom_prices
    ]


class HotelService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._hotels = HotelRepo(session)
        self._reviews = ReviewRepo(session)
        self._users = UserRepo(session)

    async def get(self, hotel_id: uuid.UUID) -> Hotel:
        hotel = await self._hotels.get(hotel_id)
        if hotel is None:
            raise NotFound("Hotel not found")
        return hotel

    async def _owned(self, principal: Principal, hotel_id: uuid.UUID) -> Hotel:
        hotel = await self.get(hotel_id)
        if hotel.partner_id != principal.user_id and not principal.is_admin:
            raise Forbidden("You do not own this hotel")
        return hotel

    async def create(
        self,
        principal: Principal,
        *,
        fields: dict[str, Any],
        custom_prices: list[PriceRange],
        inventory: list[dict[str, Any]],
    ) -> Hotel:
        owner = await active_user(self._users, principal)
        if owner.role != UserRole.PROPERTY_OWNER:
            raise Forbidden("Only property owners can list hotels")
        validate_custom_prices(custom_prices)
        if fields.get("sync_with_airbnb") and not fields.get("airbnb_ical_url"):
            raise BadRequest("Airbnb sync requires an iCal url")

        hotel = Hotel(
            partner_id=owner.id,
            **{k: v for k, v in fields.items() if k in EDITABLE_FIELDS},
            media=[],
            custom_prices=[
                CustomPrice(start_date=r.start, end_date=r.end, price_cents=r.price_cents)
                for r in custom_prices
            ],
            inventory_items=[InventoryItem(**item) for item in inventory],
        )
        await self._hotels.add(hotel)
        await self._session.commit()
        log.info("hotel_created", hotel_id=str(hotel.id), partner_id=str(owner.id))
        return hotel

    async def update(
        self,
        principal: Principal,
        hotel_id: uuid.UUID,
        *,
        fields: dict[str, Any],
        custom_prices: list[PriceRange] | None = None,
    ) -> Hotel:
        hotel = await self._owned(principal, hotel_id)
        for key, value in fields.items():
            if key in EDITABLE_FIELDS:
                setattr(hotel, key, value)
        if hotel.sync_with_airbnb and not hotel.airbnb_ical_url:
            raise BadRequest("Airbnb sync requires an iCal url")
        if custom_prices is not None:
            validate_custom_prices(custom_prices)
            # Replace wholesale; delete-orphan cascade drops the old rows.
            hotel.custom_prices = [
                CustomPrice(start_date=r.start, end_date=r.end, price_cents=r.price_cents)
                for r in custom_prices
            ]
        await self._session.commit()
        return hotel

    async def delete(self, principal: Principal, hotel_id: uuid.UUID) -> None:
        hotel = await self._owned(principal, hotel_id)
        if await HotelBookingRepo(self._session).has_active(hotel.id):
            raise Conflict("Hotel has active bookings")
        await self._hotels.delete(hotel)
        await self._session.commit()
        log.info("hotel_deleted", hotel_id=str(hotel_id))

    async def search(
        self,
        *,
        search: str | None,
        min_price_cents: int | None,
        max_price_cents: int | None,
        min_guests: int | None,
        available_from: date | None,
        available_to: date | None,
        sort: HotelSort,
        offset: int,
        limit: int,
    ) -> Page[Hotel]:
        if (available_from is None) != (available_to is None):
            raise BadRequest("Both from and to are required for availability search")
        if available_from is not None and available_to is not None and available_to <= available_from:
            raise BadRequest("to must be after from")
        return await self._hotels.search(
            search=search,
            min_price_cents=min_price_cents,
            max_price_cents=max_price_cents,
            min_guests=min_guests,
            available_from=available_from,
            available_to=available_to,
            sort=sort,
            offset=offset,
            limit=limit,
        )

    async def mine(self, principal: Principal, *, offset: int, limit: int) -> Page[Hotel]:
        return await self._hotels.search(partner_id=principal.user_id, offset=offset, limit=limit)

    async def popular(self, *, limit: int) -> list[Hotel]:
        return await self._hotels.popular(limit=limit)

    async def add_media(
        self,
        principal: Principal,
        hotel_id: uuid.UUID,
        *,
        storage: S3Storage,
        files: list[tuple[str, bytes, str]],
    ) -> Hotel:
        hotel = await self._owned(principal, hotel_id)
        urls = []
        for filename, body, content_type in files:
            if not content_type.startswith(("image/", "video/")):
                raise BadRequest(f"Unsupported media type: {content_type}")
            urls.append(
                await storage.put(
                    prefix=f"hotels/{hotel.id}", filename=filename, body=body, content_type=content_type
                )
            )
        # Reassign so the JSON column is flagged dirty.
        hotel.media = [*hotel.media, *urls]
        await self._session.commit()
        return hotel

    # --- Favorites ---------------------------------------------------------------

    async def toggle_favorite(self, principal: Principal, hotel_id: uuid.UUID) -> bool:
        """
        Returns True when the hotel is now a favorite, False when it was removed.
        """

        await self.get(hotel_id)
        existing = await self._hotels.get_favorite(user_id=principal.user_id, hotel_id=hotel_id)
        if existing is not None:
            await self._hotels.remove_favorite(existing)
            await self._session.commit()
            return False
        await self._hotels.add_favorite(user_id=principal.user_id, hotel_id=hotel_id)
        await self._session.commit()
        return True

    async def favorites(self, principal: Principal) -> list[Hotel]:
        return await self._hotels.favorites_of(principal.user_id)

    # --- Inventory ---------------------------------------------------------------

    async def update_inventory(
        self, principal: Principal, hotel_id: uuid.UUID, items: list[dict[str, Any]]
    ) -> list[InventoryItem]:
        hotel = await self.get(hotel_id)
        if hotel.partner_id != principal.user_id and not principal.is_admin:
            works_here = principal.has_role(UserRole.SERVICE_PROVIDER.value) and (
                await ServiceBookingRepo(self._session).provider_works_at(
                    provider_id=principal.user_id, hotel_id=hotel.id
                )
            )
            if not works_here:
                raise Forbidden("You cannot update this hotel's inventory")

        by_id = await self._hotels.inventory_items(hotel.id, [i["id"] for i in items])
        updated: list[InventoryItem] = []
        for change in items:
            item = by_id.get(change["id"])
            if item is None:
                raise NotFound(f"Inventory item {change['id']} not found in this hotel")
            for key in ("name", "quantity", "missing_quantity", "description"):
                if change.get(key) is not None:
                    setattr(item, key, change[key])
            if item.missing_quantity > item.quantity:
                raise BadRequest("Missing quantity cannot exceed quantity")
            updated.append(item)
        await self._session.commit()
        return updated

    async def add_inventory_item(
        self, principal: Principal, hotel_id: uuid.UUID, item: dict[str, Any]
    ) -> InventoryItem:
        hotel = await self._owned(principal, hotel_id)
        row = InventoryItem(hotel_id=hotel.id, **item)
        hotel.inventory_items.append(row)
        await self._session.commit()
        return row

    # --- Reviews -----------------------------------------------------------------

    async def add_review(
        self, principal: Principal, hotel_id: uuid.UUID, *, rating: int, comment: str | None
    ) -> Hotel:
        if not 1 <= rating <= 5:
            raise BadRequest("Rating must be between 1 and 5")
        await active_user(self._users, principal)
        hotel = await self.get(hotel_id)
        await self._reviews.add(
            user_id=principal.user_id, hotel_id=hotel.id, rating=rating, comment=comment
        )
        avg, count = await self._reviews.stats_for_hotel(hotel.id)
        hotel.rating = average_rating(avg)
        hotel.review_count = count
        await self._session.commit()
        return hotel

    async def reviews(self, hotel_id: uuid.UUID) -> list[Review]:
        await self.get(hotel_id)
        return await self._reviews.for_hotel(hotel_id)
