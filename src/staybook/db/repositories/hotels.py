"""
staybook.db.repositories.hotels

Repository for `Hotel` entities and the rows hanging off a hotel
(custom prices, inventory items, favorites).
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Literal

from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.db.models import Favorite, Hotel, HotelBooking, InventoryItem
from staybook.db.repositories.paging import Page, paginate
from staybook.domain.transitions import HOTEL_ACTIVE

HotelSort = Literal["newest", "price_asc", "price_desc", "rating"]

_ORDERING = {
    "newest": (Hotel.created_at.desc(),),
    "price_asc": (Hotel.base_price_cents.asc(), Hotel.created_at.desc()),
    "price_desc": (Hotel.base_price_cents.desc(), Hotel.created_at.desc()),
    "rating": (Hotel.rating.desc(), Hotel.review_count.desc()),
}


class HotelRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, hotel: Hotel) -> Hotel:
        self._session.add(hotel)
        await self._session.flush()
        return hotel

    async def get(self, hotel_id: uuid.UUID) -> Hotel | None:
        return await self._session.get(Hotel, hotel_id)

    async def delete(self, hotel: Hotel) -> None:
        await self._session.delete(hotel)
        await self._session.flush()

    async def search(
        self,
        *,
        search: str | None = None,
        min_price_cents: int | None = None,
        max_price_cents: int | None = None,
        min_guests: int | None = None,
        available_from: date | None = None,
        available_to: date | None = None,
        partner_id: uuid.UUID | None = None,
        sort: HotelSort = "newest",
        offset: int = 0,
        limit: int = 20,
    ) -> Page[Hotel]:
        stmt = select(Hotel)
        if partner_id is not None:
            stmt = stmt.where(Hotel.partner_id == partner_id)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Hotel.property_title).like(pattern),
                    func.lower(Hotel.property_address).like(pattern),
                )
            )
        if min_price_cents is not None:
            stmt = stmt.where(Hotel.base_price_cents >= min_price_cents)
        if max_price_cents is not None:
            stmt = stmt.where(Hotel.base_price_cents <= max_price_cents)
        if min_guests is not None:
            stmt = stmt.where(Hotel.max_guests >= min_guests)
        if available_from is not None and available_to is not None:
            # Exclude hotels holding any active booking that overlaps [from, to).
            clash = (
                select(HotelBooking.id)
                .where(
                    HotelBooking.hotel_id == Hotel.id,
                    HotelBooking.status.in_(HOTEL_ACTIVE),
                    HotelBooking.booked_from < available_to,
                    available_from < HotelBooking.booked_to,
                )
                .correlate(Hotel)
            )
            stmt = stmt.where(~exists(clash))
        stmt = stmt.order_by(*_ORDERING[sort])
        return await paginate(self._session, stmt, offset=offset, limit=limit)

    async def popular(self, *, limit: int) -> list[Hotel]:
        stmt = (
            select(Hotel)
            .where(Hotel.review_count > 0)
            .order_by(Hotel.rating.desc(), Hotel.review_count.desc())
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def sync_enabled(self) -> list[Hotel]:
        stmt = select(Hotel).where(
            Hotel.sync_with_airbnb.is_(True), Hotel.airbnb_ical_url.is_not(None)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count(self) -> int:
        return int((await self._session.execute(select(func.count(Hotel.id)))).scalar_one())

    # --- Inventory ---------------------------------------------------------------

    async def inventory_items(
        self, hotel_id: uuid.UUID, item_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, InventoryItem]:
        stmt = select(InventoryItem).where(
            InventoryItem.hotel_id == hotel_id, InventoryItem.id.in_(item_ids)
        )
        return {i.id: i for i in (await self._session.execute(stmt)).scalars().all()}

    # --- Favorites ---------------------------------------------------------------

    async def get_favorite(self, *, user_id: uuid.UUID, hotel_id: uuid.UUID) -> Favorite | None:
        stmt = select(Favorite).where(Favorite.user_id == user_id, Favorite.hotel_id == hotel_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def add_favorite(self, *, user_id: uuid.UUID, hotel_id: uuid.UUID) -> Favorite:
        fav = Favorite(user_id=user_id, hotel_id=hotel_id)
        self._session.add(fav)
        await self._session.flush()
        return fav

    async def remove_favorite(self, fav: Favorite) -> None:
        await self._session.delete(fav)
        await self._session.flush()

    async def favorites_of(self, user_id: uuid.UUID) -> list[Hotel]:
        stmt = (
            select(Hotel)
            .join(Favorite, Favorite.hotel_id == Hotel.id)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc())
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def favorite_ids(self, user_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = select(Favorite.hotel_id).where(Favorite.user_id == user_id)
        return set((await self._session.execute(stmt)).scalars().all())
