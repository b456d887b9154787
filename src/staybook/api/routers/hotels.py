"""
staybook.api.routers.hotels

Hotel listings, media, favorites, reviews and inventory.

Responsibilities:
- Partner CRUD for hotels (with custom nightly prices and initial inventory).
- Public search / detail / popular listings.
- Guest favorites and reviews.
- Inventory updates by the partner or a service provider working at the hotel.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from pydantic import BaseModel, Field

from staybook.api.deps import hotel_service, storage_dep
from staybook.api.schemas import (
    HotelOut,
    HotelOwnerOut,
    InventoryItemOut,
    PageOut,
    ReviewOut,
)
from staybook.auth.deps import get_principal, require_roles
from staybook.auth.models import Principal
from staybook.db.repositories.hotels import HotelSort
from staybook.domain.pricing import PriceRange
from staybook.integrations.storage import S3Storage
from staybook.services.hotels import HotelService

router = APIRouter(prefix="/v1/hotels", tags=["hotels"])


class CustomPriceIn(BaseModel):
    start_date: date
    end_date: date
    price_cents: int = Field(gt=0)

    def to_range(self) -> PriceRange:
        return PriceRange(start=self.start_date, end=self.end_date, price_cents=self.price_cents)


class InventoryItemIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    quantity: int = Field(ge=0)
    missing_quantity: int = Field(default=0, ge=0)
    description: str | None = Field(default=None, max_length=1000)


class InventoryChange(BaseModel):
    id: uuid.UUID
    name: str | None = Field(default=None, min_length=1, max_length=200)
    quantity: int | None = Field(default=None, ge=0)
    missing_quantity: int | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=1000)


class HotelFields(BaseModel):
    property_title: str = Field(min_length=1, max_length=200)
    property_address: str = Field(min_length=1, max_length=500)
    property_description: str = ""
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    max_guests: int = Field(ge=1)
    bedrooms: int = Field(default=1, ge=0)
    bathrooms: int = Field(default=1, ge=0)
    smart_lock_code: str | None = None
    key_box_pin: str | None = None
    amenities: list[str] = Field(default_factory=list)
    house_rules: str | None = None
    security_keys: str | None = None
    local_tips: str | None = None
    base_price_cents: int = Field(gt=0)
    weekly_offer_percent: float = Field(default=0, ge=0, le=100)
    monthly_offer_percent: float = Field(default=0, ge=0, le=100)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    sync_with_airbnb: bool = False
    airbnb_ical_url: str | None = None


class HotelCreateRequest(HotelFields):
    custom_prices: list[CustomPriceIn] = Field(default_factory=list)
    inventory: list[InventoryItemIn] = Field(default_factory=list)


class HotelUpdateRequest(BaseModel):
    property_title: str | None = Field(default=None, min_length=1, max_length=200)
    property_address: str | None = Field(default=None, min_length=1, max_length=500)
    property_description: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    max_guests: int | None = Field(default=None, ge=1)
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    smart_lock_code: str | None = None
    key_box_pin: str | None = None
    amenities: list[str] | None = None
    house_rules: str | None = None
    security_keys: str | None = None
    local_tips: str | None = None
    base_price_cents: int | None = Field(default=None, gt=0)
    weekly_offer_percent: float | None = Field(default=None, ge=0, le=100)
    monthly_offer_percent: float | None = Field(default=None, ge=0, le=100)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    sync_with_airbnb: bool | None = None
    airbnb_ical_url: str | None = None
    custom_prices: list[CustomPriceIn] | None = None


class ReviewRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class FavoriteResponse(BaseModel):
    hotel_id: uuid.UUID
    favorite: bool


@router.post("", response_model=HotelOwnerOut, status_code=201)
async def create_hotel(
    body: HotelCreateRequest,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelService = Depends(hotel_service),
) -> HotelOwnerOut:
    hotel = await svc.create(
        principal,
        fields=body.model_dump(exclude={"custom_prices", "inventory"}),
        custom_prices=[p.to_range() for p in body.custom_prices],
        inventory=[i.model_dump() for i in body.inventory],
    )
    return HotelOwnerOut.model_validate(hotel)


@router.get("", response_model=PageOut[HotelOut])
async def search_hotels(
    search: str | None = Query(default=None, max_length=200),
    min_price_cents: int | None = Query(default=None, ge=0),
    max_price_cents: int | None = Query(default=None, ge=0),
    guests: int | None = Query(default=None, ge=1),
    available_from: date | None = Query(default=None, alias="from"),
    available_to: date | None = Query(default=None, alias="to"),
    sort: HotelSort = "newest",
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    svc: HotelService = Depends(hotel_service),
) -> PageOut[HotelOut]:
    page = await svc.search(
        search=search,
        min_price_cents=min_price_cents,
        max_price_cents=max_price_cents,
        min_guests=guests,
        available_from=available_from,
        available_to=available_to,
        sort=sort,
        offset=offset,
        limit=limit,
    )
    return PageOut.of(page, HotelOut)


@router.get("/popular", response_model=list[HotelOut])
async def popular_hotels(
    request: Request, svc: HotelService = Depends(hotel_service)
) -> list[HotelOut]:
    limit = request.app.state.settings.popular_hotels_limit
    return [HotelOut.model_validate(h) for h in await svc.popular(limit=limit)]


@router.get("/mine", response_model=PageOut[HotelOwnerOut])
async def my_hotels(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelService = Depends(hotel_service),
) -> PageOut[HotelOwnerOut]:
    return PageOut.of(await svc.mine(principal, offset=offset, limit=limit), HotelOwnerOut)


@router.get("/favorites", response_model=list[HotelOut])
async def my_favorites(
    principal: Principal = Depends(get_principal), svc: HotelService = Depends(hotel_service)
) -> list[HotelOut]:
    return [HotelOut.model_validate(h) for h in await svc.favorites(principal)]


@router.get("/{hotel_id}", response_model=HotelOut)
async def get_hotel(hotel_id: uuid.UUID, svc: HotelService = Depends(hotel_service)) -> HotelOut:
    return HotelOut.model_validate(await svc.get(hotel_id))


@router.patch("/{hotel_id}", response_model=HotelOwnerOut)
async def update_hotel(
    hotel_id: uuid.UUID,
    body: HotelUpdateRequest,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelService = Depends(hotel_service),
) -> HotelOwnerOut:
    fields: dict[str, Any] = body.model_dump(
        exclude_unset=True, exclude_none=True, exclude={"custom_prices"}
    )
    custom = (
        [p.to_range() for p in body.custom_prices] if body.custom_prices is not None else None
    )
    hotel = await svc.update(principal, hotel_id, fields=fields, custom_prices=custom)
    return HotelOwnerOut.model_validate(hotel)


@router.delete("/{hotel_id}", status_code=204)
async def delete_hotel(
    hotel_id: uuid.UUID,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelService = Depends(hotel_service),
) -> None:
    await svc.delete(principal, hotel_id)


@router.post("/{hotel_id}/media", response_model=HotelOwnerOut)
async def upload_media(
    hotel_id: uuid.UUID,
    files: list[UploadFile] = File(...),
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelService = Depends(hotel_service),
    storage: S3Storage = Depends(storage_dep),
) -> HotelOwnerOut:
    payload = [
        (f.filename or "media", await f.read(), f.content_type or "application/octet-stream")
        for f in files
    ]
    hotel = await svc.add_media(principal, hotel_id, storage=storage, files=payload)
    return HotelOwnerOut.model_validate(hotel)


@router.post("/{hotel_id}/favorite", response_model=FavoriteResponse)
async def toggle_favorite(
    hotel_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    svc: HotelService = Depends(hotel_service),
) -> FavoriteResponse:
    return FavoriteResponse(
        hotel_id=hotel_id, favorite=await svc.toggle_favorite(principal, hotel_id)
    )


# --- Reviews -----------------------------------------------------------------------


@router.post("/{hotel_id}/reviews", response_model=HotelOut, status_code=201)
async def add_review(
    hotel_id: uuid.UUID,
    body: ReviewRequest,
    principal: Principal = Depends(get_principal),
    svc: HotelService = Depends(hotel_service),
) -> HotelOut:
    hotel = await svc.add_review(principal, hotel_id, rating=body.rating, comment=body.comment)
    return HotelOut.model_validate(hotel)


@router.get("/{hotel_id}/reviews", response_model=list[ReviewOut])
async def list_reviews(
    hotel_id: uuid.UUID, svc: HotelService = Depends(hotel_service)
) -> list[ReviewOut]:
    return [ReviewOut.model_validate(r) for r in await svc.reviews(hotel_id)]


# --- Inventory ---------------------------------------------------------------------


@router.post("/{hotel_id}/inventory", response_model=InventoryItemOut, status_code=201)
async def add_inventory_item(
    hotel_id: uuid.UUID,
    body: InventoryItemIn,
    principal: Principal = Depends(require_roles("PROPERTY_OWNER")),
    svc: HotelService = Depends(hotel_service),
) -> InventoryItemOut:
    item = await svc.add_inventory_item(principal, hotel_id, body.model_dump())
    return InventoryItemOut.model_validate(item)


@router.patch("/{hotel_id}/inventory", response_model=list[InventoryItemOut])
async def update_inventory(
    hotel_id: uuid.UUID,
    body: list[InventoryChange],
    principal: Principal = Depends(require_roles("PROPERTY_OWNER", "SERVICE_PROVIDER")),
    svc: HotelService = Depends(hotel_service),
) -> list[InventoryItemOut]:
    items = await svc.update_inventory(
        principal, hotel_id, [c.model_dump(exclude_unset=True) | {"id": c.id} for c in body]
    )
    return [InventoryItemOut.model_validate(i) for i in items]
