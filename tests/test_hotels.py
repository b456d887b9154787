"""
tests.test_hotels

Hotel listings: create/search/update, favorites, reviews and inventory.
"""

from __future__ import annotations

import pytest

from tests.conftest import create_hotel, future, register


@pytest.mark.asyncio
async def test_owner_creates_hotel_and_public_view_hides_access_codes(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    assert hotel["smart_lock_code"] == "4321"
    assert [i["name"] for i in hotel["inventory_items"]] == ["Towels"]

    r = await client.get(f"/v1/hotels/{hotel['id']}")
    assert r.status_code == 200
    assert "smart_lock_code" not in r.json()

    guest = await register(client)
    r = await client.post(
        "/v1/hotels",
        json={"property_title": "X", "property_address": "Y", "max_guests": 1, "base_price_cents": 100},
        headers=guest.headers,
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_overlapping_custom_prices_are_rejected(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    r = await client.post(
        "/v1/hotels",
        json={
            "property_title": "Overlap",
            "property_address": "Somewhere",
            "max_guests": 2,
            "base_price_cents": 10_000,
            "custom_prices": [
                {"start_date": "2030-01-01", "end_date": "2030-01-10", "price_cents": 12_000},
                {"start_date": "2030-01-05", "end_date": "2030-01-15", "price_cents": 13_000},
            ],
        },
        headers=owner.headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_search_filters_and_availability(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    loft = await create_hotel(client, owner, property_title="Harbour Loft", max_guests=2)
    villa = await create_hotel(
        client, owner, property_title="Hill Villa", max_guests=8, base_price_cents=40_000
    )

    r = await client.get("/v1/hotels", params={"search": "villa"})
    assert [h["id"] for h in r.json()["items"]] == [villa["id"]]

    r = await client.get("/v1/hotels", params={"guests": 4})
    assert [h["id"] for h in r.json()["items"]] == [villa["id"]]

    r = await client.get("/v1/hotels", params={"sort": "price_asc"})
    assert [h["id"] for h in r.json()["items"]] == [loft["id"], villa["id"]]

    guest = await register(client)
    r = await client.post(
        "/v1/hotel-bookings",
        json={
            "hotel_id": loft["id"],
            "booked_from": future(10).isoformat(),
            "booked_to": future(12).isoformat(),
            "guests": 2,
        },
        headers=guest.headers,
    )
    assert r.status_code == 201

    params = {"from": future(11).isoformat(), "to": future(13).isoformat()}
    r = await client.get("/v1/hotels", params=params)
    assert [h["id"] for h in r.json()["items"]] == [villa["id"]]

    r = await client.get("/v1/hotels", params={"from": future(11).isoformat()})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_update_and_delete_only_by_owner(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    other = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)

    r = await client.patch(
        f"/v1/hotels/{hotel['id']}", json={"property_title": "Stolen"}, headers=other.headers
    )
    assert r.status_code == 403

    r = await client.patch(
        f"/v1/hotels/{hotel['id']}",
        json={
            "property_title": "Harbour Loft II",
            "custom_prices": [{"start_date": "2030-02-01", "end_date": "2030-02-03", "price_cents": 9_000}],
        },
        headers=owner.headers,
    )
    assert r.status_code == 200
    assert r.json()["property_title"] == "Harbour Loft II"
    assert len(r.json()["custom_prices"]) == 1

    r = await client.patch(
        f"/v1/hotels/{hotel['id']}", json={"sync_with_airbnb": True}, headers=owner.headers
    )
    assert r.status_code == 400

    r = await client.delete(f"/v1/hotels/{hotel['id']}", headers=owner.headers)
    assert r.status_code == 204
    r = await client.get(f"/v1/hotels/{hotel['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_media_upload(client, storage) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    r = await client.post(
        f"/v1/hotels/{hotel['id']}/media",
        files=[("files", ("a.jpg", b"jpeg", "image/jpeg")), ("files", ("b.mp4", b"mp4", "video/mp4"))],
        headers=owner.headers,
    )
    assert r.status_code == 200, r.text
    assert len(r.json()["media"]) == 2
    assert all(k.startswith(f"hotels/{hotel['id']}/") for k in storage.objects)


@pytest.mark.asyncio
async def test_favorites_toggle(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    guest = await register(client)

    r = await client.post(f"/v1/hotels/{hotel['id']}/favorite", headers=guest.headers)
    assert r.json()["favorite"] is True
    r = await client.get("/v1/hotels/favorites", headers=guest.headers)
    assert [h["id"] for h in r.json()] == [hotel["id"]]

    r = await client.post(f"/v1/hotels/{hotel['id']}/favorite", headers=guest.headers)
    assert r.json()["favorite"] is False
    r = await client.get("/v1/hotels/favorites", headers=guest.headers)
    assert r.json() == []


@pytest.mark.asyncio
async def test_reviews_update_rating_and_popular(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    for rating in (5, 4):
        guest = await register(client)
        r = await client.post(
            f"/v1/hotels/{hotel['id']}/reviews", json={"rating": rating}, headers=guest.headers
        )
        assert r.status_code == 201

    r = await client.get(f"/v1/hotels/{hotel['id']}")
    assert r.json()["rating"] == 4.5
    assert r.json()["review_count"] == 2

    r = await client.get(f"/v1/hotels/{hotel['id']}/reviews")
    assert len(r.json()) == 2

    r = await client.get("/v1/hotels/popular")
    assert [h["id"] for h in r.json()] == [hotel["id"]]


@pytest.mark.asyncio
async def test_inventory_changes(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    towels = hotel["inventory_items"][0]

    r = await client.post(
        f"/v1/hotels/{hotel['id']}/inventory",
        json={"name": "Pillows", "quantity": 4},
        headers=owner.headers,
    )
    assert r.status_code == 201
    assert r.json()["name"] == "Pillows"

    r = await client.patch(
        f"/v1/hotels/{hotel['id']}/inventory",
        json=[{"id": towels["id"], "missing_quantity": 2}],
        headers=owner.headers,
    )
    assert r.status_code == 200
    assert r.json()[0]["missing_quantity"] == 2

    r = await client.patch(
        f"/v1/hotels/{hotel['id']}/inventory",
        json=[{"id": towels["id"], "missing_quantity": 99}],
        headers=owner.headers,
    )
    assert r.status_code == 400

    # A provider with no booking at this hotel may not touch its inventory.
    provider = await register(client, "SERVICE_PROVIDER")
    r = await client.patch(
        f"/v1/hotels/{hotel['id']}/inventory",
        json=[{"id": towels["id"], "quantity": 1}],
        headers=provider.headers,
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_rating_average_rounds_half_up(client) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    hotel = await create_hotel(client, owner)
    for rating in (5, 5, 4, 3):
        guest = await register(client)
        r = await client.post(
            f"/v1/hotels/{hotel['id']}/reviews", json={"rating": rating}, headers=guest.headers
        )
        assert r.status_code == 201

    r = await client.get(f"/v1/hotels/{hotel['id']}")
    assert r.json()["rating"] == 4.3
    assert r.json()["review_count"] == 4
