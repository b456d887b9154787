"""
tests.test_messages

Direct messaging: one channel per pair, attachments, participant-only reads.
"""

from __future__ import annotations

import pytest

from tests.conftest import register


@pytest.mark.asyncio
async def test_pair_shares_one_channel(client, storage) -> None:
    owner = await register(client, "PROPERTY_OWNER")
    provider = await register(client, "SERVICE_PROVIDER")

    r = await client.post(
        "/v1/messages",
        data={"receiver_id": provider.id, "body": "  Can you come Monday?  "},
        headers=owner.headers,
    )
    assert r.status_code == 201, r.text
    first = r.json()
    assert first["body"] == "Can you come Monday?"

    r = await client.post(
        "/v1/messages",
        data={"receiver_id": owner.id, "body": "Sure, photos attached"},
        files=[("files", ("kitchen.jpg", b"jpeg", "image/jpeg"))],
        headers=provider.headers,
    )
    assert r.status_code == 201, r.text
    reply = r.json()
    assert reply["channel_id"] == first["channel_id"]
    assert len(reply["files"]) == 1
    assert list(storage.objects)[0].startswith(f"messages/{first['channel_id']}/")

    r = await client.get("/v1/messages/channels", headers=owner.headers)
    (channel,) = r.json()
    assert channel["peer_id"] == provider.id
    assert channel["last_message"]["id"] == reply["id"]

    r = await client.get(f"/v1/messages/channels/{first['channel_id']}", headers=provider.headers)
    assert r.json()["total"] == 2

    outsider = await register(client)
    r = await client.get(f"/v1/messages/channels/{first['channel_id']}", headers=outsider.headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_invalid_messages(client) -> None:
    guest = await register(client)
    other = await register(client)

    r = await client.post("/v1/messages", data={"receiver_id": guest.id, "body": "hi"}, headers=guest.headers)
    assert r.status_code == 400

    r = await client.post("/v1/messages", data={"receiver_id": other.id, "body": "   "}, headers=guest.headers)
    assert r.status_code == 400

    await client.delete("/v1/users/me", headers=other.headers)
    r = await client.post("/v1/messages", data={"receiver_id": other.id, "body": "hi"}, headers=guest.headers)
    assert r.status_code == 404
