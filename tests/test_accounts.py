"""
tests.test_accounts

Registration, login and user administration over HTTP.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import timedelta

import pytest

from staybook.auth.jwt import JwtConfig, issue_access_token, read_access_token
from tests.conftest import admin, login, register, super_admin


@pytest.mark.asyncio
async def test_register_login_and_profile(client) -> None:
    guest = await register(client, "USER")
    assert guest.user["role"] == "USER"
    assert guest.user["status"] == "ACTIVE"

    again = await login(client, guest.user["email"], "correct-horse")
    assert again.id == guest.id

    r = await client.post(
        "/v1/auth/login", json={"email": guest.user["email"], "password": "wrong-password"}
    )
    assert r.status_code == 401

    r = await client.patch(
        "/v1/users/me", json={"full_name": "Renamed", "fcm_token": "tok-1"}, headers=guest.headers
    )
    assert r.status_code == 200
    assert r.json()["full_name"] == "Renamed"


@pytest.mark.asyncio
async def test_duplicate_email_and_privileged_roles_are_rejected(client) -> None:
    guest = await register(client, "USER")
    r = await client.post(
        "/v1/auth/register",
        json={"email": guest.user["email"], "password": "correct-horse", "full_name": "Dup"},
    )
    assert r.status_code == 409

    r = await client.post(
        "/v1/auth/register",
        json={"email": "x@example.com", "password": "correct-horse", "full_name": "X", "role": "ADMIN"},
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_change_password(client) -> None:
    guest = await register(client)
    r = await client.post(
        "/v1/auth/change-password",
        json={"old_password": "nope-nope", "new_password": "brand-new-pass"},
        headers=guest.headers,
    )
    assert r.status_code == 400

    r = await client.post(
        "/v1/auth/change-password",
        json={"old_password": "correct-horse", "new_password": "brand-new-pass"},
        headers=guest.headers,
    )
    assert r.status_code == 204
    await login(client, guest.user["email"], "brand-new-pass")


@pytest.mark.asyncio
async def test_profile_image_upload_goes_to_storage(client, storage) -> None:
    guest = await register(client)
    r = await client.post(
        "/v1/users/me/profile-image",
        files={"file": ("me.png", b"\x89PNG...", "image/png")},
        headers=guest.headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["profile_image"].startswith("https://cdn.test/users/")
    assert len(storage.objects) == 1

    r = await client.post(
        "/v1/users/me/profile-image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=guest.headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_admin_user_management(client) -> None:
    guest = await register(client)
    host = await register(client, "PROPERTY_OWNER")

    r = await client.get("/v1/users", headers=guest.headers)
    assert r.status_code == 403

    boss = await admin(client)
    r = await client.get("/v1/users", params={"role": "PROPERTY_OWNER"}, headers=boss.headers)
    assert r.status_code == 200
    assert [u["id"] for u in r.json()["items"]] == [host.id]

    r = await client.patch(
        f"/v1/users/{guest.id}/status", json={"status": "INACTIVE"}, headers=boss.headers
    )
    assert r.status_code == 200
    assert r.json()["status"] == "INACTIVE"

    r = await client.post(
        "/v1/auth/login", json={"email": guest.user["email"], "password": "correct-horse"}
    )
    assert r.status_code == 403

    # Only the super admin may mint admins.
    r = await client.post(
        "/v1/users/admins",
        json={"email": "other@staybook.test", "password": "admin-password", "full_name": "Other"},
        headers=boss.headers,
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_super_admin_status_is_protected(client) -> None:
    root = await super_admin(client)
    boss = await admin(client)
    r = await client.patch(
        f"/v1/users/{root.id}/status", json={"status": "INACTIVE"}, headers=boss.headers
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_deleted_account_is_gone(client) -> None:
    guest = await register(client)
    r = await client.delete("/v1/users/me", headers=guest.headers)
    assert r.status_code == 204
    r = await client.get("/v1/users/me", headers=guest.headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_foreign_and_expired_tokens_are_rejected(client, settings) -> None:
    guest = await register(client)
    cfg = JwtConfig.from_settings(settings)

    expired = replace(cfg, ttl=timedelta(minutes=-5))
    token = issue_access_token(cfg=expired, user_id=uuid.UUID(guest.id), role="USER")
    r = await client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    other_secret = replace(cfg, secret="someone-else")
    token = issue_access_token(cfg=other_secret, user_id=uuid.UUID(guest.id), role="USER")
    r = await client.get("/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    claims = read_access_token(
        cfg=cfg, token=issue_access_token(cfg=cfg, user_id=uuid.UUID(guest.id), role="USER")
    )
    assert claims.user_id == uuid.UUID(guest.id)
    assert claims.roles == frozenset({"USER"})
