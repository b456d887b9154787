"""
staybook.auth.jwt

Access tokens for marketplace accounts (PyJWT, HS256).

Responsibilities:
- Mint one access token per login/registration: `sub` is the user id, `roles` holds the role.
- Read a presented token back into typed claims, rejecting anything that is not one of ours.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

from staybook.settings import Settings

TOKEN_TYPE = "access"


@dataclass(frozen=True, slots=True)
class JwtConfig:
    alg: str
    issuer: str
    audience: str
    secret: str
    ttl: timedelta

    @classmethod
    def from_settings(cls, settings: Settings) -> JwtConfig:
        return cls(
            alg=settings.jwt_alg,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            secret=settings.jwt_secret,
            ttl=timedelta(minutes=settings.access_token_ttl_minutes),
        )


@dataclass(frozen=True, slots=True)
class AccessClaims:
    user_id: uuid.UUID
    roles: frozenset[str]
    expires_at: datetime


class JwtValidationError(Exception):
    pass


def issue_access_token(*, cfg: JwtConfig, user_id: uuid.UUID, role: str) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": str(user_id),
        "typ": TOKEN_TYPE,
        "roles": [role],
        "iat": int(now.timestamp()),
        "exp": int((now + cfg.ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def read_access_token(*, cfg: JwtConfig, token: str) -> AccessClaims:
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=cfg.audience,
            options={"require": ["exp", "iat", "iss", "aud", "sub"]},
        )
    except InvalidTokenError as e:
        raise JwtValidationError(str(e)) from e

    if payload.get("typ") != TOKEN_TYPE:
        raise JwtValidationError("Not an access token")
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError as e:
        raise JwtValidationError("Subject is not a user id") from e
    roles = payload.get("roles")
    if not isinstance(roles, list) or not roles:
        raise JwtValidationError("Token carries no role")

    return AccessClaims(
        user_id=user_id,
        roles=frozenset(str(r) for r in roles),
        expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
    )
