"""
staybook.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Enforce RBAC via reusable dependency factories.
"""

from __future__ import annotations

import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from staybook.auth.jwt import JwtConfig, JwtValidationError, read_access_token
from staybook.auth.models import Principal
from staybook.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def _settings(request: Request) -> Settings:
    # Same instance the app was built with (tests pass their own Settings).
    return request.app.state.settings


async def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(_settings),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        claims = read_access_token(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    # Every log line for the rest of the request carries the caller.
    structlog.contextvars.bind_contextvars(user_id=str(claims.user_id))
    return Principal(user_id=claims.user_id, roles=claims.roles)


def require_roles(*allowed: str):
    allowed_set = frozenset(allowed)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        # Authz: admins pass every role check.
        if principal.is_admin:
            return principal
        if not (allowed_set & principal.roles):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# Roles in the token are a snapshot taken at login; account status (INACTIVE/DELETED)
# is re-checked by services that mutate state on the caller's behalf.
