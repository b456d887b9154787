"""
staybook.services.accounts

Account lifecycle: registration, login, profile management and admin user management.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.jwt import JwtConfig, issue_access_token
from staybook.auth.models import Principal
from staybook.auth.passwords import hash_password, verify_password
from staybook.db.models import User, UserRole, UserStatus
from staybook.db.repositories.paging import Page
from staybook.db.repositories.users import UserRepo
from staybook.integrations.storage import S3Storage
from staybook.observability.logging import get_logger
from staybook.services.errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized
from staybook.services.guards import active_user
from staybook.settings import Settings

log = get_logger(__name__)

SELF_SERVICE_ROLES = frozenset({UserRole.USER, UserRole.PROPERTY_OWNER, UserRole.SERVICE_PROVIDER})
PROFILE_FIELDS = frozenset({"full_name", "contact_number", "country", "address", "fcm_token"})


class AccountService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._users = UserRepo(session)

    def token_for(self, user: User) -> str:
        return issue_access_token(
            cfg=JwtConfig.from_settings(self._settings), user_id=user.id, role=user.role.value
        )

    async def register(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        role: UserRole,
        contact_number: str | None = None,
        country: str | None = None,
    ) -> tuple[User, str]:
        if role not in SELF_SERVICE_ROLES:
            raise Forbidden("Role cannot be self-assigned")
        if await self._users.get_by_email(email) is not None:
            raise Conflict("Email is already registered")

        user = await self._users.create(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=role,
            contact_number=contact_number,
            country=country,
        )
        await self._session.commit()
        log.info("user_registered", user_id=str(user.id), role=role.value)
        return user, self.token_for(user)

    async def login(self, *, email: str, password: str) -> tuple[User, str]:
        user = await self._users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise Unauthorized("Invalid email or password")
        if user.status != UserStatus.ACTIVE:
            raise Forbidden("Account is not active")
        return user, self.token_for(user)

    async def change_password(
        self, principal: Principal, *, old_password: str, new_password: str
    ) -> None:
        user = await active_user(self._users, principal)
        if not verify_password(old_password, user.password_hash):
            raise BadRequest("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        await self._session.commit()

    async def me(self, principal: Principal) -> User:
        user = await self._users.get(principal.user_id)
        if user is None or user.status == UserStatus.DELETED:
            raise NotFound("User not found")
        return user

    async def update_me(self, principal: Principal, changes: dict[str, Any]) -> User:
        user = await active_user(self._users, principal)
        for key, value in changes.items():
            if key in PROFILE_FIELDS:
                setattr(user, key, value)
        await self._session.commit()
        return user

    async def upload_profile_image(
        self,
        principal: Principal,
        *,
        storage: S3Storage,
        filename: str,
        body: bytes,
        content_type: str,
    ) -> User:
        if not content_type.startswith("image/"):
            raise BadRequest("Profile image must be an image")
        user = await active_user(self._users, principal)
        user.profile_image = await storage.put(
            prefix=f"users/{user.id}", filename=filename, body=body, content_type=content_type
        )
        await self._session.commit()
        return user

    async def delete_me(self, principal: Principal) -> None:
        user = await self.me(principal)
        # Soft delete keeps bookings/payments referentially intact.
        user.status = UserStatus.DELETED
        user.fcm_token = None
        await self._session.commit()
        log.info("user_deleted", user_id=str(user.id))

    # --- Admin -------------------------------------------------------------------

    async def list_users(
        self,
        *,
        role: UserRole | None,
        status: UserStatus | None,
        search: str | None,
        offset: int,
        limit: int,
    ) -> Page[User]:
        return await self._users.list_users(
            role=role, status=status, search=search, offset=offset, limit=limit
        )

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def set_status(
        self, principal: Principal, user_id: uuid.UUID, status: UserStatus
    ) -> User:
        if status not in (UserStatus.ACTIVE, UserStatus.INACTIVE):
            raise BadRequest("Status must be ACTIVE or INACTIVE")
        user = await self.get_user(user_id)
        if user.id == principal.user_id:
            raise BadRequest("You cannot change your own status")
        if user.role == UserRole.SUPER_ADMIN:
            raise Forbidden("Super admin status cannot be changed")
        user.status = status
        await self._session.commit()
        log.info("user_status_changed", user_id=str(user.id), status=status.value)
        return user

    async def create_admin(
        self, principal: Principal, *, email: str, password: str, full_name: str
    ) -> User:
        if not principal.has_role(UserRole.SUPER_ADMIN.value):
            raise Forbidden("Only a super admin can create admins")
        if await self._users.get_by_email(email) is not None:
            raise Conflict("Email is already registered")
        user = await self._users.create(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=UserRole.ADMIN,
        )
        await self._session.commit()
        log.info("admin_created", user_id=str(user.id), by=str(principal.user_id))
        return user

    async def ensure_super_admin(self, *, email: str, password: str) -> User | None:
        """
        Create the configured super admin on first boot; a no-op once the email exists.
        """

        if await self._users.get_by_email(email) is not None:
            return None
        user = await self._users.create(
            email=email,
            password_hash=hash_password(password),
            full_name="Super Admin",
            role=UserRole.SUPER_ADMIN,
        )
        await self._session.commit()
        log.info("super_admin_created", user_id=str(user.id))
        return user
