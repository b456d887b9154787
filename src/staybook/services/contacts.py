"""
staybook.services.contacts

Admin-moderated access to service provider contact details.

Responsibilities:
- Property owners request a provider's contact details; admins are notified.
- Admins approve a request, which reveals the details to that owner only.
- The provider directory an owner browses, with contact details where approved.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.auth.models import Principal
from staybook.db.models import ContactReveal, User, UserRole, UserStatus
from staybook.db.repositories.contacts import ContactRevealRepo
from staybook.db.repositories.paging import Page
from staybook.db.repositories.users import UserRepo
from staybook.observability.logging import get_logger
from staybook.services.errors import Conflict, Forbidden, NotFound
from staybook.services.guards import active_user
from staybook.services.notifications import NotificationService

log = get_logger(__name__)


class ContactStatus(enum.StrEnum):
    NONE = "NONE"
    REQUESTED = "REQUESTED"
    SHOWN = "SHOWN"


@dataclass(frozen=True, slots=True)
class ProviderContact:
    provider: User
    reveal: ContactReveal | None

    @property
    def status(self) -> ContactStatus:
        if self.reveal is None:
            return ContactStatus.NONE
        return ContactStatus.SHOWN if self.reveal.is_shown else ContactStatus.REQUESTED


class ContactService:
    def __init__(self, *, session: AsyncSession, notifier: NotificationService) -> None:
        self._session = session
        self._notifier = notifier
        self._reveals = ContactRevealRepo(session)
        self._users = UserRepo(session)

    async def request(self, principal: Principal, provider_id: uuid.UUID) -> ContactReveal:
        owner = await active_user(self._users, principal)
        if owner.role != UserRole.PROPERTY_OWNER:
            raise Forbidden("Only property owners can request contact details")
        provider = await self._users.get(provider_id)
        if (
            provider is None
            or provider.role != UserRole.SERVICE_PROVIDER
            or provider.status == UserStatus.DELETED
        ):
            raise NotFound("Provider not found")

        existing = await self._reveals.for_pair(provider_id=provider.id, property_owner_id=owner.id)
        if existing is not None:
            raise Conflict("Contact details were already requested for this provider")

        reveal = await self._reveals.add(
            ContactReveal(provider_id=provider.id, property_owner_id=owner.id, is_shown=False)
        )
        await self._notifier.notify_many(
            await self._users.active_admins(),
            title="Contact request",
            body=f"{owner.full_name} asked for the contact details of {provider.full_name}",
        )
        await self._session.commit()
        log.info("contact_requested", reveal_id=str(reveal.id), provider_id=str(provider.id))
        return reveal

    async def approve(self, reveal_id: uuid.UUID) -> ContactReveal:
        reveal = await self._reveals.get(reveal_id)
        if reveal is None:
            raise NotFound("Contact request not found")
        if reveal.is_shown:
            return reveal

        reveal.is_shown = True
        owner = await self._users.get(reveal.property_owner_id)
        provider = await self._users.get(reveal.provider_id)
        if owner is not None and provider is not None:
            await self._notifier.notify(
                owner,
                title="Contact details available",
                body=f"You can now see the contact details of {provider.full_name}",
            )
        await self._session.commit()
        log.info("contact_revealed", reveal_id=str(reveal.id))
        return reveal

    async def providers_for_owner(
        self, principal: Principal, *, offset: int = 0, limit: int = 20
    ) -> Page[ProviderContact]:
        await active_user(self._users, principal)
        page = await self._users.list_users(
            role=UserRole.SERVICE_PROVIDER, status=UserStatus.ACTIVE, offset=offset, limit=limit
        )
        reveals = await self._reveals.for_owner(principal.user_id, [p.id for p in page.items])
        return Page(
            items=[ProviderContact(provider=p, reveal=reveals.get(p.id)) for p in page.items],
            total=page.total,
            offset=page.offset,
            limit=page.limit,
        )

    async def list_requests(
        self, *, is_shown: bool | None = None, offset: int = 0, limit: int = 20
    ) -> Page[ContactReveal]:
        return await self._reveals.list_requests(is_shown=is_shown, offset=offset, limit=limit)
