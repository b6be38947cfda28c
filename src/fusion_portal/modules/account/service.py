"""
Fusion Portal Account - Service.

Invitations, new organizations and profile edits. Each success refreshes
the matching part of the stored session.
"""

import logging
import re

from fusion_portal.auth.schemas import ClientUser
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.exceptions import UnauthorizedException, ValidationException
from fusion_portal.modules.account.schemas import (
    AccountActionResponse,
    AcceptInviteRequest,
    CreateOrganizationRequest,
    UpdateProfileRequest,
)
from fusion_portal.modules.session.service import SELECT_ORG_ROUTE, SessionService
from fusion_portal.modules.session.switchers import DASHBOARD_ROOT
from fusion_portal.schemas import Navigation

logger = logging.getLogger(__name__)

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def generate_slug(name: str) -> str:
    """'Acme Audio, Inc.' -> 'acme-audio-inc'"""
    return _SLUG_SEPARATORS.sub("-", name.lower()).strip("-")


class AccountService:
    """Service for account operations."""

    def __init__(self, session: SessionStore, client: FunctionsClient, notifier: Notifier):
        self.session = session
        self.client = client
        self.notifier = notifier
        self._sessions = SessionService(session, client, notifier)

    def _user(self) -> ClientUser:
        user = self.session.get_current_user()
        if user is None:
            raise UnauthorizedException("You must be logged in")
        return user

    async def accept_invite(self, request: AcceptInviteRequest) -> AccountActionResponse:
        user = self._user()
        response = await self.client.accept_invite(token=request.token, user_id=user.id)
        await self._sessions.refresh_organizations()

        message = response.message or "Invitation accepted!"
        self.notifier.success(message)
        return AccountActionResponse(message=message, navigation=Navigation(to=SELECT_ORG_ROUTE))

    async def create_organization(self, request: CreateOrganizationRequest) -> AccountActionResponse:
        """Create an organization, then switch to it when it shows up in the membership list."""
        user = self._user()
        name = request.name.strip()
        if not name:
            logger.info("Organization rejected: empty name")
            raise ValidationException("Organization name is required")

        response = await self.client.create_organization(
            {"userId": user.id, "name": name, "slug": request.slug or generate_slug(name)}
        )
        organizations = await self._sessions.refresh_organizations()

        message = "Organization created successfully!"
        self.notifier.success(message)

        created = response.organization
        if created is not None and self.session.switch_organization(created.id):
            logger.info(f"Switched to new organization {created.id}")
            return AccountActionResponse(
                message=message,
                navigation=Navigation(to=DASHBOARD_ROOT, reload=True),
            )

        logger.info(f"New organization not in membership list ({len(organizations)} listed)")
        return AccountActionResponse(message=message, navigation=Navigation(to=SELECT_ORG_ROUTE))

    async def update_profile(self, request: UpdateProfileRequest) -> AccountActionResponse:
        user = self._user()
        response = await self.client.update_profile(
            {
                "userId": user.id,
                "fullName": request.full_name,
                "phone": request.phone,
                "company": request.company,
                "avatarUrl": request.avatar_url,
            }
        )

        updated = user.model_copy(update={"full_name": request.full_name, "avatar_url": request.avatar_url})
        if response.user:
            updated = ClientUser.model_validate({**updated.model_dump(), **response.user})
        self.session.set_current_user(updated)

        message = "Profile updated successfully"
        self.notifier.success(message)
        return AccountActionResponse(message=message, user=updated)
