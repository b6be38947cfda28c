"""
Fusion Portal Session - Service.

Sign-in, sign-out and organization refresh on top of the session store.
"""

import logging

from fusion_portal.auth.schemas import Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.exceptions import BackendException, UnauthorizedException
from fusion_portal.modules.session.schemas import LoginOutcome, LoginRequest, SessionSnapshot
from fusion_portal.modules.session.switchers import DASHBOARD_ROOT
from fusion_portal.schemas import Navigation

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/client/login"
SELECT_ORG_ROUTE = "/client/select-org"


class SessionService:
    """Service for the client session lifecycle."""

    def __init__(self, session: SessionStore, client: FunctionsClient, notifier: Notifier):
        self.session = session
        self.client = client
        self.notifier = notifier

    async def login(self, request: LoginRequest) -> LoginOutcome:
        """Sign in and populate the session.

        One organization is selected automatically; several send the user to
        the organization picker.
        """
        response = await self.client.client_login(
            email=request.email,
            password=request.password,
            device_id=self.session.get_device_id(),
            remember_device=request.remember_device,
            totp_code=request.totp_code,
        )

        if response.requires_2fa and not response.session_token:
            logger.info("Login requires a second factor")
            return LoginOutcome(requires_2fa=True)

        if not response.session_token or response.user is None:
            raise BackendException("client-login", response.error or "Login failed", upstream_status=502)

        if not response.organizations:
            raise UnauthorizedException("No organization access")

        self.session.set_session_token(response.session_token, remember_device=request.remember_device)
        self.session.set_current_user(response.user)
        self.session.set_organizations(response.organizations)
        logger.info(
            f"Signed in user={response.user.id} organizations={len(response.organizations)}"
        )

        if len(response.organizations) > 1:
            navigation = Navigation(to=SELECT_ORG_ROUTE)
        else:
            self.session.set_current_organization(response.organizations[0])
            navigation = self._post_login_navigation()

        return LoginOutcome(
            navigation=navigation,
            user=response.user,
            organizations=response.organizations,
        )

    def _post_login_navigation(self) -> Navigation:
        pending = self.session.pop_pending_checkout()
        if pending is not None:
            return Navigation(
                to=f"/client/checkout?plan={pending.plan_code}&billing={pending.billing_cycle}",
            )
        return Navigation(to=DASHBOARD_ROOT)

    def select_organization(self, organization_id: str) -> Navigation:
        """Pick the working organization after sign-in."""
        org = next((o for o in self.session.get_organizations() if o.id == organization_id), None)
        if org is None or not self.session.set_current_organization(org):
            raise UnauthorizedException("No organization access")
        self.session.clear_current_environment()
        return self._post_login_navigation()

    def logout(self) -> Navigation:
        self.session.logout()
        return Navigation(to=LOGIN_ROUTE)

    async def refresh_organizations(self) -> list[Organization]:
        """Re-fetch the membership list (after an invite or a new organization)."""
        user = self.session.get_current_user()
        if user is None:
            raise UnauthorizedException()

        response = await self.client.get_user_organizations(user.id)
        self.session.set_organizations(response.organizations)
        return response.organizations

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            authenticated=self.session.validate_session(),
            user=self.session.get_current_user(),
            organizations=self.session.get_organizations(),
            current_organization=self.session.get_current_organization(),
            current_environment=self.session.get_current_environment(),
        )
