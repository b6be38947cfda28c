"""
Fusion Portal Session - Router.

Sign-in, organization and environment selection endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from fusion_portal.auth.schemas import ClientUser, Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.deps import get_functions_client, get_notifier, get_session_store, require_session
from fusion_portal.modules.session.schemas import (
    ActionResponse,
    EnvironmentState,
    LoginOutcome,
    LoginRequest,
    SessionSnapshot,
    SwitchEnvironmentRequest,
    SwitchOrganizationRequest,
)
from fusion_portal.modules.session.service import SessionService
from fusion_portal.modules.session.switchers import EnvironmentSwitcher, OrgSwitcher

router = APIRouter(
    prefix="/client/session",
    tags=["session"],
)

logger = logging.getLogger(__name__)

Session = Annotated[SessionStore, Depends(get_session_store)]
Client = Annotated[FunctionsClient, Depends(get_functions_client)]
Notifications = Annotated[Notifier, Depends(get_notifier)]
CurrentUser = Annotated[ClientUser, Depends(require_session)]


def get_service(session: Session, client: Client, notifier: Notifications) -> SessionService:
    """Get session service instance."""
    return SessionService(session, client, notifier)


Service = Annotated[SessionService, Depends(get_service)]


@router.get("", response_model=SessionSnapshot)
async def get_session(service: Service):
    """Current session as the dashboard sees it."""
    return service.snapshot()


@router.post("/login", response_model=LoginOutcome)
async def login(request: LoginRequest, service: Service):
    """
    Sign in with email and password.

    - `requires_2fa` asks for a second attempt with `totp_code`
    - A single organization is selected automatically
    """
    return await service.login(request)


@router.post("/logout", response_model=ActionResponse)
async def logout(service: Service, notifier: Notifications):
    navigation = service.logout()
    return ActionResponse(navigation=navigation, notifications=notifier.drain())


@router.post("/select-org", response_model=ActionResponse)
async def select_organization(
    request: SwitchOrganizationRequest,
    user: CurrentUser,
    service: Service,
):
    """Pick the working organization after sign-in."""
    return ActionResponse(navigation=service.select_organization(request.organization_id))


@router.get("/organizations", response_model=list[Organization])
async def list_organizations(user: CurrentUser, session: Session):
    return OrgSwitcher(session).options()


@router.post("/organizations/refresh", response_model=list[Organization])
async def refresh_organizations(user: CurrentUser, service: Service):
    """Re-fetch the membership list from the backend."""
    return await service.refresh_organizations()


@router.post("/organizations/switch", response_model=ActionResponse)
async def switch_organization(
    request: SwitchOrganizationRequest,
    user: CurrentUser,
    session: Session,
):
    """Switch organization; the client must reload the dashboard root."""
    navigation = OrgSwitcher(session).switch(request.organization_id)
    logger.info(f"User {user.id} switched to organization {request.organization_id}")
    return ActionResponse(navigation=navigation)


@router.get("/environments", response_model=EnvironmentState)
async def list_environments(
    user: CurrentUser,
    session: Session,
    client: Client,
    notifier: Notifications,
):
    """Environments of the current organization with the settled selection."""
    return await EnvironmentSwitcher(session, client, notifier).load()


@router.post("/environments/switch", response_model=EnvironmentState)
async def switch_environment(
    request: SwitchEnvironmentRequest,
    user: CurrentUser,
    session: Session,
    client: Client,
    notifier: Notifications,
):
    """Switch environment in place, no reload."""
    return await EnvironmentSwitcher(session, client, notifier).select(request.environment_id)
