"""
Fusion Portal Account - Router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.deps import (
    get_functions_client,
    get_notifier,
    get_session_store,
    require_account,
    require_session,
)
from fusion_portal.modules.account.schemas import (
    AccountActionResponse,
    AcceptInviteRequest,
    CreateOrganizationRequest,
    UpdateProfileRequest,
)
from fusion_portal.modules.account.service import AccountService

router = APIRouter(
    prefix="/client/account",
    tags=["account"],
    dependencies=[require_account, Depends(require_session)],
)


def get_service(
    session: Annotated[SessionStore, Depends(get_session_store)],
    client: Annotated[FunctionsClient, Depends(get_functions_client)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> AccountService:
    """Get account service instance."""
    return AccountService(session, client, notifier)


Service = Annotated[AccountService, Depends(get_service)]


@router.post("/accept-invite", response_model=AccountActionResponse)
async def accept_invite(request: AcceptInviteRequest, service: Service):
    """Join an organization from an invitation token."""
    return await service.accept_invite(request)


@router.post("/organizations", response_model=AccountActionResponse, status_code=201)
async def create_organization(request: CreateOrganizationRequest, service: Service):
    return await service.create_organization(request)


@router.post("/profile", response_model=AccountActionResponse)
async def update_profile(request: UpdateProfileRequest, service: Service):
    return await service.update_profile(request)
