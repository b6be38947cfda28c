"""
Fusion Portal API Keys - Router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from fusion_portal.auth.schemas import ClientUser, Environment, Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.functions_schemas import ApiKeysResponse, CreatedApiKey
from fusion_portal.core.notifications import Notifier
from fusion_portal.deps import (
    get_functions_client,
    get_notifier,
    require_api_keys,
    require_environment,
    require_key_manager,
    require_session,
)
from fusion_portal.modules.keys.schemas import ApiKeyActionResponse, CreateApiKeyRequest
from fusion_portal.modules.keys.service import ApiKeysService

router = APIRouter(
    prefix="/client/api-keys",
    tags=["api-keys"],
    dependencies=[require_api_keys],
)


def get_service(
    client: Annotated[FunctionsClient, Depends(get_functions_client)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> ApiKeysService:
    """Get API keys service instance."""
    return ApiKeysService(client, notifier)


Service = Annotated[ApiKeysService, Depends(get_service)]
CurrentEnvironment = Annotated[Environment, Depends(require_environment)]
KeyManagerOrg = Annotated[Organization, Depends(require_key_manager)]


@router.get("", response_model=ApiKeysResponse)
async def list_keys(env: CurrentEnvironment, org: KeyManagerOrg, service: Service):
    """Keys of the current environment, masked."""
    return await service.list_keys(org, env)


@router.post("", response_model=CreatedApiKey, status_code=201)
async def create_key(
    request: CreateApiKeyRequest,
    env: CurrentEnvironment,
    org: KeyManagerOrg,
    user: Annotated[ClientUser, Depends(require_session)],
    service: Service,
):
    """Create a key. `full_key` is only ever returned here."""
    return await service.create_key(request, org, env, user)


@router.post("/{key_id}/rotate", response_model=CreatedApiKey)
async def rotate_key(key_id: str, org: KeyManagerOrg, service: Service):
    return await service.rotate_key(key_id, org)


@router.post("/{key_id}/revoke", response_model=ApiKeyActionResponse)
async def revoke_key(key_id: str, org: KeyManagerOrg, service: Service):
    return ApiKeyActionResponse(message=await service.revoke_key(key_id, org))
