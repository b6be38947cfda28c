"""
Fusion Portal API Keys - Service.

API keys are scoped to one organization and environment. The full secret
comes back exactly once, on create or rotate; listings only carry a prefix.
"""

import logging

from fusion_portal.auth.schemas import ClientUser, Environment, Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.functions_schemas import ApiKeysResponse, CreatedApiKey
from fusion_portal.core.notifications import Notifier
from fusion_portal.exceptions import ValidationException
from fusion_portal.modules.keys.schemas import AVAILABLE_SCOPES, CreateApiKeyRequest

logger = logging.getLogger(__name__)


class ApiKeysService:
    """Service for API key operations."""

    def __init__(self, client: FunctionsClient, notifier: Notifier):
        self.client = client
        self.notifier = notifier

    async def list_keys(self, org: Organization, env: Environment) -> ApiKeysResponse:
        return await self.client.get_api_keys(org.id, env.id)

    async def create_key(
        self,
        request: CreateApiKeyRequest,
        org: Organization,
        env: Environment,
        user: ClientUser,
    ) -> CreatedApiKey:
        key_name = request.key_name.strip()
        if not key_name:
            logger.info("API key rejected: empty name")
            raise ValidationException("Please enter a key name")

        if not request.scopes:
            logger.info("API key rejected: no scopes")
            raise ValidationException("Please select at least one scope")

        unknown = [s for s in request.scopes if s not in AVAILABLE_SCOPES]
        if unknown:
            raise ValidationException(
                f"Unknown scope: {', '.join(unknown)}",
                errors=[{"field": "scopes", "message": f"Allowed: {', '.join(AVAILABLE_SCOPES)}"}],
            )

        created = await self.client.create_api_key(
            organization_id=org.id,
            environment_id=env.id,
            key_name=key_name,
            scopes=list(dict.fromkeys(request.scopes)),
            created_by=user.id,
        )
        logger.info(f"API key '{key_name}' created in org {org.id} env {env.id}")
        self.notifier.success("API key created successfully")
        return created

    async def rotate_key(self, key_id: str, org: Organization) -> CreatedApiKey:
        """Issue a new secret; the old one stops working immediately."""
        rotated = await self.client.rotate_api_key(key_id=key_id, organization_id=org.id)
        logger.info(f"API key {key_id} rotated in org {org.id}")
        self.notifier.success("API key rotated successfully")
        return rotated

    async def revoke_key(self, key_id: str, org: Organization) -> str:
        await self.client.revoke_api_key(key_id=key_id, organization_id=org.id)
        logger.info(f"API key {key_id} revoked in org {org.id}")
        message = "API key revoked successfully"
        self.notifier.success(message)
        return message
