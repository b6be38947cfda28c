"""
Fusion Portal Core - Serverless functions client.

Every backend interaction is a JSON POST to `{base_url}{functions_path}/<name>`.
The functions are opaque: only their request/response contracts are known.

Error policy:
- non-2xx: BackendException carrying the backend's `error` text verbatim,
  or a per-call fallback message when the body has none
- transport failure: BackendUnavailableException (generic message)
- 401 on an authenticated call: the local session is cleared and
  SessionExpiredException is raised
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from fusion_portal.config import BackendSettings
from fusion_portal.core.functions_schemas import (
    AccountResponse,
    ActivityResponse,
    ApiKeysResponse,
    BillingResponse,
    CreatedApiKey,
    EnvironmentsResponse,
    LoginResponse,
    OrganizationsResponse,
    VerifyResponse,
)
from fusion_portal.core.session_store import SessionStore
from fusion_portal.exceptions import (
    BackendException,
    BackendUnavailableException,
    SessionExpiredException,
)
from fusion_portal.observability.metrics import MetricsStore, get_metrics_store

logger = logging.getLogger(__name__)


def _error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return fallback


class FunctionsClient:
    """Async client for the serverless functions backend."""

    def __init__(
        self,
        settings: BackendSettings,
        session: SessionStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        metrics: MetricsStore | None = None,
    ):
        self.settings = settings
        self.session = session
        self._transport = transport
        self._metrics = metrics or get_metrics_store()

    def _url(self, name: str) -> str:
        base = (self.settings.base_url or "").strip().rstrip("/")
        path = (self.settings.functions_path or "").strip().rstrip("/")
        if path and not path.startswith("/"):
            path = "/" + path
        return f"{base}{path}/{name}"

    def _headers(self, authenticated: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if authenticated and self.session is not None:
            headers.update(self.session.auth_headers())
        return headers

    async def _send(
        self,
        name: str,
        payload: dict[str, Any],
        *,
        authenticated: bool = True,
        timeout_s: float | None = None,
    ) -> httpx.Response:
        url = self._url(name)
        timeout = httpx.Timeout(timeout_s or self.settings.timeout_seconds)
        started = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=self._headers(authenticated))
        except (httpx.TransportError, httpx.InvalidURL) as e:
            self._metrics.record_function_error(name, "BACKEND_UNAVAILABLE")
            logger.warning(f"[functions] {name} -> unreachable: {type(e).__name__}: {e}")
            raise BackendUnavailableException(name)

        elapsed_ms = (time.perf_counter() - started) * 1000
        self._metrics.record_function_latency(name, elapsed_ms)
        logger.info(f"[functions] {name} -> {response.status_code} ({elapsed_ms:.0f}ms)")
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    async def _post(
        self,
        name: str,
        payload: dict[str, Any],
        *,
        fallback_error: str,
        authenticated: bool = True,
        timeout_s: float | None = None,
    ) -> dict[str, Any]:
        response = await self._send(name, payload, authenticated=authenticated, timeout_s=timeout_s)
        self._raise_for_status(name, response, fallback_error, authenticated)

        body = self._json(response)
        if not isinstance(body, dict):
            self._metrics.record_function_error(name, "BAD_BACKEND_RESPONSE")
            raise BackendException(name, fallback_error, upstream_status=502)
        return body

    def _raise_for_status(
        self,
        name: str,
        response: httpx.Response,
        fallback_error: str,
        authenticated: bool,
    ) -> None:
        if response.is_success:
            return

        message = _error_message(self._json(response), fallback_error)

        if response.status_code == 401 and authenticated:
            self._metrics.record_function_error(name, "SESSION_EXPIRED")
            if self.session is not None:
                self.session.logout()
            raise SessionExpiredException(message)

        self._metrics.record_function_error(name, "BACKEND_ERROR")
        raise BackendException(name, message, upstream_status=response.status_code)

    def _parse(self, name: str, model, body: dict[str, Any], fallback_error: str):
        try:
            return model.model_validate(body)
        except ValidationError as e:
            self._metrics.record_function_error(name, "BAD_BACKEND_RESPONSE")
            logger.warning(f"[functions] {name} -> unexpected body: {e.error_count()} validation error(s)")
            raise BackendException(name, fallback_error, upstream_status=502)

    # =========================================================================
    # Session
    # =========================================================================

    async def client_login(
        self,
        *,
        email: str,
        password: str,
        device_id: str,
        remember_device: bool = False,
        totp_code: str | None = None,
    ) -> LoginResponse:
        """Sign in. A 2FA challenge comes back as `requires_2fa`, not as an error."""
        name = "client-login"
        fallback = "Failed to sign in. Please check your credentials."
        payload: dict[str, Any] = {
            "email": email,
            "password": password,
            "rememberDevice": remember_device,
            "deviceId": device_id,
        }
        if totp_code:
            payload["totpCode"] = totp_code

        response = await self._send(name, payload, authenticated=False)
        body = self._json(response)

        if not response.is_success:
            if isinstance(body, dict) and body.get("requires2FA"):
                return LoginResponse(requires_2fa=True)
            self._raise_for_status(name, response, fallback, authenticated=False)

        if not isinstance(body, dict):
            raise BackendException(name, fallback, upstream_status=502)
        return self._parse(name, LoginResponse, body, fallback)

    async def get_user_organizations(self, user_id: str) -> OrganizationsResponse:
        name = "get-user-organizations"
        fallback = "Failed to fetch organizations"
        body = await self._post(name, {"userId": user_id}, fallback_error=fallback)
        return self._parse(name, OrganizationsResponse, body, fallback)

    async def get_environments(self, organization_id: str) -> EnvironmentsResponse:
        name = "get-environments"
        fallback = "Failed to load environments"
        body = await self._post(name, {"organizationId": organization_id}, fallback_error=fallback)
        return self._parse(name, EnvironmentsResponse, body, fallback)

    # =========================================================================
    # Verification
    # =========================================================================

    async def verify_audio(
        self,
        *,
        organization_id: str,
        environment_id: str,
        user_id: str | None,
        file_data: str,
        file_name: str,
        file_size: int,
    ) -> VerifyResponse:
        """Submit one base64-encoded audio file for verification."""
        name = "client-verify-audio"
        fallback = "Verification failed"
        body = await self._post(
            name,
            {
                "organizationId": organization_id,
                "environmentId": environment_id,
                "userId": user_id,
                "fileData": file_data,
                "fileName": file_name,
                "fileSize": file_size,
            },
            fallback_error=fallback,
            timeout_s=self.settings.verify_timeout_seconds,
        )
        return self._parse(name, VerifyResponse, body, fallback)

    # =========================================================================
    # API keys
    # =========================================================================

    async def get_api_keys(self, organization_id: str, environment_id: str) -> ApiKeysResponse:
        name = "get-api-keys"
        fallback = "Failed to load API keys"
        body = await self._post(
            name,
            {"organizationId": organization_id, "environmentId": environment_id},
            fallback_error=fallback,
        )
        return self._parse(name, ApiKeysResponse, body, fallback)

    async def create_api_key(
        self,
        *,
        organization_id: str,
        environment_id: str,
        key_name: str,
        scopes: list[str],
        created_by: str | None = None,
    ) -> CreatedApiKey:
        name = "create-api-key"
        fallback = "Failed to create API key"
        body = await self._post(
            name,
            {
                "organizationId": organization_id,
                "environmentId": environment_id,
                "keyName": key_name,
                "scopes": scopes,
                "createdBy": created_by,
            },
            fallback_error=fallback,
        )
        return self._parse(name, CreatedApiKey, body, fallback)

    async def rotate_api_key(self, *, key_id: str, organization_id: str) -> CreatedApiKey:
        name = "rotate-api-key"
        fallback = "Failed to rotate key"
        body = await self._post(
            name,
            {"keyId": key_id, "organizationId": organization_id},
            fallback_error=fallback,
        )
        return self._parse(name, CreatedApiKey, body, fallback)

    async def revoke_api_key(self, *, key_id: str, organization_id: str) -> dict[str, Any]:
        return await self._post(
            "revoke-api-key",
            {"keyId": key_id, "organizationId": organization_id},
            fallback_error="Failed to revoke key",
        )

    # =========================================================================
    # Activity
    # =========================================================================

    async def get_verification_activity(
        self,
        *,
        organization_id: str,
        environment_id: str,
        page: int,
        limit: int,
        search: str = "",
        filters: dict[str, Any] | None = None,
    ) -> ActivityResponse:
        name = "get-verification-activity"
        fallback = "Failed to load activity"
        body = await self._post(
            name,
            {
                "organizationId": organization_id,
                "environmentId": environment_id,
                "page": page,
                "limit": limit,
                "search": search,
                "filters": filters or {},
            },
            fallback_error=fallback,
        )
        return self._parse(name, ActivityResponse, body, fallback)

    async def export_verification_activity(
        self,
        *,
        organization_id: str,
        environment_id: str,
        search: str = "",
        filters: dict[str, Any] | None = None,
    ) -> bytes:
        """CSV export of the filtered activity."""
        name = "export-verification-activity"
        response = await self._send(
            name,
            {
                "organizationId": organization_id,
                "environmentId": environment_id,
                "search": search,
                "filters": filters or {},
            },
        )
        self._raise_for_status(name, response, "Failed to export activity", authenticated=True)
        return response.content

    # =========================================================================
    # Billing
    # =========================================================================

    async def get_billing_data(self, organization_id: str) -> BillingResponse:
        name = "get-billing-data"
        fallback = "Failed to load billing data"
        body = await self._post(name, {"organizationId": organization_id}, fallback_error=fallback)
        return self._parse(name, BillingResponse, body, fallback)

    async def create_business_subscription(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post(
            "create-business-subscription",
            payload,
            fallback_error="Payment failed. Please try again.",
        )

    async def upgrade_subscription(self, *, organization_id: str, plan_id: str) -> dict[str, Any]:
        return await self._post(
            "upgrade-subscription",
            {"organizationId": organization_id, "planId": plan_id},
            fallback_error="Failed to upgrade plan",
        )

    async def update_payment_method(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post(
            "update-payment-method",
            payload,
            fallback_error="Failed to update payment method",
        )

    # =========================================================================
    # Account
    # =========================================================================

    async def accept_invite(self, *, token: str, user_id: str) -> AccountResponse:
        name = "accept-invite"
        fallback = "Failed to accept invitation"
        body = await self._post(name, {"token": token, "userId": user_id}, fallback_error=fallback)
        return self._parse(name, AccountResponse, body, fallback)

    async def create_organization(self, payload: dict[str, Any]) -> AccountResponse:
        name = "create-organization"
        fallback = "Failed to create organization"
        body = await self._post(name, payload, fallback_error=fallback)
        return self._parse(name, AccountResponse, body, fallback)

    async def update_profile(self, payload: dict[str, Any]) -> AccountResponse:
        name = "update-profile"
        fallback = "Failed to update profile"
        body = await self._post(name, payload, fallback_error=fallback)
        return self._parse(name, AccountResponse, body, fallback)
