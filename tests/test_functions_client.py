"""
Tests for the serverless functions client.
"""

import httpx
import pytest

from conftest import make_org, verification_body
from fusion_portal.config import BackendSettings
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.exceptions import (
    BackendException,
    BackendUnavailableException,
    SessionExpiredException,
)


class TestRequests:
    @pytest.mark.asyncio
    async def test_posts_json_to_function_url(self, signed_in, metrics):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["method"] = request.method
            return httpx.Response(200, json={"environments": []})

        client = FunctionsClient(
            BackendSettings(base_url="http://backend.test/"),
            session=signed_in,
            transport=httpx.MockTransport(handler),
            metrics=metrics,
        )
        await client.get_environments("a")

        assert seen["method"] == "POST"
        assert seen["url"] == "http://backend.test/.netlify/functions/get-environments"
        assert seen["auth"] == "Bearer tok-123"

    @pytest.mark.asyncio
    async def test_environments_payload(self, functions_client, backend):
        backend.on(
            "get-environments",
            json_body={
                "environments": [
                    {"id": "e1", "organizationId": "a", "name": "sandbox", "displayName": "Sandbox"},
                ]
            },
        )

        response = await functions_client.get_environments("a")

        assert backend.calls_to("get-environments") == [{"organizationId": "a"}]
        assert response.environments[0].organization_id == "a"
        assert response.environments[0].label == "Sandbox"

    @pytest.mark.asyncio
    async def test_verify_audio_parses_camel_case(self, functions_client, backend):
        backend.on("client-verify-audio", json_body=verification_body("a.wav", "tampered"))

        response = await functions_client.verify_audio(
            organization_id="a",
            environment_id="env-sandbox",
            user_id="user-1",
            file_data="AAAA",
            file_name="a.wav",
            file_size=3,
        )

        assert response.verification.result == "tampered"
        assert response.verification.tamper_detected is True
        assert response.verification.quota_remaining == 80
        assert backend.calls_to("client-verify-audio")[0] == {
            "organizationId": "a",
            "environmentId": "env-sandbox",
            "userId": "user-1",
            "fileData": "AAAA",
            "fileName": "a.wav",
            "fileSize": 3,
        }

    @pytest.mark.asyncio
    async def test_latency_recorded(self, functions_client, backend, metrics):
        backend.on("get-user-organizations", json_body={"organizations": []})
        await functions_client.get_user_organizations("user-1")

        summary = metrics.get_summary()
        assert summary["functions"]["get-user-organizations"]["call_count"] == 1


class TestErrors:
    @pytest.mark.asyncio
    async def test_backend_message_is_verbatim(self, functions_client, backend):
        backend.on("get-api-keys", json_body={"error": "Environment is archived"}, status=400)

        with pytest.raises(BackendException) as exc_info:
            await functions_client.get_api_keys("a", "env-sandbox")

        assert exc_info.value.message == "Environment is archived"
        assert exc_info.value.upstream_status == 400
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_fallback_message_without_error_body(self, functions_client, backend):
        backend.on("get-api-keys", lambda payload: httpx.Response(500, text="oops"))

        with pytest.raises(BackendException) as exc_info:
            await functions_client.get_api_keys("a", "env-sandbox")

        assert exc_info.value.message == "Failed to load API keys"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_unexpected_body_shape(self, functions_client, backend):
        backend.on("get-billing-data", json_body={"billing": {"nope": True}})

        with pytest.raises(BackendException) as exc_info:
            await functions_client.get_billing_data("a")
        assert exc_info.value.message == "Failed to load billing data"

    @pytest.mark.asyncio
    async def test_unauthorized_logs_out(self, signed_in, functions_client, backend, metrics):
        backend.on("get-environments", json_body={"error": "Invalid session"}, status=401)

        with pytest.raises(SessionExpiredException):
            await functions_client.get_environments("a")

        assert signed_in.validate_session() is False
        assert metrics.get_summary()["functions"]["get-environments"]["errors"]["SESSION_EXPIRED"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error_type, message",
        [
            (httpx.ConnectError, "connection refused"),
            (httpx.RemoteProtocolError, "server disconnected without sending a response"),
            (httpx.ReadError, "connection reset by peer"),
        ],
    )
    async def test_transport_failure(self, session_store, metrics, error_type, message):
        def handler(request):
            raise error_type(message, request=request)

        client = FunctionsClient(
            BackendSettings(base_url="http://backend.test"),
            session=session_store,
            transport=httpx.MockTransport(handler),
            metrics=metrics,
        )

        with pytest.raises(BackendUnavailableException) as exc_info:
            await client.get_environments("a")

        assert exc_info.value.status_code == 502
        assert "try again" in exc_info.value.message
        errors = metrics.get_summary()["functions"]["get-environments"]["errors"]
        assert errors["BACKEND_UNAVAILABLE"] == 1


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, functions_client, backend):
        backend.on(
            "client-login",
            json_body={
                "success": True,
                "sessionToken": "abc",
                "user": {"id": "user-1", "email": "ana@example.com", "fullName": "Ana"},
                "organizations": [make_org("a").model_dump(mode="json")],
            },
        )

        response = await functions_client.client_login(
            email="ana@example.com",
            password="pw",
            device_id="dev-1",
        )

        assert response.session_token == "abc"
        assert response.user.full_name == "Ana"
        assert [o.id for o in response.organizations] == ["a"]
        payload = backend.calls_to("client-login")[0]
        assert payload["deviceId"] == "dev-1"
        assert "totpCode" not in payload

    @pytest.mark.asyncio
    async def test_login_two_factor_challenge(self, functions_client, backend):
        backend.on("client-login", json_body={"requires2FA": True, "error": "2FA required"}, status=403)

        response = await functions_client.client_login(email="a@b.co", password="pw", device_id="d")

        assert response.requires_2fa is True
        assert response.session_token is None

    @pytest.mark.asyncio
    async def test_login_bad_credentials(self, functions_client, backend):
        backend.on("client-login", json_body={"error": "Invalid email or password"}, status=401)

        with pytest.raises(BackendException) as exc_info:
            await functions_client.client_login(email="a@b.co", password="bad", device_id="d")

        assert exc_info.value.message == "Invalid email or password"


class TestKeysAndActivity:
    @pytest.mark.asyncio
    async def test_rotate_reads_new_key(self, functions_client, backend):
        backend.on(
            "rotate-api-key",
            json_body={"newKey": "fsk_live_new", "apiKey": {"id": "k1", "key_name": "ci", "key_prefix": "fsk_live_"}},
        )

        rotated = await functions_client.rotate_api_key(key_id="k1", organization_id="a")

        assert rotated.full_key == "fsk_live_new"
        assert rotated.api_key.masked.startswith("fsk_live_")

    @pytest.mark.asyncio
    async def test_export_returns_csv_bytes(self, functions_client, backend):
        backend.on(
            "export-verification-activity",
            lambda payload: httpx.Response(200, content=b"id,file_name\n1,a.wav\n"),
        )

        content = await functions_client.export_verification_activity(
            organization_id="a",
            environment_id="env-sandbox",
        )

        assert content.startswith(b"id,file_name")
