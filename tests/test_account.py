"""
Tests for account actions, API key forms and activity helpers.
"""

from datetime import date, datetime, timezone

import pytest

from conftest import make_org
from fusion_portal.exceptions import UnauthorizedException, ValidationException
from fusion_portal.modules.account.schemas import (
    AcceptInviteRequest,
    CreateOrganizationRequest,
    UpdateProfileRequest,
)
from fusion_portal.modules.account.service import AccountService, generate_slug
from fusion_portal.modules.activity.schemas import ActivityFilters
from fusion_portal.modules.activity.service import export_filename, total_pages
from fusion_portal.modules.keys.schemas import CreateApiKeyRequest
from fusion_portal.modules.keys.service import ApiKeysService


def _orgs_body(*orgs):
    return {"organizations": [o.model_dump(mode="json") for o in orgs]}


class TestAccount:
    def test_generate_slug(self):
        assert generate_slug("Acme Audio, Inc.") == "acme-audio-inc"
        assert generate_slug("  Studio 54 ") == "studio-54"

    @pytest.mark.asyncio
    async def test_accept_invite_refreshes_organizations(self, signed_in, functions_client, notifier, backend):
        backend.on("accept-invite", json_body={"success": True})
        backend.on("get-user-organizations", json_body=_orgs_body(make_org("a"), make_org("b", "member"), make_org("c", "analyst")))

        response = await AccountService(signed_in, functions_client, notifier).accept_invite(
            AcceptInviteRequest(token="inv-1")
        )

        assert response.message == "Invitation accepted!"
        assert response.navigation.to == "/client/select-org"
        assert [o.id for o in signed_in.get_organizations()] == ["a", "b", "c"]
        assert backend.calls_to("accept-invite") == [{"token": "inv-1", "userId": "user-1"}]

    @pytest.mark.asyncio
    async def test_create_organization_switches_to_it(self, signed_in, functions_client, notifier, backend):
        backend.on("create-organization", json_body={"success": True, "organization": {"id": "n", "name": "New Co"}})
        backend.on("get-user-organizations", json_body=_orgs_body(make_org("a"), make_org("n")))

        response = await AccountService(signed_in, functions_client, notifier).create_organization(
            CreateOrganizationRequest(name="New Co")
        )

        assert response.navigation.to == "/client/dashboard"
        assert response.navigation.reload is True
        assert signed_in.get_current_organization().id == "n"
        assert backend.calls_to("create-organization")[0]["slug"] == "new-co"

    @pytest.mark.asyncio
    async def test_create_organization_requires_name(self, signed_in, functions_client, notifier, backend):
        with pytest.raises(ValidationException) as exc_info:
            await AccountService(signed_in, functions_client, notifier).create_organization(
                CreateOrganizationRequest(name="   ")
            )
        assert exc_info.value.message == "Organization name is required"
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_update_profile(self, signed_in, functions_client, notifier, backend):
        backend.on("update-profile", json_body={"success": True, "user": {"timezone": "Europe/Madrid"}})

        response = await AccountService(signed_in, functions_client, notifier).update_profile(
            UpdateProfileRequest(full_name="Ana R.")
        )

        stored = signed_in.get_current_user()
        assert stored.full_name == "Ana R."
        assert stored.timezone == "Europe/Madrid"
        assert response.user == stored

    @pytest.mark.asyncio
    async def test_requires_login(self, session_store, functions_client, notifier):
        with pytest.raises(UnauthorizedException) as exc_info:
            await AccountService(session_store, functions_client, notifier).update_profile(
                UpdateProfileRequest(full_name="x")
            )
        assert exc_info.value.message == "You must be logged in"


class TestApiKeys:
    def _service(self, functions_client, notifier):
        return ApiKeysService(functions_client, notifier)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "request_body,message",
        [
            ({"key_name": "", "scopes": ["verify"]}, "Please enter a key name"),
            ({"key_name": "ci", "scopes": []}, "Please select at least one scope"),
            ({"key_name": "ci", "scopes": ["delete_everything"]}, "Unknown scope: delete_everything"),
        ],
    )
    async def test_create_validation(self, signed_in, functions_client, notifier, backend, request_body, message):
        with pytest.raises(ValidationException) as exc_info:
            await self._service(functions_client, notifier).create_key(
                CreateApiKeyRequest(**request_body),
                signed_in.get_current_organization(),
                signed_in.get_current_environment(),
                signed_in.get_current_user(),
            )
        assert exc_info.value.message == message
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_revoke(self, signed_in, functions_client, notifier, backend):
        backend.on("revoke-api-key", json_body={"success": True})

        message = await self._service(functions_client, notifier).revoke_key("k1", signed_in.get_current_organization())

        assert message == "API key revoked successfully"
        assert backend.calls_to("revoke-api-key") == [{"keyId": "k1", "organizationId": "a"}]


class TestActivityHelpers:
    @pytest.mark.parametrize("total,size,expected", [(0, 20, 0), (1, 20, 1), (20, 20, 1), (45, 20, 3), (5, 0, 0)])
    def test_total_pages(self, total, size, expected):
        assert total_pages(total, size) == expected

    def test_export_filename(self):
        assert export_filename(datetime(2026, 3, 1, tzinfo=timezone.utc)) == "verification-activity-2026-03-01.csv"

    def test_filters_drop_empty_values(self):
        filters = ActivityFilters(result="tampered", date_from=date(2026, 1, 1), api_key="")
        assert filters.to_backend() == {"result": "tampered", "dateFrom": "2026-01-01"}
        assert filters.active_count == 2
