"""
Fusion Portal Auth - Schemas.

Pydantic models for the client session with multi-organization support.

The backend speaks camelCase on some functions (`client-login`) and
snake_case on others; every model accepts both.
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


OrgRole = Literal["owner", "admin", "developer", "analyst", "read_only", "member"]
BillingStatus = Literal["trial", "active", "past_due", "canceled"]


class _BackendModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
    )


class NotificationPreferences(_BackendModel):
    """Per-user notification switches."""

    security_alerts: bool = True
    webhook_failures: bool = True
    quota_warnings: bool = True


class ClientUser(_BackendModel):
    """Authenticated portal user."""

    id: str
    email: str
    full_name: str = ""
    email_verified: bool = False
    totp_enabled: bool = False
    account_status: str = "active"
    avatar_url: str | None = None
    timezone: str | None = None
    notification_preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)


class Organization(_BackendModel):
    """Billing/quota/plan container the user can act within.

    Quota fields are advisory: the backend enforces the real limits.
    """

    id: str
    name: str
    slug: str = ""
    organization_type: str = "business"
    account_status: str = "active"
    plan_type: str = "free"
    billing_status: BillingStatus = "active"
    trial_ends_at: datetime | None = None
    quota_verifications_monthly: int = Field(default=0, ge=0)
    quota_used_current_month: int = Field(default=0, ge=0)
    logo_url: str | None = None
    role: OrgRole | None = None


class Environment(_BackendModel):
    """Named scope (production or sandbox) under an organization."""

    id: str
    organization_id: str
    name: str
    display_name: str = ""
    description: str | None = None
    is_production: bool = False

    @property
    def label(self) -> str:
        return self.display_name or self.name


class SessionToken(BaseModel):
    """Opaque session token issued by `client-login`.

    The backend does not send an expiry, so it is derived locally from the
    session lifetime the backend applies (24h, or 30 days when the device
    is remembered).
    """

    token: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


# =============================================================================
# Authorization helpers
#
# UI affordances only. The backend re-checks membership and role on every
# call; nothing here is a security control.
# =============================================================================


def has_role(org: Organization | None, *roles: str) -> bool:
    """Check the user's role in an organization."""
    if org is None or not org.role:
        return False
    return org.role in roles


def can_manage_team(org: Organization | None) -> bool:
    return has_role(org, "owner", "admin")


def can_manage_api_keys(org: Organization | None) -> bool:
    return has_role(org, "owner", "admin", "developer")


def can_manage_webhooks(org: Organization | None) -> bool:
    return has_role(org, "owner", "admin", "developer")


def can_view_billing(org: Organization | None) -> bool:
    return has_role(org, "owner", "admin")


def can_manage_billing(org: Organization | None) -> bool:
    return has_role(org, "owner")


def is_read_only(org: Organization | None) -> bool:
    return has_role(org, "read_only", "analyst")
