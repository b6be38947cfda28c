"""
Fusion Portal Session - Schemas.

Request/response models for login, organization and environment selection.
"""

from pydantic import BaseModel, Field

from fusion_portal.auth.schemas import ClientUser, Environment, Organization
from fusion_portal.schemas import Navigation, Notification


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    remember_device: bool = False
    totp_code: str | None = Field(default=None, min_length=6, max_length=8)


class LoginOutcome(BaseModel):
    """Result of a sign-in attempt that reached the backend."""

    requires_2fa: bool = False
    navigation: Navigation | None = None
    user: ClientUser | None = None
    organizations: list[Organization] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """Current client session as the dashboard sees it."""

    authenticated: bool
    user: ClientUser | None = None
    organizations: list[Organization] = Field(default_factory=list)
    current_organization: Organization | None = None
    current_environment: Environment | None = None


class SwitchOrganizationRequest(BaseModel):
    organization_id: str = Field(..., min_length=1)


class SwitchEnvironmentRequest(BaseModel):
    environment_id: str = Field(..., min_length=1)


class EnvironmentState(BaseModel):
    """Environment picker state for the current organization.

    `empty` means the backend listed no environments; no selection is made.
    `error` carries the failure shown to the user when the list could not load.
    """

    environments: list[Environment] = Field(default_factory=list)
    current: Environment | None = None
    empty: bool = False
    error: str | None = None


class ActionResponse(BaseModel):
    """Navigation plus the notifications an action produced."""

    navigation: Navigation | None = None
    notifications: list[Notification] = Field(default_factory=list)
