"""
Fusion Portal Layout - Schemas.
"""

from typing import Literal

from pydantic import BaseModel, Field

from fusion_portal.auth.schemas import ClientUser, Environment, Organization


class Banner(BaseModel):
    """Advisory dashboard banner. Never blocks an action."""

    kind: Literal["quota", "trial"]
    message: str
    quota_percent: int | None = None
    trial_days_remaining: int | None = None


class GuardOutcome(BaseModel):
    """What an authenticated page should do on this render.

    - redirect: no valid session, go to `redirect_to` and render nothing else
    - loading: session is valid but user/organization are not resolved yet
    - render: show the page with `banners`
    """

    status: Literal["redirect", "loading", "render"]
    redirect_to: str | None = None
    user: ClientUser | None = None
    organization: Organization | None = None
    environment: Environment | None = None
    banners: list[Banner] = Field(default_factory=list)
    trial_expired: bool = False
    subscription_required: bool = False
