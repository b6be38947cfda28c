"""
Fusion Portal Account - Schemas.
"""

from pydantic import BaseModel, Field

from fusion_portal.auth.schemas import ClientUser
from fusion_portal.schemas import Navigation


class AcceptInviteRequest(BaseModel):
    token: str = Field(..., min_length=1)


class CreateOrganizationRequest(BaseModel):
    name: str = ""
    slug: str | None = Field(default=None, description="Derived from the name when omitted")


class UpdateProfileRequest(BaseModel):
    full_name: str = ""
    phone: str | None = None
    company: str | None = None
    avatar_url: str | None = None


class AccountActionResponse(BaseModel):
    message: str
    navigation: Navigation | None = None
    user: ClientUser | None = None
