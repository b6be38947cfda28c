"""
Fusion Portal Core - Backend function payloads.

Pydantic models for what the serverless functions return. Unknown fields
are ignored so backend additions never break the portal.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from fusion_portal.auth.schemas import ClientUser, Environment, Organization


VerificationClass = Literal["authentic", "tampered", "unverified"]


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
    )


# =============================================================================
# Session
# =============================================================================


class LoginResponse(_Wire):
    """`client-login` body."""

    success: bool = False
    session_token: str | None = None
    requires_2fa: bool = Field(default=False, validation_alias=AliasChoices("requires2FA", "requires_2fa"))
    user: ClientUser | None = None
    organizations: list[Organization] = Field(default_factory=list)
    error: str | None = None


class OrganizationsResponse(_Wire):
    organizations: list[Organization] = Field(default_factory=list)


class EnvironmentsResponse(_Wire):
    environments: list[Environment] = Field(default_factory=list)


# =============================================================================
# Verification
# =============================================================================


class VerificationResult(_Wire):
    """Outcome of one audio verification.

    A `tampered` result is a successful verification, not a failure.
    """

    id: str
    filename: str
    file_size: int = Field(default=0, ge=0)
    result: VerificationClass
    confidence_score: float = 0
    processing_time_ms: int = 0
    origin_detected: str | None = None
    tamper_detected: bool = False
    tamper_indicators: list[str] = Field(default_factory=list)
    hash: str = ""
    timestamp: datetime
    quota_used: int | None = None
    quota_limit: int | None = None
    quota_remaining: int | None = None


class VerifyResponse(_Wire):
    success: bool = True
    verification: VerificationResult


# =============================================================================
# API keys
# =============================================================================


class ApiKey(BaseModel):
    """API key as listed by the backend. The secret itself is never listed."""

    id: str
    key_name: str
    key_prefix: str
    key_secret_partial: str | None = None
    scopes: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    last_used_at: datetime | None = None
    is_active: bool = True
    expires_at: datetime | None = None
    revoked_at: datetime | None = None

    @computed_field
    @property
    def masked(self) -> str:
        return f"{self.key_prefix}••••••••{self.key_secret_partial or ''}"


class ApiKeysResponse(_Wire):
    api_keys: list[ApiKey] = Field(default_factory=list)
    count: int = 0


class CreatedApiKey(_Wire):
    """`create-api-key` / `rotate-api-key` body. The full key is shown once."""

    full_key: str = Field(validation_alias=AliasChoices("fullKey", "newKey", "full_key"))
    api_key: ApiKey | None = None
    message: str | None = None


# =============================================================================
# Activity
# =============================================================================


class ActivityItem(BaseModel):
    id: str
    file_name: str
    file_size: int | None = None
    file_type: str | None = None
    result: str
    confidence_score: float | None = None
    processing_time_ms: int | None = None
    api_key_name: str | None = None
    created_at: datetime


class ActivityResponse(_Wire):
    activities: list[ActivityItem] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


# =============================================================================
# Billing
# =============================================================================


class Subscription(BaseModel):
    plan_type: str
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    is_trial: bool = False
    trial_ends_at: datetime | None = None


class Usage(BaseModel):
    quota_used: int = 0
    quota_limit: int = 0
    overage_count: int = 0


class Invoice(BaseModel):
    id: str
    amount: int = Field(description="Cents")
    status: str
    created_at: datetime | None = None
    period_start: datetime | None = None
    period_end: datetime | None = None


class PaymentMethodSummary(BaseModel):
    type: str
    last4: str
    exp_month: int
    exp_year: int


class BillingData(BaseModel):
    subscription: Subscription
    usage: Usage = Field(default_factory=Usage)
    invoices: list[Invoice] = Field(default_factory=list)
    payment_method: PaymentMethodSummary | None = None


class BillingResponse(_Wire):
    billing: BillingData


# =============================================================================
# Account
# =============================================================================


class OrganizationRef(BaseModel):
    id: str
    name: str
    slug: str = ""


class AccountResponse(_Wire):
    """Generic `{success, message, organization?, user?}` body."""

    success: bool = True
    message: str | None = None
    organization: OrganizationRef | None = None
    user: dict[str, Any] | None = None
