"""
Fusion Portal Billing - Schemas.
"""

from typing import Literal

from pydantic import BaseModel, Field

from fusion_portal.schemas import Navigation

BillingCycle = Literal["monthly", "yearly"]


class CheckoutRequest(BaseModel):
    plan_code: str = Field(default="business_starter", min_length=1)
    billing_cycle: BillingCycle = "monthly"
    card_number: str = ""
    card_name: str = ""
    expiry: str = Field(default="", description="MM/YY")
    cvc: str = ""
    agreed_to_terms: bool = False


class PaymentMethodRequest(BaseModel):
    card_number: str = ""
    exp_month: str = ""
    exp_year: str = ""
    cvc: str = ""


class UpgradeRequest(BaseModel):
    plan_id: str | None = None


class PendingCheckoutRequest(BaseModel):
    plan_code: str = Field(..., min_length=1)
    billing_cycle: BillingCycle = "monthly"


class BillingActionResponse(BaseModel):
    """Terminal state of a billing form submit."""

    message: str
    navigation: Navigation | None = None
