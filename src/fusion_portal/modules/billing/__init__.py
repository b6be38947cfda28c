"""Fusion Portal Billing Module - checkout, payment method and plan upgrade."""

from fusion_portal.modules.billing.service import (
    BillingService,
    CheckoutFlow,
    PaymentMethodFlow,
    UpgradeFlow,
)

__all__ = ["BillingService", "CheckoutFlow", "PaymentMethodFlow", "UpgradeFlow"]
