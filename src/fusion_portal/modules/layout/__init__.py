"""Fusion Portal Layout Module - session guard and advisory banners."""

from fusion_portal.modules.layout.guard import LayoutGuard, is_billing_page
from fusion_portal.modules.layout.schemas import Banner, GuardOutcome

__all__ = ["LayoutGuard", "is_billing_page", "Banner", "GuardOutcome"]
