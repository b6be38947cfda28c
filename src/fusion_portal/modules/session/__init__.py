"""Fusion Portal Session Module - sign-in and organization/environment selection."""

from fusion_portal.modules.session.service import SessionService
from fusion_portal.modules.session.switchers import (
    EnvironmentSwitcher,
    OrgSwitcher,
    pick_default_environment,
)

__all__ = ["SessionService", "EnvironmentSwitcher", "OrgSwitcher", "pick_default_environment"]
