"""Fusion Portal Auth Module.

Session identity lives in the client session store; the backend validates the
opaque session token on every call. The models and role helpers here only
decide what the portal offers, never what the backend allows.
"""

from fusion_portal.auth.schemas import (
    ClientUser,
    Environment,
    Organization,
    SessionToken,
    can_manage_api_keys,
    can_manage_billing,
    can_manage_team,
    can_manage_webhooks,
    can_view_billing,
    has_role,
    is_read_only,
)

__all__ = [
    "ClientUser",
    "Environment",
    "Organization",
    "SessionToken",
    "has_role",
    "can_manage_team",
    "can_manage_api_keys",
    "can_manage_webhooks",
    "can_view_billing",
    "can_manage_billing",
    "is_read_only",
]
