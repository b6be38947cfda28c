"""
Fusion Portal - Dependency Injection.

FastAPI dependencies for settings, feature flags, the client session and
process-wide services.
"""

import logging
from functools import lru_cache
from typing import Annotated
from uuid import UUID, uuid4

from fastapi import Depends, Header

from fusion_portal.auth.schemas import ClientUser, Environment, Organization, has_role
from fusion_portal.config import FeatureFlags, Settings, get_settings
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.core.storage import FileStorage, KeyValueStorage, MemoryStorage, RedisStorage
from fusion_portal.exceptions import (
    FeatureDisabledException,
    ForbiddenException,
    UnauthorizedException,
    ValidationException,
)
from fusion_portal.modules.verify.queue import VerificationQueue
from fusion_portal.observability.metrics import get_metrics_store

logger = logging.getLogger(__name__)


# =============================================================================
# Settings Dependencies
# =============================================================================


def get_features(settings: Annotated[Settings, Depends(get_settings)]) -> FeatureFlags:
    """Get feature flags from settings."""
    return settings.features


# =============================================================================
# Request Context
# =============================================================================


def get_request_id(x_request_id: Annotated[str | None, Header()] = None) -> UUID:
    """Get or generate request ID for tracing."""
    if x_request_id:
        try:
            return UUID(x_request_id)
        except ValueError:
            pass
    return uuid4()


# =============================================================================
# Feature Flag Guards
# =============================================================================


def require_feature(feature_name: str):
    """Create a dependency that requires a specific feature to be enabled."""

    def check_feature(features: Annotated[FeatureFlags, Depends(get_features)]) -> bool:
        if not getattr(features, feature_name, False):
            raise FeatureDisabledException(feature_name)
        return True

    return check_feature


require_verify = Depends(require_feature("verify"))
require_billing = Depends(require_feature("billing"))
require_api_keys = Depends(require_feature("api_keys"))
require_activity = Depends(require_feature("activity"))
require_account = Depends(require_feature("account"))


# =============================================================================
# Services (process-wide)
# =============================================================================


def build_storage(settings: Settings) -> KeyValueStorage:
    """Pick the session storage backend from settings."""
    backend = settings.session.backend
    if backend == "memory":
        return MemoryStorage()
    if backend == "redis":
        return RedisStorage(settings.session.redis_url)
    return FileStorage(settings.session.file_path)


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    settings = get_settings()
    logger.info(f"Session storage backend: {settings.session.backend}")
    return SessionStore(build_storage(settings), settings.session)


@lru_cache(maxsize=1)
def get_notifier() -> Notifier:
    return Notifier()


@lru_cache(maxsize=1)
def get_functions_client() -> FunctionsClient:
    return FunctionsClient(
        get_settings().backend,
        session=get_session_store(),
        metrics=get_metrics_store(),
    )


@lru_cache(maxsize=1)
def get_verification_queue() -> VerificationQueue:
    return VerificationQueue(
        get_session_store(),
        get_functions_client(),
        get_notifier(),
        settings=get_settings().queue,
        metrics=get_metrics_store(),
    )


# =============================================================================
# Session Guards
# =============================================================================


def require_session(
    session: Annotated[SessionStore, Depends(get_session_store)],
) -> ClientUser:
    """Require a valid client session. Returns the signed-in user."""
    if not session.validate_session():
        raise UnauthorizedException()
    return session.get_current_user()


def require_organization(
    user: Annotated[ClientUser, Depends(require_session)],
    session: Annotated[SessionStore, Depends(get_session_store)],
) -> Organization:
    """Require a selected organization."""
    org = session.get_current_organization()
    if org is None:
        raise ValidationException("No organization selected")
    return org


def require_environment(
    org: Annotated[Organization, Depends(require_organization)],
    session: Annotated[SessionStore, Depends(get_session_store)],
) -> Environment:
    """Require a selected environment in the current organization."""
    env = session.get_current_environment()
    if env is None:
        raise ValidationException("No environment selected")
    return env


# =============================================================================
# Role Guards
# =============================================================================


def require_org_role(*allowed_roles: str):
    """Create a dependency that requires a role in the current organization.

    This only gates what the portal offers; the backend enforces access.
    """

    def check_role(org: Annotated[Organization, Depends(require_organization)]) -> Organization:
        if not has_role(org, *allowed_roles):
            raise ForbiddenException(
                "Insufficient permissions",
                required_role=", ".join(allowed_roles),
            )
        return org

    return check_role


require_key_manager = require_org_role("owner", "admin", "developer")
require_billing_viewer = require_org_role("owner", "admin")
require_billing_manager = require_org_role("owner")
