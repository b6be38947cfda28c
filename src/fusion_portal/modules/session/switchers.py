"""
Fusion Portal Session - Organization and environment switchers.

Controllers that read the session store, fetch environment lists from the
backend and write the user's selection back.

- Environment switch: persisted immediately, no reload.
- Organization switch: persisted, then a full navigation to the dashboard
  root so every per-organization view state is discarded.
"""

import logging

from fusion_portal.auth.schemas import Environment, Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.exceptions import (
    BackendException,
    BackendUnavailableException,
    NotFoundException,
)
from fusion_portal.modules.session.schemas import EnvironmentState
from fusion_portal.schemas import Navigation

logger = logging.getLogger(__name__)

DASHBOARD_ROOT = "/client/dashboard"


def pick_default_environment(
    environments: list[Environment],
    saved: Environment | None,
) -> Environment | None:
    """Keep the saved environment if still listed, else the first sandbox, else the first."""
    if not environments:
        return None
    if saved is not None:
        for env in environments:
            if env.id == saved.id:
                return env
    return next((env for env in environments if not env.is_production), environments[0])


class EnvironmentSwitcher:
    """Environment picker bound to the current organization."""

    def __init__(self, session: SessionStore, client: FunctionsClient, notifier: Notifier):
        self.session = session
        self.client = client
        self.notifier = notifier
        self._environments: list[Environment] | None = None

    async def load(self) -> EnvironmentState:
        """Fetch environments for the current organization and settle the selection."""
        org = self.session.get_current_organization()
        if org is None:
            return EnvironmentState()

        try:
            response = await self.client.get_environments(org.id)
        except (BackendException, BackendUnavailableException) as e:
            logger.warning(f"Failed to load environments for org {org.id}: {e.message}")
            self.notifier.error("Failed to load environments")
            return EnvironmentState(error=e.message)

        environments = response.environments
        self._environments = environments
        if not environments:
            return EnvironmentState(empty=True)

        saved = self.session.get_current_environment()
        current = pick_default_environment(environments, saved)
        if saved is None or current.id != saved.id:
            self.session.set_current_environment(current)
            logger.info(f"Default environment for org {org.id} -> {current.id}")

        return EnvironmentState(environments=environments, current=current)

    async def select(self, environment_id: str) -> EnvironmentState:
        """Persist the user's environment choice."""
        if self._environments is None:
            state = await self.load()
            if state.error:
                return state

        environments = self._environments or []
        env = next((e for e in environments if e.id == environment_id), None)
        if env is None:
            raise NotFoundException("environment", environment_id)

        self.session.set_current_environment(env)
        self.notifier.success(f"Switched to {env.label}")
        return EnvironmentState(environments=environments, current=env)


class OrgSwitcher:
    """Organization picker over the stored membership list."""

    def __init__(self, session: SessionStore):
        self.session = session

    def options(self) -> list[Organization]:
        return self.session.get_organizations()

    def switch(self, organization_id: str) -> Navigation:
        if not self.session.switch_organization(organization_id):
            raise NotFoundException("organization", organization_id)
        return Navigation(to=DASHBOARD_ROOT, reload=True)
