"""
Shared fixtures: in-memory session, model factories and a fake serverless
backend served through httpx.MockTransport.
"""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from fusion_portal.auth.schemas import ClientUser, Environment, Organization
from fusion_portal.config import BackendSettings, QueueSettings, SessionSettings
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.core.storage import MemoryStorage
from fusion_portal.observability.metrics import MetricsStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_user(**overrides) -> ClientUser:
    data = {"id": "user-1", "email": "ana@example.com", "full_name": "Ana Ruiz"}
    data.update(overrides)
    return ClientUser(**data)


def make_org(org_id: str = "a", role: str | None = "owner", **overrides) -> Organization:
    data = {
        "id": org_id,
        "name": f"Org {org_id.upper()}",
        "slug": f"org-{org_id}",
        "role": role,
        "plan_type": "business_starter",
        "quota_verifications_monthly": 100,
        "quota_used_current_month": 10,
    }
    data.update(overrides)
    return Organization(**data)


def make_env(env_id: str = "env-sandbox", org_id: str = "a", is_production: bool = False, **overrides) -> Environment:
    data = {
        "id": env_id,
        "organization_id": org_id,
        "name": "production" if is_production else "sandbox",
        "display_name": "Production" if is_production else "Sandbox",
        "is_production": is_production,
    }
    data.update(overrides)
    return Environment(**data)


def verification_body(file_name: str, result: str = "authentic", **overrides) -> dict:
    """A `client-verify-audio` success body, camelCase like the backend sends it."""
    verification = {
        "id": f"ver-{file_name}",
        "filename": file_name,
        "fileSize": 1024,
        "result": result,
        "confidenceScore": 0.97,
        "processingTimeMs": 420,
        "originDetected": "studio",
        "tamperDetected": result == "tampered",
        "tamperIndicators": ["splice"] if result == "tampered" else [],
        "hash": "ab12",
        "timestamp": NOW.isoformat(),
        "quotaRemaining": 80,
    }
    verification.update(overrides)
    return {"success": True, "verification": verification}


class FakeBackend:
    """Routes `/.netlify/functions/<name>` to per-function handlers.

    A handler takes the decoded JSON payload and returns an httpx.Response
    (or a coroutine producing one). Every call is recorded.
    """

    def __init__(self):
        self.handlers = {}
        self.calls: list[tuple[str, dict]] = []
        self.transport = httpx.MockTransport(self._handle)

    def on(self, name: str, handler=None, *, json_body=None, status: int = 200):
        if handler is None:
            def handler(payload, _body=json_body, _status=status):
                return httpx.Response(_status, json=_body)
        self.handlers[name] = handler
        return self

    def calls_to(self, name: str) -> list[dict]:
        return [payload for called, payload in self.calls if called == name]

    def _handle(self, request: httpx.Request):
        name = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content or b"{}")
        self.calls.append((name, payload))
        handler = self.handlers.get(name)
        if handler is None:
            return httpx.Response(404, json={"error": f"No such function: {name}"})
        return handler(payload)


@pytest.fixture
def clock():
    """Mutable clock: tests move `clock.now` forward."""

    class _Clock:
        now = NOW

        def __call__(self):
            return self.now

    return _Clock()


@pytest.fixture
def session_store(clock) -> SessionStore:
    return SessionStore(MemoryStorage(), SessionSettings(), clock=clock)


@pytest.fixture
def signed_in(session_store) -> SessionStore:
    """Signed-in owner of org `a`, member of org `b`, sandbox environment selected."""
    session_store.set_session_token("tok-123")
    session_store.set_current_user(make_user())
    session_store.set_organizations([make_org("a", "owner"), make_org("b", "member")])
    session_store.set_current_organization(make_org("a", "owner"))
    session_store.set_current_environment(make_env())
    return session_store


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def metrics() -> MetricsStore:
    return MetricsStore()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def functions_client(session_store, backend, metrics) -> FunctionsClient:
    return FunctionsClient(
        BackendSettings(base_url="http://backend.test"),
        session=session_store,
        transport=backend.transport,
        metrics=metrics,
    )


@pytest.fixture
def queue_settings() -> QueueSettings:
    return QueueSettings()


@pytest.fixture
def expiring_trial_org():
    return make_org("t", billing_status="trial", trial_ends_at=NOW + timedelta(days=3))
