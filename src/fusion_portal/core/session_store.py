"""
Fusion Portal Core - Session Store.

Process-wide client session: the authenticated user, the organizations they
belong to, and the current organization/environment selection.

Every record is stored as a versioned envelope:

    {"version": 1, "data": {...}}

Reads validate the envelope and the payload schema. Anything missing,
malformed or written under another schema version reads as absent, so a
corrupted record degrades to "logged out" instead of raising.

All operations are synchronous and never touch the network.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from fusion_portal.auth.schemas import ClientUser, Environment, Organization, SessionToken
from fusion_portal.config import SessionSettings
from fusion_portal.core.storage import KeyValueStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_SESSION_TOKEN = "client_token"
KEY_USER = "client_user"
KEY_ORGANIZATIONS = "client_orgs"
KEY_CURRENT_ORG = "current_org"
KEY_CURRENT_ENV = "current_env"
KEY_DEVICE_ID = "device_id"
KEY_PENDING_CHECKOUT = "client_pending_checkout"


class PendingCheckout(BaseModel):
    """Plan picked on the pricing page before the user signed in."""

    plan_code: str
    billing_cycle: str = "monthly"


_token_adapter = TypeAdapter(SessionToken)
_user_adapter = TypeAdapter(ClientUser)
_orgs_adapter = TypeAdapter(list[Organization])
_org_adapter = TypeAdapter(Organization)
_env_adapter = TypeAdapter(Environment)
_pending_adapter = TypeAdapter(PendingCheckout)
_str_adapter = TypeAdapter(str)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Getter/setter contract over a key/value storage backend."""

    def __init__(
        self,
        storage: KeyValueStorage,
        settings: SessionSettings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.storage = storage
        self.settings = settings or SessionSettings()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Envelope I/O
    # -------------------------------------------------------------------------

    def _key(self, name: str) -> str:
        return f"{self.settings.key_prefix}{name}"

    def _read(self, name: str, adapter: TypeAdapter[T]) -> T | None:
        raw = self.storage.get(self._key(name))
        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding unparseable session record '{name}'")
            return None

        if not isinstance(envelope, dict) or envelope.get("version") != self.settings.schema_version:
            logger.info(f"Ignoring session record '{name}' written under another schema version")
            return None

        try:
            return adapter.validate_python(envelope.get("data"))
        except ValidationError as e:
            logger.warning(f"Session record '{name}' failed validation: {e.error_count()} error(s)")
            return None

    def _write(self, name: str, adapter: TypeAdapter[T], value: T) -> None:
        envelope: dict[str, Any] = {
            "version": self.settings.schema_version,
            "data": adapter.dump_python(value, mode="json"),
        }
        self.storage.set(self._key(name), json.dumps(envelope))

    def _delete(self, name: str) -> None:
        self.storage.delete(self._key(name))

    # -------------------------------------------------------------------------
    # Session token
    # -------------------------------------------------------------------------

    def get_session_token(self) -> SessionToken | None:
        return self._read(KEY_SESSION_TOKEN, _token_adapter)

    def set_session_token(self, token: str, remember_device: bool = False) -> SessionToken:
        now = self._clock()
        hours = self.settings.remember_ttl_hours if remember_device else self.settings.ttl_hours
        record = SessionToken(token=token, issued_at=now, expires_at=now + timedelta(hours=hours))
        self._write(KEY_SESSION_TOKEN, _token_adapter, record)
        return record

    def clear_session_token(self) -> None:
        self._delete(KEY_SESSION_TOKEN)

    # -------------------------------------------------------------------------
    # User
    # -------------------------------------------------------------------------

    def get_current_user(self) -> ClientUser | None:
        return self._read(KEY_USER, _user_adapter)

    def set_current_user(self, user: ClientUser) -> None:
        self._write(KEY_USER, _user_adapter, user)

    def clear_current_user(self) -> None:
        self._delete(KEY_USER)

    # -------------------------------------------------------------------------
    # Organizations
    # -------------------------------------------------------------------------

    def get_organizations(self) -> list[Organization]:
        return self._read(KEY_ORGANIZATIONS, _orgs_adapter) or []

    def set_organizations(self, organizations: list[Organization]) -> None:
        """Replace the organization list.

        The current selection survives only if its id is still listed; it is
        refreshed from the new list so role and quota stay current.
        """
        self._write(KEY_ORGANIZATIONS, _orgs_adapter, list(organizations))

        current = self._read(KEY_CURRENT_ORG, _org_adapter)
        if current is None:
            return

        fresh = next((o for o in organizations if o.id == current.id), None)
        if fresh is None:
            self.clear_current_organization()
            self.clear_current_environment()
        else:
            self._write(KEY_CURRENT_ORG, _org_adapter, fresh)

    def get_current_organization(self) -> Organization | None:
        current = self._read(KEY_CURRENT_ORG, _org_adapter)
        if current is None:
            return None
        if not any(o.id == current.id for o in self.get_organizations()):
            return None
        return current

    def set_current_organization(self, org: Organization) -> bool:
        """Select an organization. Refused when it is not in the stored list."""
        if not any(o.id == org.id for o in self.get_organizations()):
            logger.info(f"Refusing to select organization {org.id}: not a member")
            return False
        self._write(KEY_CURRENT_ORG, _org_adapter, org)
        return True

    def clear_current_organization(self) -> None:
        self._delete(KEY_CURRENT_ORG)

    def switch_organization(self, org_id: str) -> bool:
        """Switch to a listed organization. State is unchanged on failure."""
        org = next((o for o in self.get_organizations() if o.id == org_id), None)
        if org is None:
            return False

        self._write(KEY_CURRENT_ORG, _org_adapter, org)
        # environments belong to one organization
        self.clear_current_environment()
        logger.info(f"Switched organization -> {org.id}")
        return True

    # -------------------------------------------------------------------------
    # Environment
    # -------------------------------------------------------------------------

    def get_current_environment(self) -> Environment | None:
        env = self._read(KEY_CURRENT_ENV, _env_adapter)
        if env is None:
            return None
        org = self.get_current_organization()
        if org is not None and env.organization_id != org.id:
            return None
        return env

    def set_current_environment(self, env: Environment) -> None:
        self._write(KEY_CURRENT_ENV, _env_adapter, env)

    def clear_current_environment(self) -> None:
        self._delete(KEY_CURRENT_ENV)

    # -------------------------------------------------------------------------
    # Device / pending checkout
    # -------------------------------------------------------------------------

    def get_device_id(self) -> str:
        device_id = self._read(KEY_DEVICE_ID, _str_adapter)
        if not device_id:
            device_id = str(uuid.uuid4())
            self._write(KEY_DEVICE_ID, _str_adapter, device_id)
        return device_id

    def set_pending_checkout(self, plan_code: str, billing_cycle: str = "monthly") -> None:
        self._write(
            KEY_PENDING_CHECKOUT,
            _pending_adapter,
            PendingCheckout(plan_code=plan_code, billing_cycle=billing_cycle),
        )

    def pop_pending_checkout(self) -> PendingCheckout | None:
        pending = self._read(KEY_PENDING_CHECKOUT, _pending_adapter)
        self._delete(KEY_PENDING_CHECKOUT)
        return pending

    # -------------------------------------------------------------------------
    # Logout / validation
    # -------------------------------------------------------------------------

    def logout(self) -> None:
        """Clear the whole session. The device id is kept."""
        self.clear_session_token()
        self.clear_current_user()
        self._delete(KEY_ORGANIZATIONS)
        self.clear_current_organization()
        self.clear_current_environment()
        self._delete(KEY_PENDING_CHECKOUT)
        logger.info("Session cleared")

    def validate_session(self) -> bool:
        """Fast-fail guard: a non-expired token and a user record are present.

        The token itself is only judged by the backend.
        """
        token = self.get_session_token()
        if token is None or token.is_expired(self._clock()):
            return False
        return self.get_current_user() is not None

    def auth_headers(self) -> dict[str, str]:
        token = self.get_session_token()
        if token is None:
            return {}
        return {"Authorization": f"Bearer {token.token}"}
