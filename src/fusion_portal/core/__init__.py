"""
Fusion Portal Core.

- storage: key/value backends for the client session
- session_store: versioned session records and selection invariants
- plans: trial and quota helpers
- functions_client: HTTP client for the serverless backend
- notifications: user-visible outcome buffer
"""

from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.core.session_store import SessionStore
from fusion_portal.core.storage import FileStorage, KeyValueStorage, MemoryStorage, RedisStorage

__all__ = [
    "FunctionsClient",
    "Notifier",
    "SessionStore",
    "KeyValueStorage",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
]
