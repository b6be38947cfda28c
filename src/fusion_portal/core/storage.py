"""
Fusion Portal Core - Session storage backends.

Key/value string storage with the semantics of browser local storage:
synchronous, last write wins, values are opaque strings.

- MemoryStorage: process memory (tests, ephemeral runs)
- FileStorage: one JSON document on disk
- RedisStorage: one Redis key per entry
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from fusion_portal.exceptions import PortalException

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Abstract string storage used by the session store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class FileStorage(KeyValueStorage):
    """Single JSON document on disk.

    An unreadable or malformed document reads as empty; the next write
    replaces it.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Session file unreadable ({self.path}): {e}")
            return {}

        try:
            loaded = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Session file is not valid JSON, treating as empty: {self.path}")
            return {}

        if not isinstance(loaded, dict):
            return {}
        return {k: v for k, v in loaded.items() if isinstance(k, str) and isinstance(v, str)}

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._dump(data)


class RedisStorage(KeyValueStorage):
    """Redis-backed storage (shared session across portal processes)."""

    def __init__(self, url: str, client=None):
        if client is None:
            try:
                import redis  # type: ignore

                client = redis.Redis.from_url(url, decode_responses=True)
            except Exception as e:
                raise PortalException(
                    code="SESSION_STORAGE_DOWN",
                    message=f"Redis client init failed: {e}",
                    status_code=503,
                )
        self._client = client

    def _call(self, op: str, *args):
        try:
            return getattr(self._client, op)(*args)
        except Exception as e:
            raise PortalException(
                code="SESSION_STORAGE_DOWN",
                message=f"Redis {op.upper()} failed: {e}",
                status_code=503,
            )

    def get(self, key: str) -> str | None:
        raw = self._call("get", key)
        if raw is None:
            return None
        if isinstance(raw, (bytes, bytearray)):
            return raw.decode("utf-8", errors="replace")
        return str(raw)

    def set(self, key: str, value: str) -> None:
        self._call("set", key, value)

    def delete(self, key: str) -> None:
        self._call("delete", key)
