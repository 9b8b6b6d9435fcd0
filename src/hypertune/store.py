"""
Durable key/value state shared by the access controller and the workflow.

The layout mirrors browser local storage: string keys, string values.

- USAGE_KEY: decimal integer string, the number of datasets ingested so far
- CODES_KEY: JSON array of issued access codes
- CODE_METADATA_KEY: JSON object, code -> session duration in milliseconds

Read-modify-write sequences go through `update` (one key) or `update_many`
(several keys, one write), which hold the store lock for the whole sequence.
Streamlit serves each browser session on its own thread, so the lock is
required, not optional.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol

from .utils import read_json, write_json

logger = logging.getLogger(__name__)

USAGE_KEY = "ht_usage_count"
CODES_KEY = "ht_custom_codes"
CODE_METADATA_KEY = "ht_code_metadata"


class SessionStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def increment(self, key: str) -> int: ...

    def update(self, key: str, fn: Callable[[Optional[str]], str]) -> str: ...

    def update_many(
        self, keys: Iterable[str], fn: Callable[[dict[str, Optional[str]]], dict[str, str]]
    ) -> dict[str, str]: ...


def _bump(raw: Optional[str]) -> str:
    try:
        current = int(raw) if raw else 0
    except ValueError:
        logger.warning("Discarding non-numeric counter value %r", raw)
        current = 0
    return str(current + 1)


class MemorySessionStore:
    """In-process store. Used by tests and when no durable path is wanted."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def update(self, key: str, fn: Callable[[Optional[str]], str]) -> str:
        with self._lock:
            new_value = fn(self._data.get(key))
            self._data[key] = new_value
            return new_value

    def update_many(
        self, keys: Iterable[str], fn: Callable[[dict[str, Optional[str]]], dict[str, str]]
    ) -> dict[str, str]:
        with self._lock:
            new_values = fn({k: self._data.get(k) for k in keys})
            self._data.update(new_values)
            return new_values

    def increment(self, key: str) -> int:
        return int(self.update(key, _bump))

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._data)


class JsonFileSessionStore:
    """
    One JSON document on disk holding every key.

    The file is re-read on each access so that several app processes pointed at
    the same path observe each other's writes; writes replace the file atomically.
    Cross-process read-modify-write is not serialised.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = read_json(self.path)
        except (ValueError, OSError) as e:
            logger.warning("State file %s unreadable (%s); starting empty", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            write_json(self.path, data)

    def update(self, key: str, fn: Callable[[Optional[str]], str]) -> str:
        with self._lock:
            data = self._load()
            new_value = fn(data.get(key))
            data[key] = new_value
            write_json(self.path, data)
            return new_value

    def update_many(
        self, keys: Iterable[str], fn: Callable[[dict[str, Optional[str]]], dict[str, str]]
    ) -> dict[str, str]:
        with self._lock:
            data = self._load()
            new_values = fn({k: data.get(k) for k in keys})
            data.update(new_values)
            write_json(self.path, data)
            return new_values

    def increment(self, key: str) -> int:
        return int(self.update(key, _bump))


def read_usage(store: SessionStore) -> int:
    raw = store.get(USAGE_KEY)
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0
