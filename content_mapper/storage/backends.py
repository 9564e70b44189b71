"""Synchronous string key-value backends.

Backends raise StorageError on failure. LocalStore catches those errors so
callers see a degraded result instead of an exception.
"""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from content_mapper.exceptions import StorageError, StorageQuotaExceededError


class KeyValueStorage(ABC):
    """Minimal string-to-string store."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """List stored keys."""
        ...


class MemoryStorage(KeyValueStorage):
    """In-process store with an optional size quota (characters across all values)."""

    def __init__(self, quota: int | None = None):
        self._data: dict[str, str] = {}
        self.quota = quota

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.quota:
                raise StorageQuotaExceededError(
                    f"Quota of {self.quota} exceeded writing {len(value)} characters", key=key
                )
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JSONFileStorage(KeyValueStorage):
    """Store backed by a single JSON object on disk.

    Every write rewrites the file through a temporary file and an atomic
    rename, so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise StorageError(f"Storage file {self.path} is corrupt: {e.msg}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.path} does not hold an object")
        return data

    def _dump(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._dump(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._dump(data)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._load())
