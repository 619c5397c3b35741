"""Key-value backends holding the serialized collections.

The store only ever sees strings, mirroring the browser ``localStorage``
contract the dashboard was first written against.  Two implementations are
provided: an in-memory map used by tests and embedded callers, and a JSON file
that keeps the whole map in a single document on disk.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

log = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the backing store cannot complete a read or write."""


class StorageQuotaExceeded(StorageError):
    """Raised when a write would grow the store past its quota."""


class StorageUnavailable(StorageError):
    """Raised when storage is disabled or its medium cannot be reached."""


class KeyValueBackend(Protocol):
    """Persistence contract for string values addressed by key."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class InMemoryKeyValueStore:
    """Simple in-memory map with optional quota, for fast iteration and tests."""

    def __init__(
        self,
        initial: dict[str, str] | None = None,
        *,
        quota_bytes: int | None = None,
        disabled: bool = False,
    ) -> None:
        self._items: dict[str, str] = dict(initial or {})
        self.quota_bytes = quota_bytes
        self.disabled = disabled

    def _check_enabled(self) -> None:
        if self.disabled:
            raise StorageUnavailable("storage is disabled")

    def _size_with(self, key: str, value: str) -> int:
        total = len(key) + len(value)
        for existing_key, existing_value in self._items.items():
            if existing_key != key:
                total += len(existing_key) + len(existing_value)
        return total

    def get_item(self, key: str) -> str | None:
        self._check_enabled()
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_enabled()
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageQuotaExceeded(f"writing {key!r} exceeds quota of {self.quota_bytes} bytes")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._check_enabled()
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        self._check_enabled()
        return list(self._items)


class JsonFileKeyValueStore:
    """Persist the whole key map as one JSON object, replaced atomically on write.

    A file that cannot be decoded is renamed to ``<name>.corrupt-<timestamp>``
    before the store carries on empty.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageUnavailable(f"cannot read {self.path}: {exc}") from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            self._quarantine("is not valid JSON")
            return {}
        if not isinstance(data, dict):
            self._quarantine("does not hold a key map")
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _quarantine(self, reason: str) -> None:
        """Move an unreadable store file aside so the next write cannot destroy it."""

        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            os.replace(self.path, target)
        except OSError as exc:
            raise StorageUnavailable(f"{self.path} {reason} and could not be moved aside: {exc}") from exc
        log.warning("Store file %s %s; moved it to %s and treating the store as empty", self.path, reason, target)

    def _dump(self, items: dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fp:
                json.dump(items, fp, ensure_ascii=False, indent=2)
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise StorageUnavailable(f"cannot write {self.path}: {exc}") from exc

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._dump(items)

    def keys(self) -> list[str]:
        return list(self._load())
