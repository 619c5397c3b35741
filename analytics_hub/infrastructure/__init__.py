"""Infrastructure layer exports."""

from .kv import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueBackend,
    StorageError,
    StorageQuotaExceeded,
    StorageUnavailable,
)

__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueBackend",
    "StorageError",
    "StorageQuotaExceeded",
    "StorageUnavailable",
]
