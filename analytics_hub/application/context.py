from __future__ import annotations

import logging
from dataclasses import dataclass, field

from analytics_hub.application.debounce import Debouncer
from analytics_hub.application.router import AppRouter
from analytics_hub.application.store import DataStore
from analytics_hub.config import Settings
from analytics_hub.infrastructure.kv import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueBackend

__all__ = ["AppContext", "create_app_context", "create_memory_context"]

log = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Store, router and settings for one dashboard session."""

    store: DataStore
    router: AppRouter
    settings: Settings = field(default_factory=Settings)
    migrated: bool = True

    def debounced(self, func) -> Debouncer:
        """Wrap a search-input handler with the configured debounce delay."""
        return Debouncer(func, self.settings.search_debounce_ms / 1000)


def create_app_context(
    settings: Settings | None = None,
    *,
    backend: KeyValueBackend | None = None,
) -> AppContext:
    """Build a context and migrate its store.

    Without an explicit ``backend`` the store lives in ``settings.data_path``.
    """
    settings = settings or Settings()
    if backend is None:
        backend = JsonFileKeyValueStore(settings.data_path)

    store = DataStore(backend)
    migrated = store.run_migrations()
    if not migrated:
        log.error("Store migration did not complete; it will be retried on next start")

    router = AppRouter(store, show_active_projects_only=settings.show_active_projects_only)
    return AppContext(store=store, router=router, settings=settings, migrated=migrated)


def create_memory_context(settings: Settings | None = None) -> AppContext:
    return create_app_context(settings, backend=InMemoryKeyValueStore())
