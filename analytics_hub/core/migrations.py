"""Schema migrations for the persisted collections.

Each step is guarded by the stored version and only touches fields that are
still missing or still carry their legacy name, so an interrupted run can be
repeated safely.  The version marker is written only after every collection
of a step has been saved.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from analytics_hub.core.schema import KEYS, SCHEMA_VERSION

if TYPE_CHECKING:
    from analytics_hub.application.store import DataStore

log = logging.getLogger(__name__)

ASSIGNABLE_KEYS = (KEYS.REQUESTS, KEYS.IN_PROGRESS, KEYS.REPORTS)
PROJECT_SCOPED_KEYS = (KEYS.DOCUMENTS, KEYS.DASHBOARD_LINKS, KEYS.CONTROL_ITEMS)


class MigrationError(Exception):
    """Raised inside a step when a collection could not be written back."""


def _save(store: DataStore, key: str, items: list[dict]) -> None:
    if not store.save_collection(key, items):
        raise MigrationError(f"could not write {key}")


def migrate_v1(store: DataStore) -> None:
    """Backfill division/project references and report categories; create new collections."""

    for key in ASSIGNABLE_KEYS:
        items = store.load_collection(key)
        for item in items:
            if "divisionId" not in item:
                item["divisionId"] = None
            # records still carrying clientId get renamed by v2
            if "projectId" not in item and "clientId" not in item:
                item["projectId"] = None
            if key == KEYS.REPORTS and "category" not in item:
                item["category"] = "recurring"
        _save(store, key, items)

    for key in (KEYS.PROJECTS, *PROJECT_SCOPED_KEYS):
        if not store.has_key(key):
            _save(store, key, [])


def migrate_v2(store: DataStore) -> None:
    """Rename ``clientId`` to ``projectId`` and move the clients collection to projects."""

    for key in (*ASSIGNABLE_KEYS, *PROJECT_SCOPED_KEYS):
        items = store.load_collection(key)
        changed = False
        for item in items:
            if "clientId" not in item:
                continue
            legacy = item.pop("clientId")
            if item.get("projectId") is None:
                item["projectId"] = legacy
            changed = True
        if changed:
            _save(store, key, items)

    if not store.has_key(KEYS.LEGACY_CLIENTS):
        return

    legacy_clients = store.load_collection(KEYS.LEGACY_CLIENTS)
    projects = store.load_collection(KEYS.PROJECTS)
    if projects:
        if legacy_clients and legacy_clients != projects:
            log.warning(
                "Projects collection already holds %d records; discarding %d legacy client records",
                len(projects),
                len(legacy_clients),
            )
    else:
        _save(store, KEYS.PROJECTS, legacy_clients)
    if not store.remove_key(KEYS.LEGACY_CLIENTS):
        raise MigrationError(f"could not remove {KEYS.LEGACY_CLIENTS}")


MIGRATIONS: tuple[tuple[int, Callable[[DataStore], None]], ...] = (
    (1, migrate_v1),
    (2, migrate_v2),
)


def run_migrations(store: DataStore, target: int = SCHEMA_VERSION) -> bool:
    """Apply every step above the stored version up to ``target``.

    Returns False when a write failed; the version marker then stays at the
    last completed step so the next start resumes from there.
    """

    current = store.get_schema_version()
    for version, step in MIGRATIONS:
        if version > target or current >= version:
            continue
        log.info("Migrating store schema v%d -> v%d", current, version)
        try:
            step(store)
        except MigrationError as exc:
            log.error("Migration to v%d aborted: %s", version, exc)
            return False
        if not store.set_schema_version(version):
            log.error("Migration to v%d applied but version marker was not saved", version)
            return False
        current = version
    return True
