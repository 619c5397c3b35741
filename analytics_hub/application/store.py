"""Application service owning every persisted collection.

Reads always go back to the key-value backend and return freshly decoded
records, so callers can never mutate stored state through a result.  Reads
fail soft (an unreadable collection is an empty one); writes report failure
through their return value instead of raising.
"""
from __future__ import annotations

import json
import logging
import random
import string
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

from pydantic import TypeAdapter

from analytics_hub.core import migrations
from analytics_hub.core.queries import (
    filter_by_search_term,
    group_by,
    sort_by_date_desc,
    sort_control_items,
    sort_requests,
)
from analytics_hub.core.schema import (
    DIVISIONS,
    ID_PREFIXES,
    KEYS,
    ControlItem,
    DashboardLink,
    Document,
    InProgressItem,
    Project,
    Record,
    Report,
    Request,
    WriteResult,
)
from analytics_hub.infrastructure.kv import KeyValueBackend, StorageError

log = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits

# creation timestamp assigned by the store, per record type
_CREATION_STAMPS: dict[type[Record], str] = {
    Project: "dateCreated",
    Request: "dateSubmitted",
    InProgressItem: "dateCreated",
    Document: "dateAdded",
    DashboardLink: "dateAdded",
    ControlItem: "dateCreated",
}

_FIELD_ADAPTERS: dict[type[Record], dict[str, tuple[TypeAdapter, Any]]] = {}

UNASSIGNED_LABEL = "Unassigned"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _field_adapters(model: type[Record]) -> dict[str, tuple[TypeAdapter, Any]]:
    """Map both the camelCase alias and the attribute name of each field to its validator."""

    adapters = _FIELD_ADAPTERS.get(model)
    if adapters is None:
        adapters = {}
        for name, info in model.model_fields.items():
            entry = (TypeAdapter(info.annotation), info.alias or name)
            adapters[name] = entry
            adapters[info.alias or name] = entry
        _FIELD_ADAPTERS[model] = adapters
    return adapters


def _blank_to_none(model: type[Record], record: dict) -> dict:
    for name, info in model.model_fields.items():
        alias = info.alias or name
        if info.default is None and record.get(alias) == "":
            record[alias] = None
    return record


class DataStore:
    """CRUD, queries and schema migration over the key-value backend."""

    def __init__(self, backend: KeyValueBackend, *, clock: Callable[[], datetime] | None = None) -> None:
        self._backend = backend
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # storage primitives
    # ------------------------------------------------------------------
    def load_collection(self, key: str) -> list[dict]:
        try:
            raw = self._backend.get_item(key)
        except StorageError as exc:
            log.warning("Could not read %s: %s", key, exc)
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Collection %s holds malformed JSON; treating it as empty", key)
            return []
        if not isinstance(data, list):
            log.warning("Collection %s is not a JSON array; treating it as empty", key)
            return []
        return [item for item in data if isinstance(item, dict)]

    def save_collection(self, key: str, items: Iterable[dict]) -> bool:
        try:
            payload = json.dumps(list(items))
        except (TypeError, ValueError) as exc:
            log.error("Could not encode %s: %s", key, exc)
            return False
        try:
            self._backend.set_item(key, payload)
        except StorageError as exc:
            log.error("Could not save %s: %s", key, exc)
            return False
        return True

    def has_key(self, key: str) -> bool:
        try:
            return self._backend.get_item(key) is not None
        except StorageError as exc:
            log.warning("Could not read %s: %s", key, exc)
            return False

    def remove_key(self, key: str) -> bool:
        try:
            self._backend.remove_item(key)
        except StorageError as exc:
            log.error("Could not remove %s: %s", key, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # schema version & migration
    # ------------------------------------------------------------------
    def get_schema_version(self) -> int:
        try:
            raw = self._backend.get_item(KEYS.SCHEMA_VERSION)
        except StorageError as exc:
            log.warning("Could not read schema version: %s", exc)
            return 0
        try:
            return int(raw or 0)
        except (TypeError, ValueError):
            log.warning("Schema version %r is not an integer; assuming 0", raw)
            return 0

    def set_schema_version(self, version: int) -> bool:
        try:
            self._backend.set_item(KEYS.SCHEMA_VERSION, str(version))
        except StorageError as exc:
            log.error("Could not save schema version %d: %s", version, exc)
            return False
        return True

    def run_migrations(self) -> bool:
        return migrations.run_migrations(self)

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def now_iso(self) -> str:
        return self._clock().isoformat()

    def generate_id(self, prefix: str = "id") -> str:
        millis = int(self._clock().timestamp() * 1000)
        suffix = "".join(random.choices(_ID_ALPHABET, k=9))
        return f"{prefix}-{millis}-{suffix}"

    def _find(self, key: str, record_id: str) -> dict | None:
        for item in self.load_collection(key):
            if item.get("id") == record_id:
                return item
        return None

    def _create(self, key: str, model: type[Record], data: Mapping[str, Any]) -> WriteResult:
        stamp = _CREATION_STAMPS.get(model)
        reserved = {"id"}
        if stamp:
            reserved.update({stamp, _attribute_name(model, stamp)})
        payload = {name: value for name, value in data.items() if name not in reserved}
        payload["id"] = self.generate_id(ID_PREFIXES[model])
        if stamp:
            payload[stamp] = self.now_iso()

        record = _blank_to_none(model, model.model_validate(payload).to_record())
        items = self.load_collection(key)
        items.append(record)
        ok = self.save_collection(key, items)
        log.debug("Added %s to %s (persisted=%s)", record["id"], key, ok)
        return WriteResult(ok=ok, record=record)

    def _update(self, key: str, model: type[Record], record_id: str, updates: Mapping[str, Any]) -> WriteResult:
        adapters = _field_adapters(model)
        changes: dict[str, Any] = {}
        for name, value in updates.items():
            if name == "id":
                continue
            entry = adapters.get(name)
            if entry is None:
                changes[name] = value
                continue
            adapter, alias = entry
            if isinstance(value, str):
                value = value.strip()
            changes[alias] = adapter.validate_python(value)
        _blank_to_none(model, changes)

        items = self.load_collection(key)
        for item in items:
            if item.get("id") == record_id:
                item.update(changes)
                ok = self.save_collection(key, items)
                return WriteResult(ok=ok, record=dict(item))
        return WriteResult(ok=True, record=None)

    def _delete(self, key: str, record_id: str) -> bool:
        items = self.load_collection(key)
        remaining = [item for item in items if item.get("id") != record_id]
        if len(remaining) == len(items):
            return True
        return self.save_collection(key, remaining)

    def _project_ids(self) -> set[str]:
        return {item["id"] for item in self.load_collection(KEYS.PROJECTS) if item.get("id")}

    def _by_project(self, key: str, project_id: str) -> list[dict]:
        if project_id not in self._project_ids():
            return []
        return [item for item in self.load_collection(key) if item.get("projectId") == project_id]

    def _unassigned(self, key: str) -> list[dict]:
        project_ids = self._project_ids()
        return [item for item in self.load_collection(key) if item.get("projectId") not in project_ids]

    # ------------------------------------------------------------------
    # divisions (read-only)
    # ------------------------------------------------------------------
    def get_divisions(self) -> list[dict]:
        ordered = sorted(DIVISIONS, key=lambda division: division.sort_order)
        return [division.model_dump(by_alias=True) for division in ordered]

    def get_division_by_id(self, division_id: str) -> dict | None:
        for division in DIVISIONS:
            if division.id == division_id:
                return division.model_dump(by_alias=True)
        return None

    # ------------------------------------------------------------------
    # projects
    # ------------------------------------------------------------------
    def get_projects(self) -> list[dict]:
        return self.load_collection(KEYS.PROJECTS)

    def get_projects_by_division(self, division_id: str, *, active_only: bool = False) -> list[dict]:
        projects = [item for item in self.get_projects() if item.get("divisionId") == division_id]
        if active_only:
            projects = [item for item in projects if item.get("isActive")]
        return sorted(projects, key=lambda item: str(item.get("name", "")).casefold())

    def get_project_by_id(self, project_id: str) -> dict | None:
        return self._find(KEYS.PROJECTS, project_id)

    def add_project(self, data: Mapping[str, Any]) -> WriteResult:
        return self._create(KEYS.PROJECTS, Project, data)

    def update_project(self, project_id: str, updates: Mapping[str, Any]) -> WriteResult:
        return self._update(KEYS.PROJECTS, Project, project_id, updates)

    def delete_project(self, project_id: str) -> bool:
        """Remove the project only; its requests, reports and other records keep the dangling id."""

        return self._delete(KEYS.PROJECTS, project_id)

    # ------------------------------------------------------------------
    # requests
    # ------------------------------------------------------------------
    def get_requests(self) -> list[dict]:
        return sort_requests(self.load_collection(KEYS.REQUESTS))

    def get_requests_by_project(self, project_id: str) -> list[dict]:
        return sort_requests(self._by_project(KEYS.REQUESTS, project_id))

    def get_unassigned_requests(self) -> list[dict]:
        return sort_requests(self._unassigned(KEYS.REQUESTS))

    def get_request_by_id(self, request_id: str) -> dict | None:
        return self._find(KEYS.REQUESTS, request_id)

    def add_request(self, data: Mapping[str, Any]) -> WriteResult:
        return self._create(KEYS.REQUESTS, Request, data)

    def update_request(self, request_id: str, updates: Mapping[str, Any]) -> WriteResult:
        return self._update(KEYS.REQUESTS, Request, request_id, updates)

    def delete_request(self, request_id: str) -> bool:
        return self._delete(KEYS.REQUESTS, request_id)

    def promote_request(self, request_id: str) -> WriteResult:
        """Copy a request into the in-progress list, then delete the request."""

        request = self.get_request_by_id(request_id)
        if request is None:
            return WriteResult(ok=True, record=None)

        created = self.add_in_progress_item(
            {
                "projectName": request.get("projectName", ""),
                "taskDescription": request.get("description", ""),
                "requester": request.get("requester", ""),
                "status": "not-started",
                "targetCompletionDate": None,
                "projectId": request.get("projectId"),
                "divisionId": request.get("divisionId"),
            }
        )
        if not created:
            return created
        if not self.delete_request(request_id):
            log.error("Promoted %s but could not delete the original request", request_id)
            return WriteResult(ok=False, record=created.record)
        return created

    # ------------------------------------------------------------------
    # in-progress items
    # ------------------------------------------------------------------
    def get_in_progress_items(self) -> list[dict]:
        return self.load_collection(KEYS.IN_PROGRESS)

    def get_in_progress_by_project(self, project_id: str) -> list[dict]:
        return self._by_project(KEYS.IN_PROGRESS, project_id)

    def get_unassigned_in_progress(self) -> list[dict]:
        return self._unassigned(KEYS.IN_PROGRESS)

    def get_in_progress_by_id(self, item_id: str) -> dict | None:
        return self._find(KEYS.IN_PROGRESS, item_id)

    def add_in_progress_item(self, data: Mapping[str, Any]) -> WriteResult:
        return self._create(KEYS.IN_PROGRESS, InProgressItem, data)

    def update_in_progress_item(self, item_id: str, updates: Mapping[str, Any]) -> WriteResult:
        return self._update(KEYS.IN_PROGRESS, InProgressItem, item_id, updates)

    def update_in_progress_status(self, item_id: str, status: str) -> WriteResult:
        return self.update_in_progress_item(item_id, {"status": status})

    def delete_in_progress_item(self, item_id: str) -> bool:
        return self._delete(KEYS.IN_PROGRESS, item_id)

    def complete_in_progress_item(self, item_id: str) -> bool:
        # completed work is not archived
        return self.delete_in_progress_item(item_id)

    # ------------------------------------------------------------------
    # reports
    # ------------------------------------------------------------------
    def get_reports(self) -> list[dict]:
        return sort_by_date_desc(self.load_collection(KEYS.REPORTS), "datePublished")

    def get_report_by_id(self, report_id: str) -> dict | None:
        return self._find(KEYS.REPORTS, report_id)

    def get_reports_by_project(self, project_id: str, active_only: bool = False) -> list[dict]:
        reports = self._by_project(KEYS.REPORTS, project_id)
        if active_only:
            reports = [item for item in reports if item.get("isActive")]
        return sort_by_date_desc(reports, "datePublished")

    def get_unassigned_reports(self) -> list[dict]:
        return sort_by_date_desc(self._unassigned(KEYS.REPORTS), "datePublished")

    def get_reports_grouped(self, active_only: bool = False, project_id: str | None = None) -> dict[str, list[dict]]:
        """Reports bucketed by display name, newest first within each bucket."""

        if project_id:
            reports = self._by_project(KEYS.REPORTS, project_id)
        else:
            reports = self.load_collection(KEYS.REPORTS)
        if active_only:
            reports = [item for item in reports if item.get("isActive")]

        names = {item["id"]: item.get("name") for item in self.get_projects() if item.get("id")}

        def label(report: dict) -> str:
            return report.get("projectName") or names.get(report.get("projectId")) or UNASSIGNED_LABEL

        return group_by(sort_by_date_desc(reports, "datePublished"), label)

    def add_report(self, data: Mapping[str, Any]) -> WriteResult:
        return self._create(KEYS.REPORTS, Report, data)

    def update_report(self, report_id: str, updates: Mapping[str, Any]) -> WriteResult:
        return self._update(KEYS.REPORTS, Report, report_id, updates)

    def delete_report(self, report_id: str) -> bool:
        return self._delete(KEYS.REPORTS, report_id)

    # ------------------------------------------------------------------
    # documents (zone 1)
    # ------------------------------------------------------------------
    def get_documents(self, project_id: str, category: str | None = None) -> list[dict]:
        docs = [item for item in self.load_collection(KEYS.DOCUMENTS) if item.get("projectId") == project_id]
        if category:
            docs = [item for item in docs if item.get("category") == category]
        return sort_by_date_desc(docs, "dateAdded")

    def get_document_by_id(self, document_id: str) -> dict | None:
        return self._find(KEYS.DOCUMENTS, document_id)

    def add_document(self, data: Mapping[str, Any]) -> WriteResult:
        return self._create(KEYS.DOCUMENTS, Document, data)

    def update_document(self, document_id: str, updates: Mapping[str, Any]) -> WriteResult:
        return self._update(KEYS.DOCUMENTS, Document, document_id, updates)

    def delete_document(self, document_id: str) -> bool:
        return self._delete(KEYS.DOCUMENTS, document_id)

    # ------------------------------------------------------------------
    # dashboard links (zone 2)
    # ------------------------------------------------------------------
    def get_dashboard_links(self, project_id: str, link_type: str | None = None) -> list[dict]:
        links = [item for item in self.load_collection(KEYS.DASHBOARD_LINKS) if item.get("projectId") == project_id]
        if link_type:
            links = [item for item in links if item.get("type") == link_type]
        return sort_by_date_desc(links, "dateAdded")

    def get_dashboard_link_by_id(self, link_id: str) -> dict | None:
        return self._find(KEYS.DASHBOARD_LINKS, link_id)

    def add_dashboard_link(self, data: Mapping[str, Any]) -> WriteResult:
        return self._create(KEYS.DASHBOARD_LINKS, DashboardLink, data)

    def update_dashboard_link(self, link_id: str, updates: Mapping[str, Any]) -> WriteResult:
        return self._update(KEYS.DASHBOARD_LINKS, DashboardLink, link_id, updates)

    def delete_dashboard_link(self, link_id: str) -> bool:
        return self._delete(KEYS.DASHBOARD_LINKS, link_id)

    # ------------------------------------------------------------------
    # control items (zone 3)
    # ------------------------------------------------------------------
    def get_control_items(self, project_id: str) -> list[dict]:
        items = [item for item in self.load_collection(KEYS.CONTROL_ITEMS) if item.get("projectId") == project_id]
        return sort_control_items(items)

    def get_control_item_by_id(self, item_id: str) -> dict | None:
        return self._find(KEYS.CONTROL_ITEMS, item_id)

    def add_control_item(self, data: Mapping[str, Any]) -> WriteResult:
        return self._create(KEYS.CONTROL_ITEMS, ControlItem, data)

    def update_control_item(self, item_id: str, updates: Mapping[str, Any]) -> WriteResult:
        return self._update(KEYS.CONTROL_ITEMS, ControlItem, item_id, updates)

    def complete_control_item(self, item_id: str) -> WriteResult:
        return self.update_control_item(item_id, {"lastCompleted": self.now_iso(), "status": "current"})

    def delete_control_item(self, item_id: str) -> bool:
        return self._delete(KEYS.CONTROL_ITEMS, item_id)

    # ------------------------------------------------------------------
    # cross-cutting
    # ------------------------------------------------------------------
    @staticmethod
    def filter_by_search_term(items: Sequence[dict], term: str | None, fields: Sequence[str]) -> Sequence[dict]:
        return filter_by_search_term(items, term, fields)

    def get_unique_project_names(self) -> list[str]:
        names: set[str] = set()
        for key in (KEYS.REQUESTS, KEYS.IN_PROGRESS, KEYS.REPORTS):
            for item in self.load_collection(key):
                label = item.get("projectName")
                if isinstance(label, str) and label:
                    names.add(label)
        return sorted(names)

    def get_counts(self) -> dict[str, int]:
        return {
            "requests": len(self.load_collection(KEYS.REQUESTS)),
            "inProgress": len(self.load_collection(KEYS.IN_PROGRESS)),
            "reports": len(self.load_collection(KEYS.REPORTS)),
        }


def _attribute_name(model: type[Record], alias: str) -> str:
    for name, info in model.model_fields.items():
        if (info.alias or name) == alias:
            return name
    return alias
