import json
import logging
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from analytics_hub.application import DataStore, create_app_context
from analytics_hub.config import Settings
from analytics_hub.core.schema import KEYS, SCHEMA_VERSION
from analytics_hub.infrastructure import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    StorageQuotaExceeded,
    StorageUnavailable,
)


@pytest.fixture()
def store_file(tmp_path):
    return tmp_path / "hub" / "store.json"


def test_json_file_round_trip(store_file):
    backend = JsonFileKeyValueStore(store_file)
    assert backend.get_item("missing") is None
    assert backend.keys() == []

    backend.set_item("a", "[1]")
    backend.set_item("b", "two")

    reopened = JsonFileKeyValueStore(store_file)
    assert reopened.get_item("a") == "[1]"
    assert sorted(reopened.keys()) == ["a", "b"]
    assert json.loads(store_file.read_text(encoding="utf-8")) == {"a": "[1]", "b": "two"}
    assert not store_file.with_suffix(".json.tmp").exists()

    reopened.remove_item("a")
    reopened.remove_item("never-there")
    assert backend.keys() == ["b"]


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_unreadable_store_file_reads_empty(store_file, content, caplog):
    store_file.parent.mkdir(parents=True)
    store_file.write_text(content, encoding="utf-8")
    backend = JsonFileKeyValueStore(store_file)

    with caplog.at_level(logging.WARNING, logger="analytics_hub"):
        assert backend.get_item(KEYS.REQUESTS) is None
    assert "treating the store as empty" in caplog.text
    kept = list(store_file.parent.glob("store.json.corrupt-*"))
    assert [path.read_text(encoding="utf-8") for path in kept] == [content]
    assert not store_file.exists()


def test_non_string_values_are_skipped(store_file):
    store_file.parent.mkdir(parents=True)
    store_file.write_text(json.dumps({"a": "[]", "b": [1]}), encoding="utf-8")

    assert JsonFileKeyValueStore(store_file).keys() == ["a"]


def test_memory_quota_and_disabled():
    backend = InMemoryKeyValueStore(quota_bytes=10)
    backend.set_item("k", "12345")

    with pytest.raises(StorageQuotaExceeded):
        backend.set_item("k2", "123456")
    # replacing a value only counts the new size
    backend.set_item("k", "123456789")
    assert backend.get_item("k2") is None

    backend.disabled = True
    with pytest.raises(StorageUnavailable):
        backend.get_item("k")
    with pytest.raises(StorageUnavailable):
        backend.set_item("k", "1")


def test_corrupt_collection_reads_as_empty(caplog):
    backend = InMemoryKeyValueStore(
        {
            KEYS.REQUESTS: "{oops",
            KEYS.REPORTS: json.dumps({"id": "rpt-1"}),
            KEYS.PROJECTS: json.dumps([{"id": "proj-1", "name": "A"}, "junk", 7]),
        }
    )
    store = DataStore(backend)

    with caplog.at_level(logging.WARNING, logger="analytics_hub"):
        assert store.get_requests() == []
        assert store.get_reports() == []
    assert store.get_projects() == [{"id": "proj-1", "name": "A"}]
    assert "malformed JSON" in caplog.text
    assert "not a JSON array" in caplog.text


def test_disabled_backend_fails_soft(caplog):
    backend = InMemoryKeyValueStore(disabled=True)
    store = DataStore(backend)

    with caplog.at_level(logging.WARNING, logger="analytics_hub"):
        assert store.get_projects() == []
        assert store.get_schema_version() == 0
        result = store.add_project({"name": "Atlas Re", "divisionId": "div-reinsurance"})

    assert result.ok is False
    assert not result
    assert result.record["name"] == "Atlas Re"
    assert "Could not save" in caplog.text


def test_quota_failure_leaves_stored_data_untouched():
    backend = InMemoryKeyValueStore()
    store = DataStore(backend)
    store.run_migrations()
    first = store.add_request({"projectName": "Pricing", "description": "Refresh", "requester": "Dana"})
    assert first.ok
    before = backend.get_item(KEYS.REQUESTS)

    backend.quota_bytes = sum(len(key) + len(backend.get_item(key)) for key in backend.keys())
    second = store.add_request({"projectName": "Pricing", "description": "Again", "requester": "Lee"})
    updated = store.update_request(first.record["id"], {"description": "Refreshed curves"})

    assert second.ok is False
    assert updated.ok is False
    assert backend.get_item(KEYS.REQUESTS) == before
    assert [item["id"] for item in store.get_requests()] == [first.record["id"]]


def test_data_survives_a_new_context(store_file):
    settings = Settings(data_path=store_file)
    ctx = create_app_context(settings)
    assert ctx.migrated
    project = ctx.store.add_project({"name": "Harbor Point", "divisionId": "div-real-estate"}).record
    ctx.store.add_report({"title": "Q1 servicing", "projectId": project["id"], "datePublished": "2024-04-01"})

    again = create_app_context(settings)

    assert again.store.get_schema_version() == SCHEMA_VERSION
    assert again.store.get_project_by_id(project["id"]) == project
    assert [item["title"] for item in again.store.get_reports_by_project(project["id"])] == ["Q1 servicing"]


def test_legacy_store_file_is_migrated_on_open(store_file):
    store_file.parent.mkdir(parents=True)
    legacy = {
        KEYS.REQUESTS: json.dumps([{"id": "req-1", "projectName": "Pricing", "clientId": "cli-1", "urgency": "high"}]),
        KEYS.LEGACY_CLIENTS: json.dumps([{"id": "cli-1", "name": "Legacy", "divisionId": "div-reinsurance"}]),
        KEYS.SCHEMA_VERSION: "1",
    }
    store_file.write_text(json.dumps(legacy), encoding="utf-8")

    ctx = create_app_context(Settings(data_path=store_file))

    assert ctx.migrated
    on_disk = json.loads(store_file.read_text(encoding="utf-8"))
    assert KEYS.LEGACY_CLIENTS not in on_disk
    assert on_disk[KEYS.SCHEMA_VERSION] == str(SCHEMA_VERSION)
    assert [item["id"] for item in ctx.store.get_requests_by_project("cli-1")] == ["req-1"]


def test_corrupt_store_file_is_kept_when_the_app_starts(store_file):
    ctx = create_app_context(Settings(data_path=store_file))
    ctx.store.add_request({"projectName": "Pricing", "description": "keep me", "requester": "Dana"})
    damaged = store_file.read_text(encoding="utf-8") + ","
    store_file.write_text(damaged, encoding="utf-8")

    again = create_app_context(Settings(data_path=store_file))

    assert again.migrated
    assert again.store.get_requests() == []
    kept = list(store_file.parent.glob("store.json.corrupt-*"))
    assert len(kept) == 1
    assert kept[0].read_text(encoding="utf-8") == damaged
    assert "keep me" in kept[0].read_text(encoding="utf-8")
    assert json.loads(store_file.read_text(encoding="utf-8"))[KEYS.SCHEMA_VERSION] == str(SCHEMA_VERSION)


def test_unmovable_corrupt_file_refuses_writes(store_file, monkeypatch):
    store_file.parent.mkdir(parents=True)
    store_file.write_text("{oops", encoding="utf-8")
    backend = JsonFileKeyValueStore(store_file)

    def refuse(src, dst):
        raise PermissionError("read-only directory")

    monkeypatch.setattr("analytics_hub.infrastructure.kv.os.replace", refuse)

    with pytest.raises(StorageUnavailable):
        backend.set_item(KEYS.REQUESTS, "[]")
    assert store_file.read_text(encoding="utf-8") == "{oops"
