import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from analytics_hub.core.queries import (
    filter_by_search_term,
    group_by,
    parse_timestamp,
    sort_by_date_desc,
    sort_control_items,
    sort_requests,
)


def test_parse_timestamp_accepts_browser_and_plain_dates():
    assert parse_timestamp("2023-11-14T22:13:20.000Z") == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert parse_timestamp("2024-04-01") == datetime(2024, 4, 1, tzinfo=timezone.utc)
    assert parse_timestamp("yesterday") == parse_timestamp(None) == parse_timestamp("")


def test_undated_records_sort_last():
    items = [
        {"id": "none"},
        {"id": "old", "datePublished": "2023-01-01"},
        {"id": "bad", "datePublished": "soon"},
        {"id": "new", "datePublished": "2024-01-01T08:00:00Z"},
    ]

    assert [item["id"] for item in sort_by_date_desc(items, "datePublished")] == ["new", "old", "none", "bad"]


def test_unknown_urgency_and_status_go_last():
    requests = [{"id": "x", "urgency": "critical"}, {"id": "l", "urgency": "low"}, {"id": "h", "urgency": "high"}]
    controls = [{"id": "a", "status": "paused"}, {"id": "c", "status": "current"}, {"id": "o", "status": "overdue"}]

    assert [item["id"] for item in sort_requests(requests)] == ["h", "l", "x"]
    assert [item["id"] for item in sort_control_items(controls)] == ["o", "c", "a"]


def test_group_by_sorts_keys_case_insensitively():
    items = [{"p": "beta"}, {"p": "Alpha"}, {"p": "beta"}, {"p": "Gamma"}]

    grouped = group_by(items, lambda item: item["p"])

    assert list(grouped) == ["Alpha", "beta", "Gamma"]
    assert len(grouped["beta"]) == 2


def test_filter_by_search_term():
    items = [
        {"title": "Servicing Report", "description": ""},
        {"title": "Legal memo", "description": "servicer agreement", "tags": ["servicing"]},
        {"title": "Covenants", "description": None},
    ]

    assert filter_by_search_term(items, "", ["title"]) is items
    assert filter_by_search_term(items, None, ["title"]) is items
    assert [item["title"] for item in filter_by_search_term(items, "SERVIC", ["title", "description"])] == [
        "Servicing Report",
        "Legal memo",
    ]
    assert filter_by_search_term(items, "servicing", ["tags", "missing"]) == []
