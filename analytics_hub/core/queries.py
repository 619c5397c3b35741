"""Pure helpers for ordering, grouping and searching record lists."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, Sequence

URGENCY_ORDER = {"high": 0, "medium": 1, "low": 2}
CONTROL_STATUS_ORDER = {"overdue": 0, "upcoming": 1, "current": 2}

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO-8601 date or date-time; missing or malformed values sort as oldest."""

    if not isinstance(value, str) or not value.strip():
        return _OLDEST
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _newest_first(field: str) -> Callable[[dict], float]:
    def key(item: dict) -> float:
        stamp = parse_timestamp(item.get(field))
        if stamp == _OLDEST:
            return float("inf")
        return -stamp.timestamp()

    return key


def sort_by_date_desc(items: Iterable[dict], field: str) -> list[dict]:
    return sorted(items, key=_newest_first(field))


def sort_requests(requests: Iterable[dict]) -> list[dict]:
    """High urgency first, newest submission first within the same urgency."""

    newest = _newest_first("dateSubmitted")
    unknown = len(URGENCY_ORDER)
    return sorted(
        requests,
        key=lambda item: (URGENCY_ORDER.get(item.get("urgency"), unknown), newest(item)),
    )


def sort_control_items(items: Iterable[dict]) -> list[dict]:
    """Overdue, then upcoming, then current; anything else goes last."""

    unknown = len(CONTROL_STATUS_ORDER)
    return sorted(items, key=lambda item: CONTROL_STATUS_ORDER.get(item.get("status"), unknown))


def group_by(items: Iterable[dict], label: Callable[[dict], str]) -> dict[str, list[dict]]:
    """Bucket ``items`` by ``label`` keeping input order inside each bucket; keys come back sorted."""

    grouped: dict[str, list[dict]] = {}
    for item in items:
        grouped.setdefault(label(item), []).append(item)
    return {name: grouped[name] for name in sorted(grouped, key=str.lower)}


def filter_by_search_term(items: Sequence[dict], term: str | None, fields: Sequence[str]) -> Sequence[dict]:
    """Case-insensitive substring match of ``term`` against any of ``fields``.

    An empty term returns ``items`` untouched.
    """

    if not term:
        return items
    needle = term.lower()
    matches: list[dict] = []
    for item in items:
        for field in fields:
            value = item.get(field)
            if isinstance(value, str) and needle in value.lower():
                matches.append(item)
                break
    return matches
