from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from analytics_hub.application import AppContext, create_app_context
from analytics_hub.config import load_settings
from analytics_hub.core.csvio import export_records_to_csv
from analytics_hub.core.logging_config import setup_logging
from analytics_hub.core.schema import COLLECTION_KEYS, DIVISIONS

EXPORT_COLUMNS: dict[str, list[str]] = {
    "requests": ["id", "projectName", "description", "requester", "urgency", "projectId", "dateSubmitted"],
    "in-progress": ["id", "projectName", "taskDescription", "requester", "status", "targetCompletionDate", "projectId"],
    "reports": ["id", "title", "projectName", "datePublished", "category", "isActive", "linkUrl", "projectId"],
    "projects": ["id", "name", "divisionId", "isActive", "dateCreated"],
    "documents": ["id", "projectId", "category", "title", "source", "linkUrl", "dateAdded"],
    "dashboard-links": ["id", "projectId", "type", "title", "url", "dateAdded"],
    "control-items": ["id", "projectId", "title", "assignee", "frequency", "status", "nextDue", "lastCompleted"],
}


def _records(ctx: AppContext, collection: str) -> list[dict]:
    return ctx.store.load_collection(COLLECTION_KEYS[collection])


def cmd_migrate(ctx: AppContext, args: argparse.Namespace) -> int:
    version = ctx.store.get_schema_version()
    if not ctx.migrated:
        print(f"Migration incomplete; store remains at schema v{version}", file=sys.stderr)
        return 1
    print(f"Store at schema v{version}")
    return 0


def cmd_status(ctx: AppContext, args: argparse.Namespace) -> int:
    summary = {
        "schemaVersion": ctx.store.get_schema_version(),
        "dataPath": str(ctx.settings.data_path),
        "counts": {name: len(_records(ctx, name)) for name in COLLECTION_KEYS},
        "unassigned": {
            "requests": len(ctx.store.get_unassigned_requests()),
            "inProgress": len(ctx.store.get_unassigned_in_progress()),
            "reports": len(ctx.store.get_unassigned_reports()),
        },
    }
    print(json.dumps(summary, indent=2))
    return 0


def cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    for record in _records(ctx, args.collection):
        print(json.dumps(record, ensure_ascii=False))
    return 0


def cmd_export(ctx: AppContext, args: argparse.Namespace) -> int:
    rows = _records(ctx, args.collection)
    written = export_records_to_csv(Path(args.output), rows, EXPORT_COLUMNS[args.collection])
    print(f"Exported {written} {args.collection} to {args.output}")
    return 0


def cmd_add_project(ctx: AppContext, args: argparse.Namespace) -> int:
    result = ctx.store.add_project({"name": args.name, "divisionId": args.division})
    if not result:
        print("Project was not saved", file=sys.stderr)
        return 1
    print(json.dumps(result.record, indent=2))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser("analytics-hub", description="Inspect and maintain the dashboard store")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument("--data", help="store file (overrides settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("migrate", help="bring the store up to the current schema")
    sp.set_defaults(func=cmd_migrate)

    sp = sub.add_parser("status", help="schema version and record counts")
    sp.set_defaults(func=cmd_status)

    sp = sub.add_parser("list", help="print a collection as JSON lines")
    sp.add_argument("collection", choices=sorted(COLLECTION_KEYS))
    sp.set_defaults(func=cmd_list)

    sp = sub.add_parser("export", help="write a collection to CSV")
    sp.add_argument("collection", choices=sorted(COLLECTION_KEYS))
    sp.add_argument("--output", required=True, help="output file path (.csv)")
    sp.set_defaults(func=cmd_export)

    sp = sub.add_parser("add-project", help="create a project under a division")
    sp.add_argument("name")
    sp.add_argument("--division", required=True, choices=[division.id for division in DIVISIONS])
    sp.set_defaults(func=cmd_add_project)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    if args.data:
        settings.data_path = Path(args.data).expanduser()
    setup_logging(settings.log_level, settings.log_dir)

    ctx = create_app_context(settings)
    return args.func(ctx, args)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
