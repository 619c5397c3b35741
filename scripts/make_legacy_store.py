#!/usr/bin/env python
"""Write a pre-migration store file for trying out schema upgrades by hand."""
from __future__ import annotations

import argparse
import json
from pathlib import Path


def _v0_items() -> dict[str, list[dict]]:
    return {
        "analyticsHub_requests": [
            {
                "id": "req-1700000000000-legacy001",
                "projectName": "Q3 Pricing Review",
                "description": "Refresh the pricing curves",
                "requester": "Dana",
                "urgency": "high",
                "dateSubmitted": "2023-11-14T22:13:20.000Z",
            }
        ],
        "analyticsHub_inProgress": [
            {
                "id": "prog-1700000000000-legacy002",
                "projectName": "Portfolio Monitoring",
                "taskDescription": "Build monthly performance pack",
                "requester": "Lee",
                "status": "in-progress",
                "targetCompletionDate": None,
                "dateCreated": "2023-11-14T22:13:20.000Z",
            }
        ],
        "analyticsHub_reports": [
            {
                "id": "rpt-1700000000000-legacy003",
                "title": "October Servicing Report",
                "projectName": "Portfolio Monitoring",
                "datePublished": "2023-11-01",
                "description": "",
                "linkUrl": "",
                "isActive": True,
            }
        ],
    }


def _v1_items(division: str) -> dict[str, list[dict]]:
    items = _v0_items()
    client_id = "cli-1700000000000-legacy000"
    for key, records in items.items():
        for record in records:
            record["divisionId"] = division
            record["clientId"] = client_id
            if key == "analyticsHub_reports":
                record["category"] = "recurring"
    items["analyticsHub_clients"] = [
        {
            "id": client_id,
            "name": "Legacy Client",
            "divisionId": division,
            "isActive": True,
            "dateCreated": "2023-11-14T22:13:20.000Z",
        }
    ]
    items["analyticsHub_documents"] = []
    items["analyticsHub_dashboardLinks"] = []
    items["analyticsHub_controlItems"] = [
        {
            "id": "ctrl-1700000000000-legacy004",
            "clientId": client_id,
            "title": "Quarterly covenant check",
            "description": "",
            "assignee": "Dana",
            "frequency": "quarterly",
            "lastCompleted": None,
            "nextDue": "2024-01-15",
            "status": "upcoming",
            "dateCreated": "2023-11-14T22:13:20.000Z",
        }
    ]
    return items


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a legacy analytics hub store file")
    parser.add_argument("--output", required=True, help="output file path (.json)")
    parser.add_argument("--schema", type=int, choices=(0, 1), default=0, help="schema version to emit")
    parser.add_argument("--division", default="div-reinsurance", help="division id used for schema v1 records")
    args = parser.parse_args()

    items = _v0_items() if args.schema == 0 else _v1_items(args.division)
    store = {key: json.dumps(records) for key, records in items.items()}
    if args.schema:
        store["analyticsHub_schemaVersion"] = str(args.schema)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(store, indent=2), encoding="utf-8")
    print(f"Schema v{args.schema} store written: {output}")


if __name__ == "__main__":
    main()
