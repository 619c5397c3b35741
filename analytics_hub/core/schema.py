from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 2

Urgency = Literal["low", "medium", "high"]
WorkStatus = Literal["not-started", "in-progress", "in-review"]
Category = Literal["legal", "pricing", "recurring"]
DocumentSource = Literal["manual", "client-email", "nelnet-created"]
DashboardLinkType = Literal["performance", "valuation", "impairment"]
Frequency = Literal["weekly", "monthly", "quarterly", "annually", "ad-hoc"]
ControlStatus = Literal["current", "upcoming", "overdue"]


class KEYS:
    REQUESTS = "analyticsHub_requests"
    IN_PROGRESS = "analyticsHub_inProgress"
    REPORTS = "analyticsHub_reports"
    PROJECTS = "analyticsHub_projects"
    DOCUMENTS = "analyticsHub_documents"
    DASHBOARD_LINKS = "analyticsHub_dashboardLinks"
    CONTROL_ITEMS = "analyticsHub_controlItems"
    SCHEMA_VERSION = "analyticsHub_schemaVersion"

    # schema v0/v1 name of the projects collection
    LEGACY_CLIENTS = "analyticsHub_clients"


COLLECTION_KEYS: dict[str, str] = {
    "requests": KEYS.REQUESTS,
    "in-progress": KEYS.IN_PROGRESS,
    "reports": KEYS.REPORTS,
    "projects": KEYS.PROJECTS,
    "documents": KEYS.DOCUMENTS,
    "dashboard-links": KEYS.DASHBOARD_LINKS,
    "control-items": KEYS.CONTROL_ITEMS,
}


class Record(BaseModel):
    """Base for persisted records: camelCase on disk, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        str_strip_whitespace=True,
    )

    id: str

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Division(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    sort_order: int


DIVISIONS: tuple[Division, ...] = (
    Division(id="div-reinsurance", name="Reinsurance", sort_order=0),
    Division(id="div-real-estate", name="Real Estate", sort_order=1),
    Division(id="div-structured-finance", name="Structured Finance", sort_order=2),
)


class Project(Record):
    name: str
    division_id: str | None = None
    is_active: bool = True
    date_created: str


class Request(Record):
    description: str
    requester: str
    urgency: Urgency = "medium"
    project_name: str = ""
    project_id: str | None = None
    division_id: str | None = None
    date_submitted: str


class InProgressItem(Record):
    task_description: str
    requester: str
    status: WorkStatus = "not-started"
    target_completion_date: str | None = None
    project_name: str = ""
    project_id: str | None = None
    division_id: str | None = None
    date_created: str


class Report(Record):
    title: str
    date_published: str | None = None
    description: str = ""
    link_url: str = ""
    is_active: bool = True
    project_name: str = ""
    project_id: str | None = None
    division_id: str | None = None
    category: Category = "recurring"


class Document(Record):
    project_id: str
    category: Category
    title: str
    description: str = ""
    link_url: str = ""
    source: DocumentSource = "manual"
    date_added: str
    date_published: str | None = None


class DashboardLink(Record):
    project_id: str
    title: str
    url: str = ""
    type: DashboardLinkType = "performance"
    description: str = ""
    date_added: str


class ControlItem(Record):
    project_id: str
    title: str
    description: str = ""
    assignee: str = ""
    frequency: Frequency = "monthly"
    last_completed: str | None = None
    next_due: str | None = None
    status: ControlStatus = "current"
    date_created: str


ID_PREFIXES: dict[type[Record], str] = {
    Project: "proj",
    Request: "req",
    InProgressItem: "prog",
    Report: "rpt",
    Document: "doc",
    DashboardLink: "dash",
    ControlItem: "ctrl",
}


@dataclass(slots=True, frozen=True)
class WriteResult:
    """Outcome of a mutation: ``ok`` is False when the backing store rejected the write."""

    ok: bool
    record: dict | None = None

    def __bool__(self) -> bool:
        return self.ok
