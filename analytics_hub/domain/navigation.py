"""Navigation state shared between the router and whatever renders it."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, get_args

View = Literal["home", "project", "manage-projects"]
Zone = Literal[1, 2, 3]

VIEWS: tuple[str, ...] = get_args(View)
ZONES: tuple[int, ...] = get_args(Zone)

ZONE_LABELS: dict[int, str] = {
    1: "Reports & Documents",
    2: "Performance Monitoring",
    3: "Controls & Oversight",
}


@dataclass(slots=True)
class RouterState:
    """Which view is showing, what is selected and which filters are applied."""

    current_view: View = "home"
    selected_division_id: str | None = None
    selected_project_id: str | None = None
    active_zone: Zone = 1
    expanded_divisions: list[str] = field(default_factory=list)
    global_search_term: str = ""
    reports_search_term: str = ""
    show_active_projects_only: bool = True

    def copy(self) -> "RouterState":
        return RouterState(
            current_view=self.current_view,
            selected_division_id=self.selected_division_id,
            selected_project_id=self.selected_project_id,
            active_zone=self.active_zone,
            expanded_divisions=list(self.expanded_divisions),
            global_search_term=self.global_search_term,
            reports_search_term=self.reports_search_term,
            show_active_projects_only=self.show_active_projects_only,
        )
