"""Navigation state machine.

The router owns transient UI state only.  Apart from the project lookup in
:meth:`AppRouter.select_project` it never touches the store.  Every
transition ends by notifying the subscribed listeners with a copy of the new
state, one notification per transition.
"""
from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Callable

from analytics_hub.application.store import DataStore
from analytics_hub.domain import VIEWS, ZONES, RouterState

log = logging.getLogger(__name__)

Listener = Callable[[RouterState], None]

_STATE_FIELDS = frozenset(item.name for item in fields(RouterState))


class RenderEvents:
    """Synchronous observer channel: every emit calls each listener once, in subscription order."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, state: RouterState) -> None:
        for listener in list(self._listeners):
            listener(state.copy())

    def __len__(self) -> int:
        return len(self._listeners)


class AppRouter:
    def __init__(
        self,
        store: DataStore,
        *,
        events: RenderEvents | None = None,
        show_active_projects_only: bool = True,
    ) -> None:
        self._store = store
        self._events = events if events is not None else RenderEvents()
        self._state = RouterState(show_active_projects_only=show_active_projects_only)

    @property
    def events(self) -> RenderEvents:
        return self._events

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._events.subscribe(listener)

    def get_state(self) -> RouterState:
        return self._state.copy()

    def _changed(self) -> None:
        self._events.emit(self._state)

    @staticmethod
    def _check_zone(zone: int) -> None:
        if isinstance(zone, bool) or not isinstance(zone, int) or zone not in ZONES:
            raise ValueError(f"unknown zone {zone!r}")

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------
    def navigate(self, view: str, **params: Any) -> None:
        if view not in VIEWS:
            raise ValueError(f"unknown view {view!r}")
        unknown = set(params) - _STATE_FIELDS
        if unknown:
            raise ValueError(f"unknown state fields: {', '.join(sorted(unknown))}")
        if "current_view" in params:
            raise ValueError("pass the view positionally, not as current_view")
        if "active_zone" in params:
            self._check_zone(params["active_zone"])
        if "expanded_divisions" in params:
            if isinstance(params["expanded_divisions"], str):
                raise ValueError("expanded_divisions takes a list of division ids")
            params["expanded_divisions"] = list(params["expanded_divisions"])

        self._state.current_view = view  # type: ignore[assignment]
        for name, value in params.items():
            setattr(self._state, name, value)
        log.debug("Navigated to %s", view)
        self._changed()

    def select_project(self, project_id: str) -> None:
        project = self._store.get_project_by_id(project_id)
        if project is None:
            log.debug("Ignoring selection of unknown project %s", project_id)
            return

        division_id = project.get("divisionId")
        state = self._state
        state.current_view = "project"
        state.selected_project_id = project_id
        state.selected_division_id = division_id
        state.active_zone = 1
        state.reports_search_term = ""
        if division_id and division_id not in state.expanded_divisions:
            state.expanded_divisions.append(division_id)
        self._changed()

    def set_active_zone(self, zone: int) -> None:
        self._check_zone(zone)
        self._state.active_zone = zone  # type: ignore[assignment]
        # the reports search only lives for one zone visit
        self._state.reports_search_term = ""
        self._changed()

    def toggle_division(self, division_id: str) -> None:
        expanded = self._state.expanded_divisions
        if division_id in expanded:
            expanded.remove(division_id)
        else:
            expanded.append(division_id)
        self._changed()

    def set_global_search(self, term: str) -> None:
        self._state.global_search_term = term
        self._changed()

    def set_reports_search(self, term: str) -> None:
        self._state.reports_search_term = term
        self._changed()

    def set_active_projects_only(self, value: bool) -> None:
        self._state.show_active_projects_only = bool(value)
        self._changed()

    def go_home(self) -> None:
        state = self._state
        state.current_view = "home"
        state.selected_project_id = None
        state.selected_division_id = None
        state.active_zone = 1
        state.global_search_term = ""
        state.reports_search_term = ""
        self._changed()

    def manage_projects(self) -> None:
        self.navigate("manage-projects")
