"""Domain layer definitions."""

from .navigation import VIEWS, ZONE_LABELS, ZONES, RouterState, View, Zone

__all__ = [
    "RouterState",
    "View",
    "VIEWS",
    "Zone",
    "ZONES",
    "ZONE_LABELS",
]
