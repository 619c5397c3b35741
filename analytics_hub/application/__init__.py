"""Application services."""

from .context import AppContext, create_app_context, create_memory_context
from .debounce import Debouncer
from .router import AppRouter, RenderEvents
from .store import DataStore

__all__ = [
    "AppContext",
    "AppRouter",
    "DataStore",
    "Debouncer",
    "RenderEvents",
    "create_app_context",
    "create_memory_context",
]
