"""Runtime settings: defaults, then an optional YAML file, then environment overrides."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

CONFIG_ENV = "ANALYTICS_HUB_CONFIG"

ENV_OVERRIDES = {
    "ANALYTICS_HUB_DATA_PATH": "data_path",
    "ANALYTICS_HUB_LOG_LEVEL": "log_level",
    "ANALYTICS_HUB_LOG_DIR": "log_dir",
}


def _default_data_path() -> Path:
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return base / "analytics-hub" / "store.json"


class Settings(BaseModel):
    data_path: Path = Field(default_factory=_default_data_path)
    log_level: str = "INFO"
    log_dir: Path | None = None
    search_debounce_ms: int = 200
    show_active_projects_only: bool = True


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping of settings")
    return data


def load_settings(path: str | Path | None = None) -> Settings:
    values: dict[str, Any] = {}

    config_path = path or os.getenv(CONFIG_ENV)
    if config_path:
        values.update(_read_yaml(Path(config_path).expanduser()))

    for env_name, field_name in ENV_OVERRIDES.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[field_name] = env_value

    settings = Settings(**values)
    settings.data_path = settings.data_path.expanduser()
    if settings.log_dir is not None:
        settings.log_dir = settings.log_dir.expanduser()
    return settings
