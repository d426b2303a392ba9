"""Configuration management for fitpick."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from fitpick.exceptions import ConfigError

FITPICK_DIR = ".fitpick"
CONFIG_FILE = "config.json"
CACHE_DB_FILE = "rows.db"


class DataConfig(BaseModel):
    """Where the two unit collections live and how they are tagged."""

    planned_path: str = "data/planned.xlsx"
    ready_path: str = "data/ready.xlsx"
    planned_sheet: str | None = None  # None = first sheet
    ready_sheet: str | None = None
    planned_tag: str = "planned"
    ready_tag: str = "ready"


class ColumnConfig(BaseModel):
    """Column mapping for source rows."""

    size: str = "area"
    category: list[str] = Field(default_factory=lambda: ["category", "type"])
    community: list[str] = Field(
        default_factory=lambda: ["community", "community_name", "estate", "project"]
    )
    building: str = "building"
    door: str = "door"
    room: str = "room"


class PolicyConfig(BaseModel):
    """Business rules applied to every candidate combination."""

    disallow_dominant_with_small_others: bool = False
    dominant_more_than: float | None = None
    others_less_than: float | None = None
    cap_oversized: bool = True
    oversized_threshold: float = 100.0
    max_oversized: int = 1


class SearchConfig(BaseModel):
    """Defaults for search requests."""

    top_k: int = 10
    source: str = "AB"
    min_size: float | None = None
    max_size: float | None = None
    bonus_choices: list[float] = Field(default_factory=lambda: [0, 15, 30])


class ServerConfig(BaseModel):
    """HTTP service and worker pool settings."""

    host: str = "127.0.0.1"
    port: int = 3000
    workers: int | None = None  # None = cpu count - 1
    queue_size: int = 32
    executor: Literal["process", "thread"] = "process"
    timeout: float = 30.0

    @property
    def worker_count(self) -> int:
        if self.workers:
            return max(1, self.workers)
        return max(1, (os.cpu_count() or 2) - 1)


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    root_path: str = "."
    data: DataConfig = Field(default_factory=DataConfig)
    columns: ColumnConfig = Field(default_factory=ColumnConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .fitpick directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / FITPICK_DIR).is_dir():
            return current
        current = current.parent
    if (current / FITPICK_DIR).is_dir():
        return current
    return None


def get_fitpick_dir(root: Path) -> Path:
    """Get the .fitpick directory for a project root."""
    return root / FITPICK_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .fitpick/config.json."""
    config_path = get_fitpick_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
            return ProjectConfig(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e
    return ProjectConfig(name=root.name, root_path=str(root))


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .fitpick/config.json."""
    fp_dir = get_fitpick_dir(root)
    fp_dir.mkdir(parents=True, exist_ok=True)
    config_path = fp_dir / CONFIG_FILE
    config_path.write_text(
        json.dumps(config.model_dump(), indent=2, ensure_ascii=False), encoding="utf-8"
    )


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'search.top_k')."""
    parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    try:
        return ProjectConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {key}: {value!r}") from e
