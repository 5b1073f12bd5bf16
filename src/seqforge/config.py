"""Configuration management for seqforge."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from seqforge.exceptions import ConfigError

SEQFORGE_DIR = ".seqforge"
CONFIG_FILE = "config.json"

DEFAULT_WALK_STEPS = 100_000


class LibraryTuning(BaseModel):
    """Per-library search budgets."""

    walk_steps: int | None = None  # None = SearchConfig.default_walk_steps
    cover_target: int | None = None  # None = every function in the catalog


def _default_tuning() -> dict[str, LibraryTuning]:
    return {
        "regex": LibraryTuning(walk_steps=10_000, cover_target=96),
        "url": LibraryTuning(walk_steps=10_000),
        "time": LibraryTuning(walk_steps=10_000),
        "serde_json": LibraryTuning(cover_target=41),
        "clap": LibraryTuning(cover_target=66),
    }


class SearchConfig(BaseModel):
    """Sequence search budgets and switches."""

    bfs_max_len: int = 3
    try_deep_max_product: int = 100_000
    random_walk_max_depth: int = 0  # 0 = unbounded
    default_walk_steps: int = DEFAULT_WALK_STEPS
    seed: int = 0
    tuning: dict[str, LibraryTuning] = Field(default_factory=_default_tuning)

    def walk_steps_for(self, library: str) -> int:
        tuning = self.tuning.get(library)
        if tuning is not None and tuning.walk_steps is not None:
            return tuning.walk_steps
        return self.default_walk_steps

    def cover_target_for(self, library: str) -> int | None:
        tuning = self.tuning.get(library)
        return tuning.cover_target if tuning is not None else None


class ConventionConfig(BaseModel):
    """Overrides for the start/end function conventions and the type oracle."""

    start_functions: list[str] = Field(default_factory=list)
    end_functions: list[str] = Field(default_factory=list)
    copy_types: list[str] = Field(default_factory=list)
    invisible_modules: list[str] = Field(default_factory=list)


class SelectionConfig(BaseModel):
    """Final sequence selection."""

    policy: str = "heuristic"  # heuristic | random | first | per_function
    max_size: int | None = None
    stop_at_all_functions: bool = False


class ProjectConfig(BaseModel):
    """Full project configuration."""

    library: str = ""
    search: SearchConfig = Field(default_factory=SearchConfig)
    conventions: ConventionConfig = Field(default_factory=ConventionConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .seqforge directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / SEQFORGE_DIR).is_dir():
            return current
        current = current.parent
    if (current / SEQFORGE_DIR).is_dir():
        return current
    return None


def get_seqforge_dir(root: Path) -> Path:
    """Get the .seqforge directory for a project root."""
    return root / SEQFORGE_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .seqforge/config.json."""
    config_path = get_seqforge_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
        return ProjectConfig(**data)
    return ProjectConfig(library=root.name)


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .seqforge/config.json."""
    sf_dir = get_seqforge_dir(root)
    sf_dir.mkdir(parents=True, exist_ok=True)
    config_path = sf_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'search.seed')."""
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
    return ProjectConfig(**data)
