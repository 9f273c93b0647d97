"""TOML-based configuration for friction.

Usage:
    from friction.toml_config import load_toml_config, find_config_file

    # Load from a specific file
    config = load_toml_config(Path("friction.toml"))

    # Auto-discover config file in directory hierarchy
    config_path = find_config_file(Path.cwd())
    if config_path:
        config = load_toml_config(config_path)

Example friction.toml:
    context_window = 5
    skip_self_generated = true

    [duration]
    max_gap_minutes = 45

    [detectors]
    enabled = ["simple_loop", "error_streak", "long_session"]
    error_streak_min_count = 4

    [knowledge]
    graph_path = ".friction/knowledge-connections.json"

    [rules]
    extend_concept_terms = ["svelte", "django"]
"""

from __future__ import annotations

import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any

from friction.config import AnalysisConfig
from friction.errors import ConfigError
from friction.rules import RuleSet

# Config file names to search for (in order of preference)
CONFIG_FILE_NAMES = ["friction.toml", ".frictionrc.toml", "pyproject.toml"]

_TOP_LEVEL_KEYS = {
    "duration",
    "detectors",
    "knowledge",
    "rules",
    "context_window",
    "skip_self_generated",
}


def find_config_file(
    start_dir: Path,
    config_names: list[str] | None = None,
) -> Path | None:
    """Find a config file by searching up the directory hierarchy.

    Args:
        start_dir: Directory to start searching from
        config_names: List of config file names to search for (default: CONFIG_FILE_NAMES)

    Returns:
        Path to the config file, or None if not found
    """
    config_names = config_names or CONFIG_FILE_NAMES
    current = start_dir.resolve()

    while True:
        for name in config_names:
            config_path = current / name
            if config_path.exists():
                # For pyproject.toml, check if it has a [tool.friction] section
                if name == "pyproject.toml":
                    if _has_friction_section(config_path):
                        return config_path
                else:
                    return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _has_friction_section(pyproject_path: Path) -> bool:
    """Check if pyproject.toml has a [tool.friction] section."""
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return "friction" in data.get("tool", {})


def load_toml_config(path: Path) -> AnalysisConfig:
    """Load an AnalysisConfig from a TOML file.

    Supports friction.toml (full file) and pyproject.toml (under [tool.friction]).

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file is not valid TOML or holds invalid settings
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML: {e}", file=str(path)) from e

    if path.name == "pyproject.toml":
        if "friction" not in data.get("tool", {}):
            raise ConfigError(f"No [tool.friction] section in {path}", file=str(path))
        data = data["tool"]["friction"]

    return _build_config_from_dict(data, path.parent, source=str(path))


def _table(data: dict[str, Any], name: str, source: str | None) -> dict[str, Any]:
    table = data.get(name, {})
    if not isinstance(table, dict):
        raise ConfigError(f"[{name}] must be a table", file=source)
    return table


def _apply_settings(target: Any, table: dict[str, Any], section: str, source: str | None) -> None:
    """Copy keys of ``table`` onto the dataclass ``target``, rejecting unknown keys."""
    known = {f.name for f in fields(target)}
    for key, value in table.items():
        if key not in known:
            raise ConfigError(f"Unknown setting '{key}' in [{section}]", file=source)
        setattr(target, key, value)


def _build_config_from_dict(
    data: dict[str, Any],
    project_root: Path,
    source: str | None = None,
) -> AnalysisConfig:
    """Build an AnalysisConfig from a dictionary of settings.

    Args:
        data: Configuration dictionary
        project_root: Directory relative paths are resolved against
        source: Config file name, for error messages
    """
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}", file=source)

    config = AnalysisConfig()

    if "context_window" in data:
        config.context_window = data["context_window"]
    if "skip_self_generated" in data:
        config.skip_self_generated = data["skip_self_generated"]

    duration = _table(data, "duration", source)
    _apply_settings(config.duration, duration, "duration", source)

    detectors = _table(data, "detectors", source)
    _apply_settings(config.detectors, detectors, "detectors", source)

    knowledge = dict(_table(data, "knowledge", source))
    if "graph_path" in knowledge:
        knowledge["graph_path"] = project_root / knowledge["graph_path"]
    _apply_settings(config.knowledge, knowledge, "knowledge", source)

    rules = _table(data, "rules", source)
    if rules:
        try:
            config.rules = RuleSet.from_dict(rules)
        except ValueError as e:
            raise ConfigError(str(e), file=source) from e

    errors = config.validate()
    if errors:
        raise ConfigError(
            f"Invalid configuration: {'; '.join(errors)}",
            file=source,
            context={"errors": errors},
        )

    return config
