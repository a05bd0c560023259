"""
Engine configuration.

Read from ``formlogic.toml`` or the ``[tool.formlogic]`` table of
``pyproject.toml``:

    [tool.formlogic]
    alias_collision = "error"        # or "last_wins"
    warn_unbound_variables = true
    round_half = "up"                # or "even"
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE = "formlogic.toml"

ALIAS_COLLISION_MODES = ("error", "last_wins")
ROUND_HALF_MODES = ("up", "even")


@dataclass(frozen=True)
class EngineConfig:
    """Options that change how schemas are accepted and formulas evaluated."""

    alias_collision: str = "error"  # "error" | "last_wins"
    warn_unbound_variables: bool = True
    round_half: str = "up"  # "up" | "even"

    def __post_init__(self) -> None:
        if self.alias_collision not in ALIAS_COLLISION_MODES:
            raise ConfigError(
                f"alias_collision must be one of {ALIAS_COLLISION_MODES}, "
                f"got {self.alias_collision!r}"
            )
        if self.round_half not in ROUND_HALF_MODES:
            raise ConfigError(
                f"round_half must be one of {ROUND_HALF_MODES}, got {self.round_half!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)


def load_config(path: Path) -> EngineConfig:
    """
    Load configuration from a TOML file.

    ``pyproject.toml`` files are read from their ``[tool.formlogic]`` table;
    any other file is read from its top level.

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    if path.name == "pyproject.toml":
        data = data.get("tool", {}).get("formlogic", {})

    return EngineConfig.from_dict(data)


def discover_config(start: Path | None = None) -> EngineConfig:
    """
    Find configuration for a project directory.

    Looks for ``formlogic.toml`` first, then a ``pyproject.toml`` with a
    ``[tool.formlogic]`` table, walking up from ``start``. Falls back to
    defaults when neither exists.
    """
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        config_path = candidate_dir / CONFIG_FILE
        if config_path.exists():
            logger.debug(f"Using config {config_path}")
            return load_config(config_path)
        pyproject = candidate_dir / "pyproject.toml"
        if pyproject.exists():
            try:
                with open(pyproject, "rb") as f:
                    has_table = "formlogic" in tomllib.load(f).get("tool", {})
            except (OSError, tomllib.TOMLDecodeError):
                has_table = False
            if has_table:
                logger.debug(f"Using [tool.formlogic] from {pyproject}")
                return load_config(pyproject)
    return EngineConfig()
