"""
Load form schemas and value snapshots from disk.

JSON files are read with ``json``; ``.yaml``/``.yml`` files with PyYAML.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .errors import SchemaError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


def load_document(path: Path) -> dict[str, Any]:
    """
    Read a JSON or YAML mapping.

    Raises:
        SchemaError: If the file is missing, unparsable, or not a mapping
    """
    if not path.exists():
        raise SchemaError(f"File not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SchemaError(f"{path} is not valid UTF-8: {e}") from e

    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except yaml.YAMLError as e:
        raise SchemaError(f"Invalid YAML in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid JSON in {path}: {e}") from e

    if data is None:
        logger.warning(f"Empty document at {path}")
        return {}
    if not isinstance(data, dict):
        raise SchemaError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")
    return data


def load_schema(path: Path) -> dict[str, Any]:
    """Load a raw form schema document."""
    data = load_document(path)
    if "properties" not in data:
        raise SchemaError(f"Schema {path} has no 'properties'")
    return data


def load_values(path: Path) -> dict[str, Any]:
    """Load a value snapshot document (flat or nested mapping)."""
    return load_document(path)
