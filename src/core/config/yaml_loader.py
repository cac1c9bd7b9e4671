# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML document loader utilities.

Capability definitions and prompt templates are stored as one YAML
mapping per file. This module loads single documents, whole directories
of documents, and deep-merges documents for administrative re-seeding.

Example:
    >>> from pathlib import Path
    >>> from src.core.config.yaml_loader import load_yaml, load_yaml_directory
    >>> lesson = load_yaml(Path("seed/create_interactive_lesson.yaml"))
    >>> catalogue = load_yaml_directory(Path("seed"))
"""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

YAML_SUFFIXES = (".yaml", ".yml")


class YAMLLoadError(Exception):
    """Raised when a YAML document cannot be loaded or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize YAMLLoadError.

        Args:
            path: Path to the YAML file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path | str) -> dict[str, Any]:
    """Load a single YAML document as a dictionary.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed mapping. Empty dict for an empty file.

    Raises:
        YAMLLoadError: If the file is missing, unreadable, not valid YAML,
            or its root is not a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise YAMLLoadError(path, "File does not exist or is not a file")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise YAMLLoadError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )

    return parsed


def iter_yaml_files(directory: Path | str) -> Iterator[Path]:
    """Yield YAML files of a directory in a stable (sorted) order.

    Args:
        directory: Directory to scan (not recursive).

    Raises:
        YAMLLoadError: If the path is not an existing directory.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise YAMLLoadError(directory, "Directory does not exist")

    for candidate in sorted(directory.iterdir()):
        if candidate.is_file() and candidate.suffix in YAML_SUFFIXES:
            yield candidate


def load_yaml_directory(directory: Path | str) -> dict[str, dict[str, Any]]:
    """Load every YAML document of a directory, keyed by file stem.

    Args:
        directory: Directory containing .yaml/.yml files.

    Returns:
        Mapping of file stem to parsed document.

    Raises:
        YAMLLoadError: If the directory is missing or any file fails to load.
    """
    return {path.stem: load_yaml(path) for path in iter_yaml_files(directory)}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Nested mappings merge recursively; any other value (lists included)
    is replaced wholesale by the override. Neither input is modified.

    Example:
        >>> deep_merge({"ui": {"icon": "a", "menuOrder": 1}}, {"ui": {"menuOrder": 5}})
        {'ui': {'icon': 'a', 'menuOrder': 5}}
    """
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged
