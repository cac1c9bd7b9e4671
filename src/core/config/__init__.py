# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for the capability engine.

This package provides centralized configuration management:
- Settings: Pydantic-based settings loaded from environment variables
- YAML loader: Utilities for loading capability and prompt documents

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.registry.cache_ttl_seconds
    300.0

    >>> from src.core.config import load_yaml
    >>> document = load_yaml(Path("seed/create_interactive_lesson.yaml"))
"""

from src.core.config.settings import (
    APISettings,
    EmbeddingSettings,
    GenerationAPISettings,
    LLMSettings,
    RegistrySettings,
    ResolverSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from src.core.config.yaml_loader import (
    YAMLLoadError,
    deep_merge,
    iter_yaml_files,
    load_yaml,
    load_yaml_directory,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "LLMSettings",
    "EmbeddingSettings",
    "ResolverSettings",
    "RegistrySettings",
    "GenerationAPISettings",
    "APISettings",
    # YAML utilities
    "load_yaml",
    "load_yaml_directory",
    "iter_yaml_files",
    "deep_merge",
    "YAMLLoadError",
]
