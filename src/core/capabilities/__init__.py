# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability catalogue: data model, registry and administrative seeding.

Usage:
    from src.core.capabilities import get_default_registry

    registry = get_default_registry()
    lesson = registry.get("create_interactive_lesson")
"""

from src.core.capabilities.models import (
    CAPABILITY_CATEGORY_LABELS,
    LEGACY_PRODUCT_TYPE_TO_CAPABILITY,
    Capability,
    CapabilityAnalytics,
    CapabilityCategory,
    CapabilityDependencies,
    CapabilityExample,
    CapabilityStatus,
    CapabilityUI,
    ComplexityLevel,
    DirectApiExecution,
    ExecutionType,
    FunctionDeclaration,
    HybridExecution,
    ParameterSpec,
    ParameterType,
    PromptExecution,
    Triggers,
    ValidationRules,
    WizardExecution,
)
from src.core.capabilities.registry import (
    CapabilityFilter,
    CapabilityRegistry,
    CapabilitySource,
    RegistrySnapshot,
    get_default_registry,
    reset_default_registry,
)
from src.core.capabilities.seeding import (
    SeedReport,
    YAMLCapabilitySource,
    load_seed_capabilities,
    seed_registry,
)

__all__ = [
    # Models
    "Capability",
    "CapabilityAnalytics",
    "CapabilityCategory",
    "CapabilityDependencies",
    "CapabilityExample",
    "CapabilityStatus",
    "CapabilityUI",
    "ComplexityLevel",
    "DirectApiExecution",
    "ExecutionType",
    "FunctionDeclaration",
    "HybridExecution",
    "ParameterSpec",
    "ParameterType",
    "PromptExecution",
    "Triggers",
    "ValidationRules",
    "WizardExecution",
    "CAPABILITY_CATEGORY_LABELS",
    "LEGACY_PRODUCT_TYPE_TO_CAPABILITY",
    # Registry
    "CapabilityFilter",
    "CapabilityRegistry",
    "CapabilitySource",
    "RegistrySnapshot",
    "get_default_registry",
    "reset_default_registry",
    # Seeding
    "SeedReport",
    "YAMLCapabilitySource",
    "load_seed_capabilities",
    "seed_registry",
]
