# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- The bundled seed catalogue and registries built from it
- A scripted function-calling oracle
- A resolver wired with offline collaborators
"""

from collections.abc import Callable
from typing import Any

import pytest

from src.core.capabilities import Capability, CapabilityRegistry, RegistrySnapshot
from src.core.capabilities.seeding import load_seed_capabilities
from src.core.config.settings import ResolverSettings
from src.core.execution.dispatcher import ExecutionDispatcher, RecordingCallbacks
from src.core.resolution.oracle import FunctionCall
from src.core.resolution.ranker import SemanticRanker
from src.core.resolution.resolver import IntentResolver
from src.core.resolution.state import ConversationContext
from src.core.resolution.triggers import TriggerMatcher


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Oracle double
# =============================================================================


class StubOracle:
    """Function-calling oracle returning scripted results in order.

    Each scripted item is a FunctionCall, None, or an exception to raise.
    Once the script is exhausted the oracle abstains.
    """

    def __init__(self, *results: FunctionCall | Exception | None):
        self.results: list[FunctionCall | Exception | None] = list(results)
        self.calls: list[dict[str, Any]] = []

    async def resolve_function_call(
        self,
        utterance: str,
        available_tools,
        history=None,
        hint: str | None = None,
    ) -> FunctionCall | None:
        self.calls.append(
            {
                "utterance": utterance,
                "tools": [tool["function"]["name"] for tool in available_tools],
                "history": list(history or []),
                "hint": hint,
            }
        )
        if not self.results:
            return None
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


# =============================================================================
# Catalogue Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def seed_capabilities() -> list[Capability]:
    """The bundled seed catalogue (10 capabilities)."""
    return load_seed_capabilities()


@pytest.fixture
def registry(seed_capabilities: list[Capability]) -> CapabilityRegistry:
    """Registry loaded with the seed catalogue."""
    return CapabilityRegistry(seed_capabilities)


@pytest.fixture
def snapshot(registry: CapabilityRegistry) -> RegistrySnapshot:
    """Snapshot of the seeded registry."""
    return registry.snapshot()


@pytest.fixture
def make_capability() -> Callable[..., Capability]:
    """Factory building minimal valid capabilities.

    Keyword arguments are merged over a wizard capability with one
    required ``topic`` parameter.
    """

    def factory(**overrides: Any) -> Capability:
        document: dict[str, Any] = {
            "id": "test_capability",
            "name": "יכולת בדיקה",
            "shortDescription": "יכולת לבדיקות",
            "category": "interactive_content",
            "parameters": {
                "topic": {"type": "string", "required": True, "description": "נושא"},
            },
            "execution": {
                "type": "wizard",
                "wizardComponent": "ContentCreationWizard",
                "wizardMode": "test",
            },
        }
        document.update(overrides)
        return Capability.model_validate(document)

    return factory


# =============================================================================
# Resolution Fixtures
# =============================================================================


@pytest.fixture
def resolver_settings() -> ResolverSettings:
    """Resolver settings with the documented defaults."""
    return ResolverSettings(
        confidence_floor=20.0,
        tie_margin=5.0,
        top_n_tools=5,
        history_window=6,
    )


@pytest.fixture
def oracle() -> StubOracle:
    """An oracle that abstains unless scripted."""
    return StubOracle()


@pytest.fixture
def make_oracle() -> Callable[..., StubOracle]:
    """Factory for oracles with scripted results."""
    return StubOracle


@pytest.fixture
def dispatcher() -> ExecutionDispatcher:
    """Dispatcher without network collaborators (wizards only)."""
    return ExecutionDispatcher()


@pytest.fixture
def resolver(
    oracle: StubOracle,
    dispatcher: ExecutionDispatcher,
    resolver_settings: ResolverSettings,
) -> IntentResolver:
    """Resolver wired with the stub oracle."""
    return IntentResolver(
        TriggerMatcher(),
        SemanticRanker(tie_margin=resolver_settings.tie_margin),
        oracle,
        dispatcher,
        resolver_settings,
    )


@pytest.fixture
def context() -> ConversationContext:
    """A fresh conversation context."""
    return ConversationContext(session_id="session-1")


@pytest.fixture
def callbacks() -> RecordingCallbacks:
    """Callbacks recording every UI event."""
    return RecordingCallbacks()
