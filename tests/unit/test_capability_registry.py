# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the capability registry and seeding.

Tests cover:
- Registration, lookup and listing
- Snapshot isolation from later writes
- TTL refresh with stale fallback
- Administrative seeding (create, skip, force, merge)
"""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from src.core.capabilities import (
    Capability,
    CapabilityAnalytics,
    CapabilityCategory,
    CapabilityFilter,
    CapabilityRegistry,
    CapabilityStatus,
    YAMLCapabilitySource,
    load_seed_capabilities,
    seed_registry,
)
from src.core.errors import (
    CapabilityLoadError,
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    ErrorCode,
)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestRegistration:
    """Tests for registering and looking up capabilities."""

    def test_register_and_get(self, make_capability: Callable[..., Capability]) -> None:
        """Test that a registered capability can be looked up."""
        registry = CapabilityRegistry()
        capability = make_capability()

        registry.register(capability)

        assert registry.get("test_capability") is capability
        assert registry.has("test_capability")
        assert "test_capability" in registry
        assert len(registry) == 1

    def test_register_duplicate_raises(self, make_capability: Callable[..., Capability]) -> None:
        """Test that ids are unique."""
        registry = CapabilityRegistry([make_capability()])

        with pytest.raises(DuplicateCapabilityError) as exc_info:
            registry.register(make_capability(name="אחר"))

        assert exc_info.value.code == ErrorCode.INVALID_ARGUMENT

    def test_load_with_duplicate_ids_raises(self, make_capability: Callable[..., Capability]) -> None:
        """Test that a catalogue with two equal ids is rejected."""
        with pytest.raises(DuplicateCapabilityError):
            CapabilityRegistry([make_capability(), make_capability()])

    def test_get_unknown_raises_not_found(self, registry: CapabilityRegistry) -> None:
        """Test that unknown ids signal not-found."""
        with pytest.raises(CapabilityNotFoundError) as exc_info:
            registry.get("create_hologram")

        assert exc_info.value.code == ErrorCode.NOT_FOUND
        assert exc_info.value.capability_id == "create_hologram"
        assert "create_interactive_lesson" in exc_info.value.available
        assert registry.get_optional("create_hologram") is None
        assert len(registry.list_ids()) == 10

    def test_replace_and_unregister(self, make_capability: Callable[..., Capability]) -> None:
        """Test replacing and removing a capability."""
        registry = CapabilityRegistry([make_capability()])

        registry.replace(make_capability(name="שם חדש"))

        assert registry.get("test_capability").name == "שם חדש"
        assert registry.unregister("test_capability") is True
        assert registry.unregister("test_capability") is False
        assert len(registry) == 0

    def test_required_default_logs_warning(
        self, make_capability: Callable[..., Capability], caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that defaults on required parameters are reported."""
        capability = make_capability(
            parameters={"topic": {"type": "string", "required": True, "defaultValue": "x"}}
        )

        with caplog.at_level("WARNING"):
            CapabilityRegistry([capability])

        assert "defaults on required parameters" in caplog.text


@pytest.mark.unit
class TestListing:
    """Tests for listing and filtering."""

    def test_list_sorted_by_category_then_menu_order(self, registry: CapabilityRegistry) -> None:
        """Test the default listing order."""
        ids = [c.id for c in registry.list()]

        assert ids[:4] == [
            "create_interactive_lesson",
            "create_interactive_activity",
            "create_interactive_exam",
            "create_micro_activity",
        ]
        assert ids[4] == "generate_worksheet"

    def test_filter_by_category(self, registry: CapabilityRegistry) -> None:
        """Test filtering by category."""
        static = registry.get_by_category(CapabilityCategory.STATIC_CONTENT)

        assert len(static) == 6
        assert all(c.category == CapabilityCategory.STATIC_CONTENT for c in static)

    def test_inactive_excluded_unless_requested(
        self, seed_capabilities: list[Capability], make_capability: Callable[..., Capability]
    ) -> None:
        """Test that only active capabilities are listed by default."""
        registry = CapabilityRegistry(
            [*seed_capabilities, make_capability(id="old_one", status="deprecated")]
        )

        assert "old_one" not in [c.id for c in registry.list()]
        assert "old_one" in [c.id for c in registry.list(include_inactive=True)]
        deprecated = registry.list(CapabilityFilter(status=CapabilityStatus.DEPRECATED))
        assert [c.id for c in deprecated] == ["old_one"]

    def test_menu_ordered_by_menu_order(self, registry: CapabilityRegistry) -> None:
        """Test that the menu follows menuOrder across categories."""
        orders = [c.ui.menu_order for c in registry.get_for_menu()]

        assert orders == sorted(orders)
        assert registry.get_for_menu()[0].id == "create_interactive_lesson"

    def test_menu_hides_capabilities_not_in_menu(
        self, make_capability: Callable[..., Capability]
    ) -> None:
        """Test that showInMenu false keeps a capability out of the menu."""
        registry = CapabilityRegistry(
            [
                make_capability(id="visible", ui={"showInMenu": True, "menuOrder": 2}),
                make_capability(id="hidden", ui={"showInMenu": False}),
            ]
        )

        assert [c.id for c in registry.get_for_menu()] == ["visible"]


@pytest.mark.unit
class TestSnapshot:
    """Tests for registry snapshots."""

    def test_snapshot_unaffected_by_later_writes(
        self, registry: CapabilityRegistry, make_capability: Callable[..., Capability]
    ) -> None:
        """Test that a snapshot keeps the catalogue it was taken from."""
        snapshot = registry.snapshot()

        registry.register(make_capability())
        registry.unregister("create_interactive_lesson")

        assert "test_capability" not in snapshot
        assert snapshot.get("create_interactive_lesson").id == "create_interactive_lesson"
        assert len(snapshot) == 10

    def test_matchable_excludes_disabled(self, make_capability: Callable[..., Capability]) -> None:
        """Test that disabled capabilities never reach matching."""
        registry = CapabilityRegistry(
            [
                make_capability(id="on"),
                make_capability(id="off", status="disabled"),
                make_capability(id="old", status="deprecated"),
            ]
        )

        ids = {c.id for c in registry.snapshot().matchable()}

        assert ids == {"on", "old"}

    def test_snapshot_get_unknown_raises(self, registry: CapabilityRegistry) -> None:
        """Test that snapshots signal not-found too."""
        with pytest.raises(CapabilityNotFoundError):
            registry.snapshot().get("missing")


@pytest.mark.unit
class TestRefresh:
    """Tests for TTL-cached refresh from a source."""

    @pytest.mark.asyncio
    async def test_refresh_loads_from_source(self, seed_capabilities: list[Capability]) -> None:
        """Test that the first refresh loads the catalogue."""
        source = AsyncMock()
        source.load.return_value = seed_capabilities
        registry = CapabilityRegistry(source=source)

        loaded = await registry.refresh()

        assert loaded is True
        assert len(registry) == 10

    @pytest.mark.asyncio
    async def test_refresh_respects_ttl(self, seed_capabilities: list[Capability]) -> None:
        """Test that a fresh catalogue is not reloaded."""
        clock = FakeClock()
        source = AsyncMock()
        source.load.return_value = seed_capabilities
        registry = CapabilityRegistry(source=source, cache_ttl=60.0, clock=clock)

        await registry.refresh()
        clock.now = 30.0
        second = await registry.refresh()
        clock.now = 61.0
        third = await registry.refresh()

        assert second is False
        assert third is True
        assert source.load.await_count == 2

    @pytest.mark.asyncio
    async def test_force_refresh_ignores_ttl(self, seed_capabilities: list[Capability]) -> None:
        """Test that force reloads even when fresh."""
        source = AsyncMock()
        source.load.return_value = seed_capabilities
        registry = CapabilityRegistry(source=source, clock=FakeClock())

        await registry.refresh()
        await registry.refresh(force=True)

        assert source.load.await_count == 2

    @pytest.mark.asyncio
    async def test_source_error_keeps_stale_catalogue(
        self, seed_capabilities: list[Capability]
    ) -> None:
        """Test that a failed reload serves the cached catalogue."""
        source = AsyncMock()
        source.load.side_effect = [seed_capabilities, OSError("store unavailable")]
        registry = CapabilityRegistry(source=source)

        await registry.refresh()
        loaded = await registry.refresh(force=True)

        assert loaded is False
        assert len(registry) == 10

    @pytest.mark.asyncio
    async def test_source_error_without_catalogue_raises(self) -> None:
        """Test that there is no silent empty catalogue."""
        source = AsyncMock()
        source.load.side_effect = OSError("store unavailable")
        registry = CapabilityRegistry(source=source)

        with pytest.raises(OSError):
            await registry.refresh()

    @pytest.mark.asyncio
    async def test_refresh_without_source_is_noop(self, registry: CapabilityRegistry) -> None:
        """Test that in-memory registries never reload."""
        assert await registry.refresh(force=True) is False
        assert len(registry) == 10

    @pytest.mark.asyncio
    async def test_yaml_source_loads_seed(self) -> None:
        """Test the YAML-backed source."""
        capabilities = await YAMLCapabilitySource().load()

        assert len(capabilities) == 10


@pytest.mark.unit
class TestSeeding:
    """Tests for administrative seeding."""

    def test_seed_empty_registry(self, seed_capabilities: list[Capability]) -> None:
        """Test that every document is created on first run."""
        registry = CapabilityRegistry()

        report = seed_registry(registry, seed_capabilities)

        assert report.created == 10
        assert report.success
        assert registry.get("generate_letter").created_at is not None

    def test_second_run_skips_existing(self, seed_capabilities: list[Capability]) -> None:
        """Test that seeding is idempotent without force."""
        registry = CapabilityRegistry()
        seed_registry(registry, seed_capabilities)

        report = seed_registry(registry, seed_capabilities)

        assert report.created == 0
        assert report.skipped == 10

    def test_force_replaces_and_keeps_created_at(self, seed_capabilities: list[Capability]) -> None:
        """Test that force replaces documents but keeps their creation time."""
        registry = CapabilityRegistry()
        seed_registry(registry, seed_capabilities)
        created_at = registry.get("generate_letter").created_at

        report = seed_registry(registry, seed_capabilities, force=True)

        assert report.updated == 10
        assert registry.get("generate_letter").created_at == created_at

    def test_merge_keeps_stored_fields(self, make_capability: Callable[..., Capability]) -> None:
        """Test that merge overlays the new document on the stored one."""
        stored = make_capability(
            ui={"icon": "IconBook", "menuOrder": 1},
            analytics={"usageCount": 5, "successCount": 4},
        )
        registry = CapabilityRegistry([stored])
        incoming = Capability.model_validate(
            {
                "id": "test_capability",
                "name": "שם מעודכן",
                "category": "interactive_content",
                "ui": {"menuOrder": 7},
                "execution": {
                    "type": "wizard",
                    "wizardComponent": "ContentCreationWizard",
                    "wizardMode": "test",
                },
            }
        )

        report = seed_registry(registry, [incoming], merge=True)

        merged = registry.get("test_capability")
        assert report.updated == 1
        assert merged.name == "שם מעודכן"
        assert merged.ui.menu_order == 7
        assert merged.ui.icon == "IconBook"
        assert merged.analytics == CapabilityAnalytics(usage_count=5, success_count=4)
        assert merged.required_parameters() == ["topic"]

    def test_invalid_document_raises_load_error(self, tmp_path: Path) -> None:
        """Test that a broken seed file is reported with its name."""
        (tmp_path / "broken.yaml").write_text("id: broken\nname: x\n", encoding="utf-8")

        with pytest.raises(CapabilityLoadError) as exc_info:
            load_seed_capabilities(tmp_path)

        assert "broken.yaml" in str(exc_info.value)
