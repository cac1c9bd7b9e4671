# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability registry for managing and accessing capability documents.

The registry provides:
- Central registration of all capabilities, unique by id
- Filtered listing (category, status, menu visibility)
- Lookup by id, signalling CapabilityNotFoundError for unknown ids
- Consistent snapshots for in-flight resolutions
- TTL-cached refresh from a capability source with stale fallback

Writers never mutate a published mapping: every change builds a new dict
and swaps it in, so a snapshot taken at the start of a resolution is never
affected by a concurrent re-seed.

Usage:
    registry = get_default_registry()

    lesson = registry.get("create_interactive_lesson")

    for capability in registry.get_for_menu():
        print(capability.ui.menu_order, capability.name)

    snapshot = registry.snapshot()
    candidates = snapshot.matchable()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType
from typing import Protocol

from src.core.capabilities.models import (
    Capability,
    CapabilityCategory,
    CapabilityStatus,
)
from src.core.errors import CapabilityNotFoundError, DuplicateCapabilityError

logger = logging.getLogger(__name__)

_CATEGORY_ORDER = {category: index for index, category in enumerate(CapabilityCategory)}


def _sort_key(capability: Capability) -> tuple[int, int, str]:
    return (
        _CATEGORY_ORDER[capability.category],
        capability.ui.menu_order,
        capability.id,
    )


@dataclass(frozen=True)
class CapabilityFilter:
    """Listing filter. ``None`` fields do not filter."""

    category: CapabilityCategory | None = None
    status: CapabilityStatus | None = None
    show_in_menu: bool | None = None

    def accepts(self, capability: Capability) -> bool:
        """Check a capability against every set criterion."""
        if self.category is not None and capability.category != self.category:
            return False
        if self.status is not None and capability.status != self.status:
            return False
        if self.show_in_menu is not None and capability.ui.show_in_menu != self.show_in_menu:
            return False
        return True


class CapabilitySource(Protocol):
    """Where capability documents come from (YAML seed files, a document store...)."""

    async def load(self) -> list[Capability]:
        """Load the full catalogue."""
        ...


class RegistrySnapshot:
    """Immutable view of the registry used for one resolution."""

    def __init__(self, capabilities: Iterable[Capability]):
        ordered = sorted(capabilities, key=_sort_key)
        self._capabilities: tuple[Capability, ...] = tuple(ordered)
        self._by_id = MappingProxyType({c.id: c for c in ordered})

    @property
    def capabilities(self) -> tuple[Capability, ...]:
        """All capabilities, whatever their status."""
        return self._capabilities

    def get(self, capability_id: str) -> Capability:
        """Get a capability by id.

        Raises:
            CapabilityNotFoundError: If the id is not in this snapshot.
        """
        capability = self._by_id.get(capability_id)
        if capability is None:
            raise CapabilityNotFoundError(capability_id, list(self._by_id))
        return capability

    def get_optional(self, capability_id: str) -> Capability | None:
        """Get a capability by id, or None."""
        return self._by_id.get(capability_id)

    def matchable(self) -> list[Capability]:
        """Capabilities that take part in matching (everything but disabled)."""
        return [c for c in self._capabilities if c.is_matchable]

    def __len__(self) -> int:
        return len(self._capabilities)

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._capabilities)

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._by_id


class CapabilityRegistry:
    """Registry of capability documents.

    Attributes:
        cache_ttl: Seconds a catalogue loaded from ``source`` stays fresh.

    Example:
        registry = CapabilityRegistry(source=YAMLCapabilitySource(seed_dir))
        await registry.refresh()
        registry.list(CapabilityFilter(category=CapabilityCategory.STATIC_CONTENT))
    """

    def __init__(
        self,
        capabilities: Iterable[Capability] | None = None,
        source: CapabilitySource | None = None,
        cache_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._capabilities: dict[str, Capability] = {}
        self._source = source
        self._clock = clock
        self._loaded_at: float | None = None
        self._refresh_lock = asyncio.Lock()
        self.cache_ttl = cache_ttl
        if capabilities is not None:
            self.load(capabilities)

    # -------------------------------------------------------------------------
    # Writes (copy-on-write)
    # -------------------------------------------------------------------------

    def register(self, capability: Capability) -> None:
        """Register a new capability.

        Raises:
            DuplicateCapabilityError: If the id is already registered.
        """
        if capability.id in self._capabilities:
            raise DuplicateCapabilityError(capability.id)
        self._warn_on_required_defaults(capability)
        self._capabilities = {**self._capabilities, capability.id: capability}
        logger.debug("Registered capability: %s", capability.id)

    def replace(self, capability: Capability) -> None:
        """Replace an existing capability or register a new one."""
        if capability.id in self._capabilities:
            logger.debug("Replacing capability: %s", capability.id)
        self._warn_on_required_defaults(capability)
        self._capabilities = {**self._capabilities, capability.id: capability}

    def unregister(self, capability_id: str) -> bool:
        """Remove a capability.

        Returns:
            True if removed, False if it was not registered.
        """
        if capability_id not in self._capabilities:
            return False
        remaining = dict(self._capabilities)
        del remaining[capability_id]
        self._capabilities = remaining
        logger.debug("Unregistered capability: %s", capability_id)
        return True

    def load(self, capabilities: Iterable[Capability]) -> None:
        """Atomically replace the whole catalogue.

        Raises:
            DuplicateCapabilityError: If two documents share an id.
        """
        catalogue: dict[str, Capability] = {}
        for capability in capabilities:
            if capability.id in catalogue:
                raise DuplicateCapabilityError(capability.id)
            self._warn_on_required_defaults(capability)
            catalogue[capability.id] = capability
        self._capabilities = catalogue
        self._loaded_at = self._clock()
        logger.info("Capability catalogue loaded: %d capabilities", len(catalogue))

    @staticmethod
    def _warn_on_required_defaults(capability: Capability) -> None:
        conflicting = capability.required_with_defaults()
        if conflicting:
            logger.warning(
                "Capability %s declares defaults on required parameters %s; "
                "they will be ignored",
                capability.id,
                conflicting,
            )

    # -------------------------------------------------------------------------
    # Source refresh
    # -------------------------------------------------------------------------

    @property
    def is_stale(self) -> bool:
        """Whether the catalogue should be reloaded from the source."""
        if self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self.cache_ttl

    async def refresh(self, force: bool = False) -> bool:
        """Reload the catalogue from the source when stale.

        On a load error the previous catalogue is kept (stale fallback).

        Args:
            force: Reload even if the cache is still fresh.

        Returns:
            True if a new catalogue was loaded.

        Raises:
            Exception: The source error, only when there is no catalogue
                to fall back to.
        """
        if self._source is None:
            return False

        async with self._refresh_lock:
            if not force and not self.is_stale:
                return False
            try:
                capabilities = await self._source.load()
            except Exception as e:
                if not self._capabilities:
                    raise
                logger.warning(
                    "Capability reload failed, serving %d cached capabilities: %s",
                    len(self._capabilities),
                    str(e),
                )
                return False
            self.load(capabilities)
            return True

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list(
        self,
        filter: CapabilityFilter | None = None,
        include_inactive: bool = False,
    ) -> list[Capability]:
        """List capabilities sorted by category then menu order.

        Entries whose status is not active are excluded unless
        ``include_inactive`` is set or the filter asks for that status.
        """
        criteria = filter or CapabilityFilter()
        result = []
        for capability in self._capabilities.values():
            if (
                criteria.status is None
                and not include_inactive
                and capability.status != CapabilityStatus.ACTIVE
            ):
                continue
            if criteria.accepts(capability):
                result.append(capability)
        return sorted(result, key=_sort_key)

    def get(self, capability_id: str) -> Capability:
        """Get a capability by id.

        Raises:
            CapabilityNotFoundError: If the id is not registered.
        """
        capability = self._capabilities.get(capability_id)
        if capability is None:
            raise CapabilityNotFoundError(capability_id, list(self._capabilities))
        return capability

    def get_optional(self, capability_id: str) -> Capability | None:
        """Get a capability by id, or None."""
        return self._capabilities.get(capability_id)

    def has(self, capability_id: str) -> bool:
        """Check if a capability is registered."""
        return capability_id in self._capabilities

    def list_ids(self) -> list[str]:
        """Ids of every registered capability."""
        return list(self._capabilities)

    def get_for_menu(self) -> list[Capability]:
        """Active capabilities shown in the creation menu, by menu order."""
        visible = self.list(CapabilityFilter(show_in_menu=True))
        return sorted(visible, key=lambda c: (c.ui.menu_order, c.id))

    def get_by_category(self, category: CapabilityCategory) -> list[Capability]:
        """Active capabilities of a category."""
        return self.list(CapabilityFilter(category=category))

    def snapshot(self) -> RegistrySnapshot:
        """Consistent view of the current catalogue."""
        return RegistrySnapshot(self._capabilities.values())

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._capabilities

    def __iter__(self) -> Iterator[Capability]:
        return iter(list(self._capabilities.values()))

    def __repr__(self) -> str:
        return f"CapabilityRegistry(capabilities={list(self._capabilities)})"


# Global default registry instance
_default_registry: CapabilityRegistry | None = None


def get_default_registry() -> CapabilityRegistry:
    """Get the process-wide registry, seeded from the YAML catalogue.

    Returns:
        Shared CapabilityRegistry instance.
    """
    global _default_registry

    if _default_registry is None:
        from src.core.capabilities.seeding import load_seed_capabilities
        from src.core.config import get_settings

        settings = get_settings()
        _default_registry = CapabilityRegistry(
            load_seed_capabilities(settings.registry.seed_directory),
            cache_ttl=settings.registry.cache_ttl_seconds,
        )

    return _default_registry


def reset_default_registry() -> None:
    """Reset the default registry (useful for testing)."""
    global _default_registry
    _default_registry = None
