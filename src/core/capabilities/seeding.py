# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Administrative seeding of capability documents.

Capability documents live as one YAML file per capability under
``src/core/capabilities/seed/``. This module parses them into
``Capability`` models and writes them into a registry, reporting what was
created, updated or skipped.

Example:
    >>> registry = CapabilityRegistry()
    >>> report = seed_registry(registry, load_seed_capabilities())
    >>> report.created
    10
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from src.core.capabilities.models import Capability
from src.core.capabilities.registry import CapabilityRegistry
from src.core.config.settings import DEFAULT_SEED_DIRECTORY
from src.core.config.yaml_loader import YAMLLoadError, deep_merge, iter_yaml_files, load_yaml
from src.core.errors import CapabilityLoadError

logger = logging.getLogger(__name__)


class SeedReport(BaseModel):
    """Outcome of a seeding run."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when no document failed."""
        return not self.errors


def parse_capability(document: dict[str, Any], source: str) -> Capability:
    """Validate a raw document into a Capability.

    Raises:
        CapabilityLoadError: If the document does not match the schema.
    """
    try:
        return Capability.model_validate(document)
    except ValidationError as e:
        raise CapabilityLoadError(source, str(e), original_error=e) from e


def load_seed_capabilities(directory: Path | None = None) -> list[Capability]:
    """Load every capability document of a seed directory.

    Args:
        directory: Directory of YAML documents. Defaults to the bundled seed.

    Returns:
        Parsed capabilities in file order.

    Raises:
        CapabilityLoadError: If a file cannot be read or validated.
    """
    directory = directory or DEFAULT_SEED_DIRECTORY
    capabilities: list[Capability] = []
    try:
        for path in iter_yaml_files(directory):
            capabilities.append(parse_capability(load_yaml(path), path.name))
    except YAMLLoadError as e:
        raise CapabilityLoadError(str(e.path), e.reason, original_error=e) from e

    logger.debug("Loaded %d seed capabilities from %s", len(capabilities), directory)
    return capabilities


class YAMLCapabilitySource:
    """Capability source backed by a directory of YAML documents."""

    def __init__(self, directory: Path | None = None):
        self.directory = directory or DEFAULT_SEED_DIRECTORY

    async def load(self) -> list[Capability]:
        """Load the full catalogue from disk."""
        return load_seed_capabilities(self.directory)


def _merge_documents(existing: Capability, incoming: Capability) -> Capability:
    base = existing.model_dump(by_alias=True, exclude_none=True)
    override = incoming.model_dump(by_alias=True, exclude_none=True, exclude_unset=True)
    # Execution descriptors are tagged unions; never merge two different variants.
    if base.get("execution", {}).get("type") != override.get("execution", {}).get("type"):
        base.pop("execution", None)
        base.pop("executionType", None)
    return parse_capability(deep_merge(base, override), incoming.id)


def seed_registry(
    registry: CapabilityRegistry,
    capabilities: list[Capability],
    force: bool = False,
    merge: bool = False,
) -> SeedReport:
    """Write capabilities into a registry.

    Existing ids are skipped unless ``force`` (replace the document) or
    ``merge`` (deep-merge the new document over the stored one, keeping
    stored analytics and creation time) is set.

    Args:
        registry: Target registry.
        capabilities: Documents to write.
        force: Replace existing documents.
        merge: Merge into existing documents.

    Returns:
        SeedReport with created/updated/skipped counts and per-id errors.
    """
    report = SeedReport()
    now = datetime.now(timezone.utc)

    for capability in capabilities:
        try:
            existing = registry.get_optional(capability.id)
            if existing is None:
                registry.register(
                    capability.model_copy(
                        update={
                            "created_at": capability.created_at or now,
                            "updated_at": now,
                        }
                    )
                )
                report.created += 1
            elif merge:
                merged = _merge_documents(existing, capability)
                registry.replace(merged.model_copy(update={"updated_at": now}))
                report.updated += 1
            elif force:
                registry.replace(
                    capability.model_copy(
                        update={
                            "created_at": existing.created_at or now,
                            "updated_at": now,
                        }
                    )
                )
                report.updated += 1
            else:
                report.skipped += 1
        except Exception as e:
            logger.error("Failed to seed capability %s: %s", capability.id, str(e))
            report.errors.append(f"Failed to seed {capability.id}: {e}")

    logger.info(
        "Seeding finished: created=%d, updated=%d, skipped=%d, errors=%d",
        report.created,
        report.updated,
        report.skipped,
        len(report.errors),
    )
    return report
