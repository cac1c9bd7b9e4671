# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort usage analytics per capability.

Recording never fails a dispatch: counter updates are in memory, and the
optional persistence sink runs as a background task whose errors are
logged and dropped.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from src.core.capabilities.models import CapabilityAnalytics

logger = logging.getLogger(__name__)

AnalyticsSink = Callable[[str, CapabilityAnalytics], Awaitable[None]]


class AnalyticsRecorder:
    """Keeps running usage counters for each capability.

    Attributes:
        sink: Optional coroutine persisting the updated counters.
    """

    def __init__(self, sink: AnalyticsSink | None = None):
        self.sink = sink
        self._stats: dict[str, CapabilityAnalytics] = {}
        self._tasks: set[asyncio.Task] = set()

    def record(self, capability_id: str, success: bool, execution_time_ms: float) -> None:
        """Record one dispatch. Never raises."""
        try:
            current = self._stats.get(capability_id) or CapabilityAnalytics()
            usage = current.usage_count + 1
            successes = current.success_count + (1 if success else 0)
            updated = CapabilityAnalytics(
                usage_count=usage,
                success_count=successes,
                success_rate=successes / usage,
                avg_execution_time_ms=(
                    current.avg_execution_time_ms * current.usage_count + execution_time_ms
                ) / usage,
                last_used=datetime.now(timezone.utc),
            )
            self._stats[capability_id] = updated
            self._schedule_sink(capability_id, updated)
        except Exception as e:
            logger.warning("Failed to record analytics for %s: %s", capability_id, str(e))

    def _schedule_sink(self, capability_id: str, analytics: CapabilityAnalytics) -> None:
        if self.sink is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, skipping analytics sink for %s", capability_id)
            return
        task = loop.create_task(self._run_sink(capability_id, analytics))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_sink(self, capability_id: str, analytics: CapabilityAnalytics) -> None:
        try:
            await self.sink(capability_id, analytics)
        except Exception as e:
            logger.warning("Analytics sink failed for %s: %s", capability_id, str(e))

    async def flush(self) -> None:
        """Wait for pending sink writes (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def get(self, capability_id: str) -> CapabilityAnalytics | None:
        """Counters of one capability, or None if it never ran."""
        return self._stats.get(capability_id)

    def snapshot(self) -> dict[str, CapabilityAnalytics]:
        """Copy of every counter."""
        return dict(self._stats)
