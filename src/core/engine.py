# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability engine facade.

Wires the registry, trigger matcher, ranker, function-calling oracle,
dispatcher and session manager together from ``Settings``. Transports
(the FastAPI app, tests, scripts) talk to this class only.

Example:
    engine = CapabilityEngine.from_settings()
    await engine.start()
    response = await engine.handle_message("session-1", "צור פעילות על שברים")
    await engine.close()
"""

import logging

from src.core.capabilities.models import Capability, CapabilityAnalytics, CapabilityCategory, CapabilityStatus
from src.core.capabilities.registry import CapabilityFilter, CapabilityRegistry
from src.core.capabilities.seeding import (
    SeedReport,
    YAMLCapabilitySource,
    load_seed_capabilities,
    seed_registry,
)
from src.core.config.settings import Settings, get_settings
from src.core.execution.analytics import AnalyticsRecorder
from src.core.execution.dispatcher import ExecutionDispatcher, ExecutorCallbacks
from src.core.execution.generation import GenerationClient
from src.core.execution.prompts import PromptLibrary, PromptRunner
from src.core.intelligence.embeddings.service import EmbeddingError, EmbeddingService
from src.core.intelligence.llm.client import LLMClient
from src.core.resolution.oracle import FunctionCallingOracle, LLMFunctionCallingOracle
from src.core.resolution.ranker import SemanticRanker
from src.core.resolution.resolver import IntentResolver
from src.core.resolution.responses import ResolutionResponse
from src.core.resolution.sessions import SessionManager
from src.core.resolution.triggers import TriggerMatcher

logger = logging.getLogger(__name__)


class CapabilityEngine:
    """Entry point of the capability engine.

    Attributes:
        registry: Capability catalogue.
        resolver: Per-turn intent resolver.
        sessions: Session manager serializing turns per session.
        dispatcher: Execution dispatcher.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        resolver: IntentResolver,
        sessions: SessionManager,
        dispatcher: ExecutionDispatcher,
        settings: Settings | None = None,
        generation_client: GenerationClient | None = None,
        embedder: EmbeddingService | None = None,
    ):
        self.registry = registry
        self.resolver = resolver
        self.sessions = sessions
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self._generation = generation_client
        self._embedder = embedder

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        oracle: FunctionCallingOracle | None = None,
        llm_client: LLMClient | None = None,
        generation_client: GenerationClient | None = None,
        registry: CapabilityRegistry | None = None,
    ) -> "CapabilityEngine":
        """Build an engine from configuration.

        Args:
            settings: Application settings. Uses get_settings() if None.
            oracle: Function-calling oracle. Defaults to LiteLLM tool calling.
            llm_client: LLM client for the oracle and prompt capabilities.
            generation_client: Client for direct_api endpoints.
            registry: Capability registry. Defaults to the YAML seed catalogue.
        """
        settings = settings or get_settings()

        if registry is None:
            registry = CapabilityRegistry(
                source=YAMLCapabilitySource(settings.registry.seed_directory),
                cache_ttl=settings.registry.cache_ttl_seconds,
            )

        llm = llm_client or LLMClient(llm_settings=settings.llm)
        if oracle is None:
            oracle = LLMFunctionCallingOracle(
                llm,
                temperature=settings.resolver.oracle_temperature,
                max_tokens=settings.resolver.oracle_max_tokens,
                model=settings.resolver.oracle_model,
            )

        generation = generation_client or GenerationClient(settings.generation_api)
        prompts = PromptRunner(
            llm, PromptLibrary.from_directory(settings.generation_api.prompt_directory)
        )
        dispatcher = ExecutionDispatcher(generation, prompts, AnalyticsRecorder())

        embedder = EmbeddingService(settings=settings.embedding) if settings.embedding.enabled else None
        resolver = IntentResolver(
            TriggerMatcher(),
            SemanticRanker(tie_margin=settings.resolver.tie_margin),
            oracle,
            dispatcher,
            settings.resolver,
            embedder=embedder,
        )

        return cls(
            registry=registry,
            resolver=resolver,
            sessions=SessionManager(resolver, registry),
            dispatcher=dispatcher,
            settings=settings,
            generation_client=generation,
            embedder=embedder,
        )

    async def start(self) -> None:
        """Load the catalogue and, when enabled, index description embeddings."""
        await self.registry.refresh(force=True)
        logger.info("Capability engine started with %d capabilities", len(self.registry))
        await self.index_embeddings()

    async def index_embeddings(self) -> int:
        """Embed capability descriptions for the ranker.

        Embedding failures leave the ranker on lexical similarity.
        """
        if self._embedder is None:
            return 0
        try:
            return await self.resolver.ranker.index(self.registry.list(), self._embedder)
        except EmbeddingError as e:
            logger.warning("Capability indexing failed, ranking lexically: %s", e.message)
            return 0

    async def close(self) -> None:
        """Release network clients and wait for analytics writes."""
        await self.dispatcher.analytics.flush()
        if self._generation is not None:
            await self._generation.close()

    # -------------------------------------------------------------------------
    # Conversation
    # -------------------------------------------------------------------------

    async def handle_message(
        self,
        session_id: str,
        utterance: str,
        callbacks: ExecutorCallbacks | None = None,
    ) -> ResolutionResponse:
        """Resolve one utterance of a session."""
        return await self.sessions.handle(session_id, utterance, callbacks)

    def reset(self, session_id: str) -> None:
        """Clear a session. Idempotent."""
        self.sessions.reset(session_id)

    # -------------------------------------------------------------------------
    # Catalogue
    # -------------------------------------------------------------------------

    def list_capabilities(
        self,
        category: CapabilityCategory | None = None,
        status: CapabilityStatus | None = None,
        menu: bool | None = None,
        include_inactive: bool = False,
    ) -> list[Capability]:
        """List capabilities; inactive ones only on request."""
        return self.registry.list(
            CapabilityFilter(category=category, status=status, show_in_menu=menu),
            include_inactive=include_inactive,
        )

    def get_capability(self, capability_id: str) -> Capability:
        """Get one capability.

        Raises:
            CapabilityNotFoundError: If the id is unknown.
        """
        return self.registry.get(capability_id)

    def menu(self) -> list[Capability]:
        """Capabilities of the creation menu, in menu order."""
        return self.registry.get_for_menu()

    async def seed(self, force: bool = False, merge: bool = False) -> SeedReport:
        """Write the YAML seed catalogue into the registry, then re-index."""
        capabilities = load_seed_capabilities(self.settings.registry.seed_directory)
        report = seed_registry(self.registry, capabilities, force=force, merge=merge)
        if report.created or report.updated:
            await self.index_embeddings()
        return report

    def analytics(self) -> dict[str, CapabilityAnalytics]:
        """Usage counters recorded since start."""
        return self.dispatcher.analytics.snapshot()
