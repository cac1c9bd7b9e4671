# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for application settings."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.core.config.settings import (
    DEFAULT_PROMPT_DIRECTORY,
    DEFAULT_SEED_DIRECTORY,
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


class TestLLMSettings:
    """Tests for LLMSettings."""

    def test_get_default_model_ollama(self) -> None:
        """Test getting default model for Ollama."""
        with patch.dict(os.environ, {"OLLAMA_DEFAULT_MODEL": "qwen2.5:7b"}, clear=True):
            settings = LLMSettings(default_provider="ollama")

        assert settings.get_default_model() == "ollama/qwen2.5:7b"

    def test_get_default_model_google(self) -> None:
        """Test getting default model for Google."""
        with patch.dict(os.environ, {"GOOGLE_DEFAULT_MODEL": "gemini-2.0-flash"}, clear=True):
            settings = LLMSettings(default_provider="google")

        assert settings.get_default_model() == "gemini/gemini-2.0-flash"

    def test_provider_params_for_ollama(self) -> None:
        """Test that Ollama models get the configured base URL."""
        with patch.dict(os.environ, {"OLLAMA_BASE_URL": "http://ollama:11434"}, clear=True):
            settings = LLMSettings()

        params = settings.get_provider_params("ollama/qwen2.5:7b")

        assert params["api_base"] == "http://ollama:11434"

    def test_provider_params_use_matching_key(self) -> None:
        """Test that the key of the model's provider is passed."""
        env = {"GOOGLE_API_KEY": "google-key", "OPENAI_API_KEY": "openai-key"}

        with patch.dict(os.environ, env, clear=True):
            settings = LLMSettings()

        assert settings.get_provider_params("gemini/gemini-2.0-flash") == {"api_key": "google-key"}
        assert settings.get_provider_params("gpt-4o") == {"api_key": "openai-key"}


class TestEmbeddingSettings:
    """Tests for EmbeddingSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = EmbeddingSettings()

        assert settings.enabled is False
        assert settings.model == "ollama/nomic-embed-text"
        assert settings.batch_size == 32

    def test_loads_from_environment(self) -> None:
        """Test loading with the EMBEDDING_ prefix."""
        env = {"EMBEDDING_ENABLED": "true", "EMBEDDING_MODEL": "text-embedding-3-small"}

        with patch.dict(os.environ, env, clear=True):
            settings = EmbeddingSettings()

        assert settings.enabled is True
        assert settings.model == "text-embedding-3-small"


class TestResolverSettings:
    """Tests for ResolverSettings."""

    def test_default_values(self) -> None:
        """Test default configuration values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = ResolverSettings()

        assert settings.confidence_floor == 20.0
        assert settings.tie_margin == 5.0
        assert settings.top_n_tools == 5
        assert settings.history_window == 6

    def test_loads_from_environment(self) -> None:
        """Test loading with the RESOLVER_ prefix."""
        env = {"RESOLVER_CONFIDENCE_FLOOR": "35", "RESOLVER_TOP_N_TOOLS": "3"}

        with patch.dict(os.environ, env, clear=True):
            settings = ResolverSettings()

        assert settings.confidence_floor == 35.0
        assert settings.top_n_tools == 3

    def test_confidence_floor_is_bounded(self) -> None:
        """Test that a floor above 100 is rejected."""
        with pytest.raises(ValidationError):
            ResolverSettings(confidence_floor=150)


class TestRegistrySettings:
    """Tests for RegistrySettings."""

    def test_default_seed_directory_is_bundled(self) -> None:
        """Test that the default seed directory ships with the package."""
        with patch.dict(os.environ, {}, clear=True):
            settings = RegistrySettings()

        assert settings.seed_directory == DEFAULT_SEED_DIRECTORY
        assert settings.seed_directory.is_dir()
        assert settings.cache_ttl_seconds == 300.0


class TestGenerationAPISettings:
    """Tests for GenerationAPISettings."""

    def test_default_prompt_directory_is_bundled(self) -> None:
        """Test that the prompt templates ship with the package."""
        with patch.dict(os.environ, {}, clear=True):
            settings = GenerationAPISettings()

        assert settings.prompt_directory == DEFAULT_PROMPT_DIRECTORY
        assert (settings.prompt_directory / "parent_letter.yaml").is_file()


class TestAPISettings:
    """Tests for APISettings."""

    def test_origins_list_property(self) -> None:
        """Test parsing CORS origins into a list."""
        settings = APISettings(cors_origins="http://a.com, http://b.com,,")

        assert settings.origins_list == ["http://a.com", "http://b.com"]


class TestSettings:
    """Tests for main Settings class."""

    def test_subsettings_loaded(self) -> None:
        """Test that all subsettings are loaded."""
        settings = Settings()

        assert isinstance(settings.llm, LLMSettings)
        assert isinstance(settings.embedding, EmbeddingSettings)
        assert isinstance(settings.resolver, ResolverSettings)
        assert isinstance(settings.registry, RegistrySettings)
        assert isinstance(settings.generation_api, GenerationAPISettings)
        assert isinstance(settings.api, APISettings)

    def test_is_development_property(self) -> None:
        """Test is_development property."""
        dev_settings = Settings(environment="development")
        prod_settings = Settings(environment="production")

        assert dev_settings.is_development is True
        assert prod_settings.is_development is False
        assert prod_settings.is_production is True

    def test_invalid_environment_rejected(self) -> None:
        """Test that unknown environments are rejected."""
        with pytest.raises(ValidationError):
            Settings(environment="qa")  # type: ignore[arg-type]


class TestGetSettings:
    """Tests for get_settings function."""

    def test_returns_cached_instance(self) -> None:
        """Test that get_settings returns cached instance."""
        clear_settings_cache()

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2

    def test_clear_cache_allows_reload(self) -> None:
        """Test that clearing cache allows reloading settings."""
        clear_settings_cache()

        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()

        assert settings1 is not settings2
