# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the
capability engine. Settings are loaded from environment variables with
sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.resolver.confidence_floor
    20.0
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SEED_DIRECTORY = Path(__file__).resolve().parents[1] / "capabilities" / "seed"
DEFAULT_PROMPT_DIRECTORY = Path(__file__).resolve().parents[1] / "execution" / "prompt_templates"


class LLMSettings(BaseSettings):
    """LLM provider configuration using LiteLLM.

    Supports multiple providers: ollama, openai, anthropic, google.
    LiteLLM handles provider routing based on model prefix.

    Attributes:
        default_provider: Default LLM provider to use.
        ollama_base_url: Base URL for Ollama server.
        ollama_api_key: API key for remote Ollama instances.
        ollama_default_model: Default Ollama model.
        openai_api_key: OpenAI API key.
        openai_default_model: Default OpenAI model.
        anthropic_api_key: Anthropic API key.
        anthropic_default_model: Default Anthropic model.
        google_api_key: Google AI API key.
        google_default_model: Default Google model.
        request_timeout: Request timeout in seconds.
        max_retries: Maximum retry attempts.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    default_provider: Literal["ollama", "openai", "anthropic", "google"] = "google"

    # Ollama (local or remote)
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        validation_alias="OLLAMA_BASE_URL",
    )
    ollama_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OLLAMA_API_KEY",
    )
    ollama_default_model: str = Field(
        default="qwen2.5:7b",
        validation_alias="OLLAMA_DEFAULT_MODEL",
    )

    # OpenAI
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
    )
    openai_default_model: str = Field(
        default="gpt-4o",
        validation_alias="OPENAI_DEFAULT_MODEL",
    )

    # Anthropic
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="ANTHROPIC_API_KEY",
    )
    anthropic_default_model: str = Field(
        default="claude-3-5-sonnet-20241022",
        validation_alias="ANTHROPIC_DEFAULT_MODEL",
    )

    # Google
    google_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="GOOGLE_API_KEY",
    )
    google_default_model: str = Field(
        default="gemini-2.0-flash",
        validation_alias="GOOGLE_DEFAULT_MODEL",
    )

    request_timeout: float = 60.0
    max_retries: int = 3

    def get_default_model(self) -> str:
        """Get the default model for the configured provider.

        Returns:
            Model identifier string for the default provider.
        """
        models = {
            "ollama": f"ollama/{self.ollama_default_model}",
            "openai": self.openai_default_model,
            "anthropic": self.anthropic_default_model,
            "google": f"gemini/{self.google_default_model}",
        }
        return models[self.default_provider]

    def get_provider_params(self, model: str) -> dict[str, str]:
        """Get api_base/api_key to pass to LiteLLM for a model string.

        Args:
            model: Model identifier in LiteLLM format.

        Returns:
            Dictionary with api_base and/or api_key when configured.
        """
        params: dict[str, str] = {}
        if model.startswith(("ollama/", "ollama_chat/")):
            params["api_base"] = self.ollama_base_url
            if self.ollama_api_key:
                params["api_key"] = self.ollama_api_key.get_secret_value()
        elif model.startswith("gemini/"):
            if self.google_api_key:
                params["api_key"] = self.google_api_key.get_secret_value()
        elif model.startswith("claude"):
            if self.anthropic_api_key:
                params["api_key"] = self.anthropic_api_key.get_secret_value()
        elif self.openai_api_key:
            params["api_key"] = self.openai_api_key.get_secret_value()
        return params


class EmbeddingSettings(BaseSettings):
    """Embedding model configuration.

    Embeddings are optional: when disabled, the ranker falls back to
    lexical similarity between the utterance and short descriptions.

    Attributes:
        enabled: Whether the ranker should use embeddings at all.
        model: Model name in LiteLLM format (e.g., 'ollama/nomic-embed-text').
        api_base: Provider base URL (required for Ollama).
        api_key: Provider API key.
        batch_size: Batch size for embedding generation.
    """

    model_config = SettingsConfigDict(
        env_prefix="EMBEDDING_",
        extra="ignore",
    )

    enabled: bool = False
    model: str = "ollama/nomic-embed-text"
    api_base: str | None = None
    api_key: SecretStr | None = None
    batch_size: int = 32


class ResolverSettings(BaseSettings):
    """Intent resolution tuning.

    Attributes:
        confidence_floor: Minimum ranker score (0-100) for a capability
            to be taken without an LLM function call.
        tie_margin: Score distance under which two candidates are
            considered tied.
        top_n_tools: How many ranked capabilities are offered as tools.
        history_window: Number of recent messages passed to the oracle.
        oracle_temperature: Sampling temperature of the function-calling pass.
        oracle_max_tokens: Token cap of the function-calling pass.
        oracle_model: Optional model override for the oracle.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESOLVER_",
        extra="ignore",
    )

    confidence_floor: float = Field(default=20.0, ge=0.0, le=100.0)
    tie_margin: float = Field(default=5.0, ge=0.0)
    top_n_tools: int = Field(default=5, ge=1)
    history_window: int = Field(default=6, ge=0)
    oracle_temperature: float = 0.3
    oracle_max_tokens: int = 1000
    oracle_model: str | None = None


class RegistrySettings(BaseSettings):
    """Capability registry configuration.

    Attributes:
        seed_directory: Directory holding one YAML document per capability.
        cache_ttl_seconds: How long a loaded catalogue is considered fresh.
    """

    model_config = SettingsConfigDict(
        env_prefix="REGISTRY_",
        extra="ignore",
    )

    seed_directory: Path = DEFAULT_SEED_DIRECTORY
    cache_ttl_seconds: float = 300.0


class GenerationAPISettings(BaseSettings):
    """External generation endpoint configuration (direct_api capabilities).

    Attributes:
        base_url: Base URL the endpoint names are appended to.
        api_key: Optional bearer token.
        timeout: Request timeout in seconds.
        prompt_directory: Directory holding prompt templates.
    """

    model_config = SettingsConfigDict(
        env_prefix="GENERATION_API_",
        extra="ignore",
    )

    base_url: str = "http://localhost:5001/api"
    api_key: SecretStr | None = None
    timeout: float = 120.0
    prompt_directory: Path = DEFAULT_PROMPT_DIRECTORY


class APISettings(BaseSettings):
    """HTTP API server configuration.

    Attributes:
        host: Server bind host.
        port: Server bind port.
        cors_origins: Comma-separated allowed origins.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        llm: LLM provider settings.
        embedding: Embedding model settings.
        resolver: Intent resolution tuning.
        registry: Capability registry settings.
        generation_api: External generation endpoint settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    generation_api: GenerationAPISettings = Field(default_factory=GenerationAPISettings)
    api: APISettings = Field(default_factory=APISettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
