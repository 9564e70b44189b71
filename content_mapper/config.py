"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from content_mapper.analysis.models import ProviderType
from content_mapper.analysis.providers import ProviderConfig

DEFAULT_MODEL = "gemini-2.5-flash"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    # Environment
    env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    # Model provider
    model_provider: ProviderType = ProviderType.GEMINI
    gemini_api_key: str | None = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY")
    )
    openrouter_api_key: str | None = None
    analysis_model: str = DEFAULT_MODEL
    request_timeout_seconds: float = 120.0

    # Sampling temperatures per call type
    analysis_temperature: float = 0.7
    insights_temperature: float = 0.7
    refine_temperature: float = 0.8

    # Persistence
    storage_path: Path = Field(default_factory=lambda: Path.home() / ".content-mapper" / "storage.json")
    storage_namespace: str = "vcm_"

    # Exports
    export_dir: Path = Path(".")

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"

    @property
    def api_key(self) -> str:
        """Credential for the selected provider."""
        if self.model_provider == ProviderType.OPENROUTER:
            return self.openrouter_api_key or ""
        if self.model_provider == ProviderType.GEMINI:
            return self.gemini_api_key or ""
        return ""

    @property
    def model_enabled(self) -> bool:
        """Check if the selected provider can be called."""
        return self.model_provider == ProviderType.MOCK or bool(self.api_key)

    def provider_config(self) -> ProviderConfig:
        """Build the explicit provider configuration."""
        return ProviderConfig(
            api_key=self.api_key,
            timeout_seconds=self.request_timeout_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
