"""
Application Settings for CLEP Finder

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The language model and the geocoder are optional collaborators:
    without GOOGLE_API_KEY the assistant endpoints answer with a
    "not configured" message instead of failing.
    """

    # Supabase Configuration (used to derive the Postgres URL)
    supabase_url: Optional[str] = None
    supabase_password: Optional[str] = None

    # Google AI Configuration (accepts GOOGLE_API_KEY or GEMINI_API_KEY)
    google_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.2
    gemini_max_output_tokens: int = 1024

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Institution catalog cache (seconds before a reload from the store)
    institution_cache_ttl_seconds: int = 300

    # Maximum institutions listed in the assistant's context digest
    assistant_context_limit: int = 10

    # Geocoding (OpenStreetMap Nominatim)
    geocoding_base_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_user_agent: str = "CLEPFinder/1.0"
    geocoding_timeout_seconds: float = 10.0
    geocoding_cache_size: int = 1024

    # Admin API key for maintenance endpoints
    admin_api_key: Optional[str] = None

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def normalize_api_keys(self) -> "Settings":
        """Accept GEMINI_API_KEY as an alias for GOOGLE_API_KEY."""
        if not self.google_api_key and self.gemini_api_key:
            self.google_api_key = self.gemini_api_key

        if self.institution_cache_ttl_seconds < 0:
            raise ValueError("INSTITUTION_CACHE_TTL_SECONDS must be >= 0")

        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    @property
    def llm_configured(self) -> bool:
        """Whether a language model API key is available."""
        return bool(self.google_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
