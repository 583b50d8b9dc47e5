"""
Configuration management using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # CACHE CONFIGURATION
    # =========================================================================
    cache_backend: str = Field(default="sqlite", description="Key/value backend: sqlite or memory")
    cache_db_path: str = Field(default="docvault_cache.db")
    cache_version: str = Field(default="v1.0", description="Version tag expected on cache reads")
    cache_ttl_seconds: float = Field(default=30 * 24 * 60 * 60, description="Entry lifetime (30 days)")
    cache_sweep_max_age_seconds: float = Field(default=7 * 24 * 60 * 60)
    cache_large_entry_bytes: int = Field(default=5 * 1024 * 1024, description="Warn above this size")

    # =========================================================================
    # INGESTION CONFIGURATION
    # =========================================================================
    document_base_prefix: str = Field(default="pdf/")
    inter_document_pause_seconds: float = Field(default=0.05)
    use_cache_on_ingest: bool = Field(default=True)
    chunk_size: int = Field(default=2000)
    chunk_overlap: int = Field(default=200)

    # =========================================================================
    # FETCH CONFIGURATION
    # =========================================================================
    fetch_timeout_seconds: float = Field(default=30.0)
    fetch_max_retries: int = Field(default=3)

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000)
    debug: bool = Field(default=False)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses LRU cache to avoid re-reading .env file on every call.
    """
    return Settings()


# Convenience export
settings = get_settings()
