"""Application configuration."""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

from target_triage.constants import DEFAULT_CACHE_DIR, PUBMED_REQUESTS_PER_SECOND


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///target_triage.db"

    # API Keys
    ncbi_api_key: str = ""

    # Triage
    gene_timeout_seconds: float = 300.0
    pubmed_requests_per_second: float = PUBMED_REQUESTS_PER_SECOND

    # Cache
    cache_enabled: bool = True
    cache_dir: Path = DEFAULT_CACHE_DIR

    # App Settings
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from settings. Safe to call more than once."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
