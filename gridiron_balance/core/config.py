"""
Settings and environment management for the Gridiron Balance pipeline.

Configuration is loaded with pydantic-settings from environment variables
(prefixed with ``BALANCE_``) and an optional ``.env`` file. The defaults are the
production run parameters: 10,000 samples per table, seed 12345, four tables
analyzed per batch and a 30 second overall timeout.

Environment Variables:
- BALANCE_SAMPLE_SIZE: Samples per table (default: 10000)
- BALANCE_SEED: Seed for the shared deterministic RNG (default: 12345)
- BALANCE_MAX_CONCURRENCY: Tables analyzed per batch (default: 4)
- BALANCE_ENABLE_PROGRESS_TRACKING: Emit progress callbacks (default: true)
- BALANCE_TIMEOUT_MS: Overall run timeout in milliseconds (default: 30000)
- BALANCE_LOG_LEVEL: Root logging level for the CLI and API (default: INFO)

Usage:
    from gridiron_balance.core.config import get_settings

    settings = get_settings()
    sample_size = settings.sample_size
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        sample_size: Number of play outcomes sampled per table.
        seed: Seed for the RNG shared across one analysis run.
        max_concurrency: Maximum number of tables analyzed per batch.
        enable_progress_tracking: Whether batch progress is reported.
        timeout_ms: Overall analysis timeout in milliseconds.
        analysis_version: Version string stamped into report metadata.
        log_level: Logging level name used by the entry points.
        cors_origins: Origins allowed by the API's CORS middleware.
    """

    model_config = SettingsConfigDict(
        env_prefix='BALANCE_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Simulation Defaults
    # =========================================================================

    sample_size: int = 10000
    seed: int = 12345
    max_concurrency: int = 4
    enable_progress_tracking: bool = True
    timeout_ms: int = 30000

    # =========================================================================
    # Reporting and Service
    # =========================================================================

    analysis_version: str = '1.0.0'
    log_level: str = 'INFO'
    cors_origins: List[str] = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ]


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
