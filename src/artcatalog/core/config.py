"""Configuration management for the Art Catalog engine.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the ARTCATALOG_ prefix,
allowing scoring and caching behaviour to be tuned without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (ARTCATALOG_* prefix)
2. .env file in the project root
3. Default values defined in CatalogConfig

Example .env file:
    ARTCATALOG_CATALOG_PATH=data/catalog.json
    ARTCATALOG_POPULAR_THRESHOLD=70
    ARTCATALOG_RECOMMEND_CACHE_TTL_MS=300000
    ARTCATALOG_LOG_LEVEL=DEBUG

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Services built with ``CatalogService.from_config()`` read from it unless a
custom instance is passed.

Usage Example
-------------
    from artcatalog.core.config import config

    print(config.popular_threshold)
    print(config.catalog_path)

Scoring Constraints
-------------------
- jitter_max MUST stay strictly below 1.0 so that jitter never overturns a
  one-point structural difference between two candidates
- popular_threshold is on the same 0-100 scale as entry popularity
"""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Bundled sample catalog, shipped as package data.
DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "catalog.json"


class CatalogConfig(BaseSettings):
    """Main configuration for the Art Catalog engine.

    Attributes
    ----------
    Catalog:
        catalog_path : Path
            JSON file read by the catalog loader
        popular_threshold : float
            Popularity (0-100) at or above which an entry counts as popular

    Scoring:
        jitter_max : float
            Upper bound (exclusive) of the tie-breaking jitter, in [0, 1)
        default_recommend_limit : int
            Limit used by callers that do not pass one explicitly

    Caching:
        recommend_cache_ttl_ms : int
            TTL for cached recommendation lists
        trending_cache_ttl_ms : int
            TTL for cached trending lists
        search_cache_ttl_ms : int
            TTL for cached search results
        cache_lock_stripes : int
            Number of lock stripes guarding cache writes

    Logging:
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Level applied by configure_logging()

    Examples
    --------
        >>> custom_config = CatalogConfig(popular_threshold=80, jitter_max=0.0)
        >>> custom_config.popular_threshold
        80.0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ARTCATALOG_",
        case_sensitive=False,
    )

    # Catalog settings
    catalog_path: Path = Field(
        default=DEFAULT_CATALOG_PATH,
        description="JSON catalog file read at load time",
    )
    popular_threshold: float = Field(
        default=70.0,
        description="Popularity at or above which an entry is considered popular",
        ge=0,
        le=100,
    )

    # Scoring settings
    jitter_max: float = Field(
        default=0.5,
        description="Exclusive upper bound of the recommendation jitter (must be < 1)",
        ge=0,
        lt=1,
    )
    default_recommend_limit: int = Field(default=6, ge=1, le=100)

    # Cache settings
    recommend_cache_ttl_ms: int = Field(
        default=300_000,
        description="TTL for cached recommendations (5 minutes)",
        gt=0,
    )
    trending_cache_ttl_ms: int = Field(default=60_000, gt=0)
    search_cache_ttl_ms: int = Field(default=60_000, gt=0)
    cache_lock_stripes: int = Field(
        default=16,
        description="Number of lock stripes serialising cache writes",
        ge=1,
        le=1024,
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level applied by configure_logging()",
    )


def configure_logging(level: str | None = None) -> None:
    """Apply a basic logging configuration.

    Args:
        level: Log level name. Defaults to ``config.log_level``.
    """
    logging.basicConfig(
        level=getattr(logging, (level or config.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Global configuration instance
# Loads values from environment variables (ARTCATALOG_* prefix) and .env file.
config = CatalogConfig()
