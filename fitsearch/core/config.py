"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    database_url: str
    typesense_host: str
    typesense_port: int = 443
    typesense_protocol: str = "https"
    typesense_admin_api_key: Optional[str] = None
    typesense_search_api_key: Optional[str] = None
    collection_name: str = "fitness_centers"
    search_timeout: float = 2.0
    index_timeout: float = 5.0
    reindex_batch_size: int = 100
    worker_port: int = 9000
    webhook_secret: Optional[str] = None

    @property
    def typesense_url(self) -> str:
        return f"{self.typesense_protocol}://{self.typesense_host}:{self.typesense_port}"


def require_admin_api_key(settings: Settings) -> str:
    """Return the admin key or fail; every write-path operation needs it."""
    if not settings.typesense_host:
        raise ConfigError("TYPESENSE_HOST must be set for indexing operations.")
    if not settings.typesense_admin_api_key:
        raise ConfigError("TYPESENSE_ADMIN_API_KEY is required for admin operations.")
    return settings.typesense_admin_api_key


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name) or str(default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}.") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    database_url = os.getenv("DATABASE_URL", "")
    typesense_host = os.getenv("TYPESENSE_HOST", "")
    typesense_port = _int_env("TYPESENSE_PORT", 443)
    typesense_protocol = os.getenv("TYPESENSE_PROTOCOL", "https").lower()
    admin_key = os.getenv("TYPESENSE_ADMIN_API_KEY") or None
    search_key = os.getenv("TYPESENSE_SEARCH_API_KEY") or admin_key
    collection_name = os.getenv("TYPESENSE_COLLECTION", "fitness_centers")
    search_timeout = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "2"))
    index_timeout = float(os.getenv("INDEX_TIMEOUT_SECONDS", "5"))
    batch_size = _int_env("REINDEX_BATCH_SIZE", 100)
    worker_port = _int_env("WORKER_PORT", 9000)
    webhook_secret = os.getenv("WEBHOOK_SECRET") or None

    if not database_url:
        logger.warning("DATABASE_URL is not set; listing store reads will fail.")
    if not typesense_host:
        logger.warning("TYPESENSE_HOST is not configured; search requests will fail.")
    if not admin_key:
        logger.warning("TYPESENSE_ADMIN_API_KEY is not configured; indexing is disabled.")
    if batch_size <= 0:
        raise ConfigError("REINDEX_BATCH_SIZE must be positive.")

    return Settings(
        database_url=database_url,
        typesense_host=typesense_host,
        typesense_port=typesense_port,
        typesense_protocol=typesense_protocol,
        typesense_admin_api_key=admin_key,
        typesense_search_api_key=search_key,
        collection_name=collection_name,
        search_timeout=search_timeout,
        index_timeout=index_timeout,
        reindex_batch_size=batch_size,
        worker_port=worker_port,
        webhook_secret=webhook_secret,
    )
