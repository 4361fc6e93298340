from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class ConfigurationError(RuntimeError):
    """Raised when a required credential or setting is missing."""


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # Embeddings
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_max_chars: int = 8000
    embedding_batch_size: int = 100
    embedding_batch_delay: float = 0.1

    # Insight extraction
    llm_model: str = "claude-sonnet-4-20250514"
    extraction_temperature: float = 0.3
    extraction_max_tokens: int = 4096
    extraction_concurrency: int = 3
    extraction_window_delay: float = 0.5

    # Transient-error retries (delays: base, base*2, ...)
    max_retries: int = 2
    retry_base_delay: float = 2.0

    # Storage
    export_dir: Path = Path("./export")
    index_dir_name: str = "vectors.chroma"
    store_batch_size: int = 100

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]
