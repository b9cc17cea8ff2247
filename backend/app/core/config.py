"""Runtime configuration helpers.

Classes:
    Settings: Pydantic settings model capturing environment-driven defaults.

Functions:
    get_settings(): Return a cached Settings instance for dependency injection.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "ConnectU Matching API"
    database_url: str = "sqlite+aiosqlite:///./data/connectu.db"
    log_level: str = "INFO"
    openai_api_key: SecretStr | None = None
    openai_chat_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-large"
    embedding_dim: int = Field(default=1536, ge=1)
    summary_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    summary_max_tokens: int = Field(default=500, ge=16)
    summary_min_words: int = Field(default=150, ge=1)
    summary_max_words: int = Field(default=200, ge=1)
    upstream_timeout_seconds: float = Field(default=30.0, gt=0.0)
    upstream_max_attempts: int = Field(default=1, ge=1, le=10)
    qdrant_url: str | None = None
    qdrant_api_key: SecretStr | None = None
    qdrant_collection: str = "responses"
    qdrant_scroll_page_size: int = Field(default=100, ge=1, le=10000)
    processing_concurrency: int = Field(default=4, ge=1, le=64)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
