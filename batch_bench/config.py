"""
Configuration settings for the batch insert benchmark.

Uses Pydantic Settings to load environment variables for database connections,
logging, and workload defaults (post count, comments per post, batch size).
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("batch_bench", alias="DB_NAME")
    sqlite_path: str = Field(":memory:", alias="SQLITE_PATH")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Workload defaults
    benchmark_parent_count: int = Field(1000, alias="BENCHMARK_PARENT_COUNT")
    benchmark_children_per_parent: int = Field(5, alias="BENCHMARK_CHILDREN_PER_PARENT")
    benchmark_batch_size: int = Field(50, alias="BENCHMARK_BATCH_SIZE")
    benchmark_backend: str = Field("postgresql", alias="BENCHMARK_BACKEND")
    benchmark_mode: str = Field("batched", alias="BENCHMARK_MODE")
    benchmark_flush_strategy: str = Field("modulo", alias="BENCHMARK_FLUSH_STRATEGY")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
