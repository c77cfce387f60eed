"""
Configuration settings for dbbench.

Uses Pydantic Settings to load environment variables for the database
connection, logging, and benchmark defaults. CLI flags override individual
fields through `Settings.model_copy(update=...)`.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dbbench.domain.models import Backend


class Settings(BaseSettings):
    # Database
    db_backend: Backend = Field(Backend.POSTGRES, alias="DB_BACKEND")
    db_dsn: Optional[str] = Field(None, alias="DB_DSN")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("dbbench", alias="DB_NAME")
    sqlite_path: str = Field("dbbench.sqlite", alias="SQLITE_PATH")
    db_pool_max_size: int = Field(32, alias="DB_POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Single-case defaults
    benchmark_workers: int = Field(1, alias="BENCHMARK_WORKERS")
    benchmark_loops: int = Field(0, alias="BENCHMARK_LOOPS")
    benchmark_duration_seconds: float = Field(5.0, alias="BENCHMARK_DURATION_SECONDS")
    benchmark_batch: int = Field(0, alias="BENCHMARK_BATCH")
    random_seed: int = Field(1, alias="RANDOM_SEED")
    custom_query: str = Field("", alias="CUSTOM_QUERY")
    min_blob_size: int = Field(1024, alias="MIN_BLOB_SIZE")
    max_blob_size: int = Field(102_400, alias="MAX_BLOB_SIZE")

    # Full suite
    suite_chunk: int = Field(500_000, alias="SUITE_CHUNK")
    suite_limit: int = Field(2_000_000, alias="SUITE_LIMIT")
    suite_phase_seconds: float = Field(10.0, alias="SUITE_PHASE_SECONDS")

    # Results
    results_dir: str = Field("results", alias="RESULTS_DIR")
    persist_results: bool = Field(False, alias="PERSIST_RESULTS")

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
