"""
Pipeline configuration via environment variables (12-factor).
Pydantic BaseSettings validates and coerces all values at startup.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Content reading tier
    # ------------------------------------------------------------------
    reading_chunk_size:      int = Field(1024 * 1024, gt=0)   # chars per ContentChunk
    reading_max_concurrency: int = Field(100, gt=0)           # files in flight per batch

    # Strategy I/O knobs
    ocr_timeout_seconds:   int = Field(120, gt=0)
    streaming_block_size:  int = Field(64 * 1024, gt=0)
    archive_max_members:   int = Field(1000, gt=0)

    # ------------------------------------------------------------------
    # Agent pools (shared by both tiers)
    # ------------------------------------------------------------------
    agent_vector_dimensions: int   = Field(1024, gt=0)
    agent_ema_weight:        float = Field(0.1, gt=0.0, le=1.0)

    agent_initial_success_rate:       float = Field(0.95, ge=0.0, le=1.0)
    agent_initial_quality_score:      float = Field(0.9, ge=0.0, le=1.0)
    agent_initial_processing_time_ms: float = Field(2000.0, ge=0.0)

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------
    app_env:   str  = "development"   # development | staging | production
    debug:     bool = False
    log_level: str  = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
