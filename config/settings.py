"""Application settings loaded from environment variables.

Uses pydantic-settings for validation and type coercion. App-specific
settings use the ``NITISETU_`` prefix; Google credentials and GCP
settings use their canonical environment variable names via
``validation_alias``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the Niti-Setu assistant.

    Environment variables are loaded from a ``.env`` file when present.
    App-specific keys are prefixed with ``NITISETU_``; Google / GCP keys
    use their standard names (configured via ``validation_alias``).
    """

    model_config = SettingsConfigDict(
        env_prefix="NITISETU_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ── App ────────────────────────────────────────────────────────────
    env: Literal["development", "production"] = "development"

    # ── Gemini credentials ─────────────────────────────────────────────
    google_api_key: str = Field(default="", validation_alias="GOOGLE_API_KEY")
    use_vertexai: bool = False
    gcp_project_id: str = Field(default="", validation_alias="GCP_PROJECT_ID")
    gcp_region: str = Field(default="asia-south1", validation_alias="GCP_REGION")

    # ── Gemini models ──────────────────────────────────────────────────
    extraction_model: str = "gemini-3-flash-preview"
    chat_model: str = "gemini-3-flash-preview"
    evaluation_model: str = "gemini-3-pro-preview"
    evaluation_thinking_budget: int = Field(default=4000, ge=0)
    tts_model: str = "gemini-2.5-flash-preview-tts"
    tts_voice: str = "Kore"
    tts_sample_rate: int = 24_000

    # ── Pacing / retry ─────────────────────────────────────────────────
    min_request_gap_seconds: float = Field(default=2.0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    backoff_step_seconds: float = Field(default=4.0, ge=0)
    chat_pacing_delay_seconds: float = Field(default=2.0, ge=0)
    auto_analysis_delay_seconds: float = Field(default=2.0, ge=0)

    # ── API ────────────────────────────────────────────────────────────
    api_host: str = Field(default="127.0.0.1", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    # ── Logging ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="console", validation_alias="LOG_FORMAT")

    # ── Derived Properties ─────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    @property
    def has_gemini_credentials(self) -> bool:
        if self.use_vertexai:
            return bool(self.gcp_project_id)
        return bool(self.google_api_key)


# Module-level singleton; import ``settings`` everywhere.
settings = Settings()
