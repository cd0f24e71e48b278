"""
Application configuration loaded from environment variables / .env.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings. Every field can be overridden by an env var of the same name."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ───────────────────────────────────────────────────────
    app_name: str = Field(default="PharmaGuard", description="Application name")
    app_version: str = Field(default="1.0.0", description="API version")
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")
    debug: bool = Field(default=False, description="Debug mode / auto-reload")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    cors_origins: str = Field(default="*", description="Comma-separated CORS origins")

    # ── Uploads ───────────────────────────────────────────────────────────
    max_vcf_size_mb: int = Field(default=5, ge=1, description="Maximum VCF upload size")

    # ── Knowledge base ────────────────────────────────────────────────────
    data_dir: Optional[Path] = Field(
        default=None,
        validation_alias="PHARMAGUARD_DATA_DIR",
        description="Directory holding the JSON knowledge-base tables (defaults to the bundled data)",
    )

    # ── Explanation generator (OpenAI-compatible chat completions) ───────
    llm_provider: str = Field(default="openai", description="Label reported by /health")
    llm_api_key: Optional[str] = Field(default=None, description="API key; unset disables LLM calls")
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-3.5-turbo"
    llm_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def max_vcf_size_bytes(self) -> int:
        return self.max_vcf_size_mb * 1024 * 1024

    @property
    def llm_enabled(self) -> bool:
        return bool(self.llm_api_key)

    @property
    def active_llm_model(self) -> str:
        """Model name actually used, or 'static-fallback' when no key is configured."""
        return self.llm_model if self.llm_enabled else "static-fallback"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
