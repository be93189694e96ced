"""
Application Configuration

Environment-driven settings for the reasoning backends, the fallback
cascade and logging. Values are read from the process environment and an
optional `.env` file.
"""
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "Clinical Decision Assistant"
    app_version: str = "1.0.0"
    debug: bool = False

    # Primary backend (Grok, OpenAI-compatible)
    grok_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("grok_api_key", "xai_api_key"),
    )
    grok_base_url: str = "https://api.x.ai/v1"
    grok_models: List[str] = ["grok-beta"]
    grok_temperature: float = 0.3
    grok_max_tokens: int = 1000

    # Secondary backend (Gemini via LangChain)
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "google_api_key"),
    )
    gemini_models: List[str] = [
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
        "gemini-2.0-flash",
        "gemini-1.5-flash",
    ]
    gemini_temperature: float = 0.3
    gemini_max_output_tokens: int = 2048

    # Cascade
    backend_order: List[str] = ["grok", "gemini"]
    candidate_timeout_seconds: float = 15.0
    ai_default_confidence: int = 85
    rescue_confidence: int = 50

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


settings = Settings()
