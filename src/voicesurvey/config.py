"""
Application configuration with environment-driven settings.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MalformedPayloadPolicy = Literal["continue", "reject"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "voicesurvey"
    app_env: Literal["dev", "qa", "uat", "prod"] = "dev"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./voicesurvey.db",
        description="Async SQLAlchemy connection URL for the participant store",
    )
    database_auto_create: bool = Field(
        default=True,
        description="Create participant tables at application start-up.",
    )

    # Survey
    questions_file: str = Field(
        default="questions.json",
        description="Path to the JSON file holding the ordered question list",
    )
    malformed_payload_policy: MalformedPayloadPolicy = Field(
        default="continue",
        description=(
            "continue: skip the answer and still return the next step. "
            "reject: answer 400 so the platform can retry the callback."
        ),
    )
    flow_title: str = Field(default="Survey Call Step")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return str(v).strip().upper() or "INFO"


@lru_cache
def _get_settings_cached() -> Settings:
    return Settings()


def get_settings() -> Settings:
    """Get settings, cached outside of pytest runs."""
    # Tests monkeypatch the environment between cases.
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return Settings()
    return _get_settings_cached()
