"""
Telephony provider configuration.

Voice and record-step options are passed straight through to the platform;
the call-flow engine never interprets them.
"""

from urllib.parse import urlencode

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from voicesurvey.config import Settings
from voicesurvey.flow.engine import FlowOptions


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Public base URL of this service; empty means derive it from the request.
    webhook_base_url: str = Field(default="")
    callback_path: str = Field(default="/callStep")

    # Say / record options
    voice: str = Field(default="male")
    language: str = Field(default="en-US")
    finish_on_key: str = Field(default="any")
    record_timeout_seconds: int = Field(default=10, ge=1, le=120)

    # Recording downloads
    recordings_base_url: str = Field(default="https://voice.messagebird.com")
    access_key: str = Field(default="", description="Provider API access key")
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    def get_webhook_url(self, path: str | None = None, base_url: str | None = None) -> str:
        base = (self.webhook_base_url or base_url or "").rstrip("/")
        return f"{base}{path or self.callback_path}"

    def get_callback_url(self, call_id: str, base_url: str | None = None) -> str:
        """URL a ``record`` step reports back to, bound to ``call_id``."""
        params = {"callID": call_id}
        return f"{self.get_webhook_url(base_url=base_url)}?{urlencode(params)}"

    def flow_options(self, settings: Settings) -> FlowOptions:
        return FlowOptions(
            title=settings.flow_title,
            voice=self.voice,
            language=self.language,
            finish_on_key=self.finish_on_key,
            record_timeout_seconds=self.record_timeout_seconds,
            malformed_payload_policy=settings.malformed_payload_policy,
        )


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()
