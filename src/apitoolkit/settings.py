"""
apitoolkit.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the SDK.
- Hide secrets from repr/logging (API key).
- Offer a cached settings instance for applications that configure via env only.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ROOT_URL = "https://app.apitoolkit.io"


class Settings(BaseSettings):
    """
    SDK configuration.
    - Read once at startup, immutable afterwards.
    - Redaction lists apply to every captured exchange.
    """

    model_config = SettingsConfigDict(env_prefix="APITOOLKIT_", case_sensitive=False, frozen=True)

    # Diagnostics
    debug: bool = False
    verbose_debug: bool = False
    service_name: str = "apitoolkit"
    log_level: str = "INFO"

    # Remote endpoint
    root_url: str | None = None
    api_key: str = Field(default="", repr=False)
    metadata_timeout_seconds: float = 10.0

    # Redaction
    redact_headers: list[str] = Field(default_factory=list)
    redact_request_body: list[str] = Field(default_factory=list)
    redact_response_body: list[str] = Field(default_factory=list)

    # "await" holds the request until the publish call returns; "background" detaches it.
    publish_mode: Literal["await", "background"] = "await"

    @property
    def base_url(self) -> str:
        return (self.root_url or DEFAULT_ROOT_URL).rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars on every lookup.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# List-valued fields accept JSON in env vars, e.g.
# APITOOLKIT_REDACT_HEADERS='["authorization", "cookie"]'.
