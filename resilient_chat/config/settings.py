"""
Environment-driven settings for the chat runtime.

Values are read from the process environment after loading a local
``.env`` file, mirroring how the provider adapters pick up their keys.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .constants import (
    API_KEY_ENV_VAR,
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_MS,
    ENV_PREFIX,
)
from .models import DEFAULT_MODEL

_TRUTHY = {"1", "true", "yes", "on"}


class ChatSettings(BaseModel):
    """Runtime settings for a chat session and its retry engine."""

    api_key: Optional[str] = Field(None, description="API key for the model endpoint")
    base_url: str = Field(default=DEFAULT_GEMINI_BASE_URL, description="REST base URL")
    model: str = Field(default=DEFAULT_MODEL, description="Model id or alias")
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1, description="Network retry budget")
    initial_delay_ms: int = Field(default=DEFAULT_INITIAL_DELAY_MS, ge=0)
    max_delay_ms: int = Field(default=DEFAULT_MAX_DELAY_MS, ge=0)
    retry_fetch_errors: bool = Field(
        default=False,
        description="Also retry generic 'fetch failed' transport errors",
    )
    auth_type: Optional[str] = Field(None, description="Auth method reported to fallback handlers")
    log_level: str = Field(default="WARNING")

    @field_validator("log_level")
    def validate_log_level(cls, v):
        return v.upper()

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "ChatSettings":
        """Build settings from ``GEMINI_API_KEY`` and ``RESILIENT_CHAT_*`` variables."""
        if load_env_file:
            load_dotenv()

        def env(name: str) -> Optional[str]:
            return os.getenv(f"{ENV_PREFIX}{name}")

        values = {"api_key": os.getenv(API_KEY_ENV_VAR)}
        if env("BASE_URL"):
            values["base_url"] = env("BASE_URL")
        if env("MODEL"):
            values["model"] = env("MODEL")
        for key in ("MAX_ATTEMPTS", "INITIAL_DELAY_MS", "MAX_DELAY_MS"):
            raw = env(key)
            if raw:
                values[key.lower()] = int(raw)
        if env("RETRY_FETCH_ERRORS") is not None:
            values["retry_fetch_errors"] = env("RETRY_FETCH_ERRORS").strip().lower() in _TRUTHY
        if env("AUTH_TYPE"):
            values["auth_type"] = env("AUTH_TYPE")
        if env("LOG_LEVEL"):
            values["log_level"] = env("LOG_LEVEL")
        return cls(**values)
