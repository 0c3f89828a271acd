"""Configuration module for the chat runtime."""

from .models import (
    MODEL_CONFIGS,
    MODEL_ALIASES,
    FALLBACK_CHAIN,
    DEFAULT_MODEL,
    DEFAULT_FLASH_MODEL,
    PREVIEW_MODEL,
    get_fallback_model,
    is_gemini2_model,
    is_preview_model,
    resolve_model,
)
from .settings import ChatSettings

# Import all constants
from .constants import *

__all__ = [
    "MODEL_CONFIGS",
    "MODEL_ALIASES",
    "FALLBACK_CHAIN",
    "DEFAULT_MODEL",
    "DEFAULT_FLASH_MODEL",
    "PREVIEW_MODEL",
    "ChatSettings",
    "get_fallback_model",
    "is_gemini2_model",
    "is_preview_model",
    "resolve_model",
]
