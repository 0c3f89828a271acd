# Model catalog using family inheritance
from typing import Optional

from .model_families import create_model_config

DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_FLASH_MODEL = "gemini-2.5-flash"
DEFAULT_FLASH_LITE_MODEL = "gemini-2.5-flash-lite"
PREVIEW_MODEL = "gemini-3-pro-preview"
PREVIEW_FLASH_MODEL = "gemini-3-flash-preview"

MODEL_CONFIGS = {
    # Gemini 2.5 Family
    DEFAULT_MODEL: create_model_config("gemini-2.5", DEFAULT_MODEL, {
        "display_name": "Gemini 2.5 Pro",
        "description": "Most capable stable model for complex coding tasks",
        "max_output_tokens": 65536,
        "context_length": 1048576,
    }),

    DEFAULT_FLASH_MODEL: create_model_config("gemini-2.5", DEFAULT_FLASH_MODEL, {
        "display_name": "Gemini 2.5 Flash",
        "description": "Fast model used as the default quota fallback",
        "max_output_tokens": 65536,
        "context_length": 1048576,
    }),

    DEFAULT_FLASH_LITE_MODEL: create_model_config("gemini-2.5", DEFAULT_FLASH_LITE_MODEL, {
        "display_name": "Gemini 2.5 Flash Lite",
        "description": "Lowest latency model, last resort in the fallback chain",
        "max_output_tokens": 65536,
    }),

    # Gemini 2.0 Family
    "gemini-2.0-flash": create_model_config("gemini-2.0", "gemini-2.0-flash", {
        "display_name": "Gemini 2.0 Flash",
        "description": "Previous generation flash model",
        "max_output_tokens": 8192,
    }),

    # Gemini 3 Family (preview tier)
    PREVIEW_MODEL: create_model_config("gemini-3", PREVIEW_MODEL, {
        "display_name": "Gemini 3 Pro (Preview)",
        "description": "Preview tier; requires thought signatures on function calls",
        "max_output_tokens": 65536,
    }),

    PREVIEW_FLASH_MODEL: create_model_config("gemini-3", PREVIEW_FLASH_MODEL, {
        "display_name": "Gemini 3 Flash (Preview)",
        "description": "Preview tier flash model",
        "max_output_tokens": 65536,
    }),
}

# Logical names accepted anywhere a model id is expected
MODEL_ALIASES = {
    "auto": DEFAULT_MODEL,
    "pro": DEFAULT_MODEL,
    "flash": DEFAULT_FLASH_MODEL,
    "flash-lite": DEFAULT_FLASH_LITE_MODEL,
    "preview": PREVIEW_MODEL,
    "preview-flash": PREVIEW_FLASH_MODEL,
}

# Where to go when a model runs out of quota
FALLBACK_CHAIN = {
    PREVIEW_MODEL: PREVIEW_FLASH_MODEL,
    PREVIEW_FLASH_MODEL: DEFAULT_FLASH_MODEL,
    DEFAULT_MODEL: DEFAULT_FLASH_MODEL,
    DEFAULT_FLASH_MODEL: DEFAULT_FLASH_LITE_MODEL,
}


def resolve_model(model: str) -> str:
    """Map an alias to a concrete model id; unknown names pass through."""
    return MODEL_ALIASES.get(model, model)


def is_preview_model(model: str) -> bool:
    config = MODEL_CONFIGS.get(resolve_model(model))
    if config is not None:
        return config.get("tier") == "preview"
    return "preview" in model


def is_gemini2_model(model: str) -> bool:
    return resolve_model(model).startswith("gemini-2")


def get_fallback_model(model: str) -> Optional[str]:
    """Next model in the fallback chain, or None at the end of it."""
    return FALLBACK_CHAIN.get(resolve_model(model))
