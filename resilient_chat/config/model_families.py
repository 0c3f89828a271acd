# Model family base configurations
from typing import Dict, Any

# Base generation settings shared by every model in a family
MODEL_FAMILIES = {
    "gemini-2.5": {
        "tier": "stable",
        "temperature": 1.0,
        "top_p": 0.95,
        "enabled": True,
        "thinking": True,
    },
    "gemini-2.0": {
        "tier": "stable",
        "temperature": 1.0,
        "top_p": 0.95,
        "enabled": True,
        "thinking": False,
    },
    "gemini-3": {
        "tier": "preview",
        "temperature": 1.0,
        "top_p": 0.95,
        "enabled": True,
        "thinking": True,
    },
}


def create_model_config(family: str, variant: str, overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Create a model configuration by combining family defaults with variant overrides."""
    if family not in MODEL_FAMILIES:
        raise ValueError(f"Unknown model family: {family}")

    base = MODEL_FAMILIES[family].copy()
    base["family"] = family
    base.update(overrides)

    # Ensure required fields
    if "name" not in base:
        base["name"] = variant
    if "display_name" not in base:
        base["display_name"] = variant.replace("-", " ").title()
    if "model_id" not in base:
        base["model_id"] = variant

    return base
