from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config.models import MODEL_CONFIGS, is_preview_model, resolve_model
from ..models.generation import GenerateContentConfig


class ModelConfigKey(BaseModel):
    """Identifies which generation config a request should use."""

    model_config = ConfigDict(protected_namespaces=(), frozen=True)

    model: str
    is_retry: bool = False

    def with_model(self, model: str) -> "ModelConfigKey":
        return self.model_copy(update={"model": model})

    def as_retry(self) -> "ModelConfigKey":
        return self.model_copy(update={"is_retry": True})


class ResolvedModelConfig(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model: str
    generate_content_config: GenerateContentConfig = Field(default_factory=GenerateContentConfig)


class ModelConfigService:
    """Resolves a ``ModelConfigKey`` into a concrete model id and generation config.

    Catalog defaults come from ``MODEL_CONFIGS``; ``overrides`` apply to
    every model and ``retry_overrides`` only to keys flagged ``is_retry``.
    """

    def __init__(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        retry_overrides: Optional[Dict[str, Any]] = None,
    ):
        self.overrides = dict(overrides or {})
        self.retry_overrides = dict(retry_overrides or {})

    def get_resolved_config(self, key: ModelConfigKey) -> ResolvedModelConfig:
        model = resolve_model(key.model)
        config = GenerateContentConfig(**self._catalog_defaults(model))
        config = config.merged(self.overrides)
        if key.is_retry:
            config = config.merged(self.retry_overrides)
        return ResolvedModelConfig(model=model, generate_content_config=config)

    @staticmethod
    def _catalog_defaults(model: str) -> Dict[str, Any]:
        entry = MODEL_CONFIGS.get(model)
        if entry is None:
            return {}
        defaults: Dict[str, Any] = {
            "temperature": entry.get("temperature"),
            "top_p": entry.get("top_p"),
        }
        if entry.get("thinking"):
            defaults["thinking_config"] = {"includeThoughts": True}
            if is_preview_model(model):
                defaults["thinking_config"]["thinkingLevel"] = "high"
        return {k: v for k, v in defaults.items() if v is not None}
