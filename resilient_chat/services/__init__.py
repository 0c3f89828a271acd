from .model_config import ModelConfigKey, ModelConfigService, ResolvedModelConfig

__all__ = [
    "ModelConfigKey",
    "ModelConfigService",
    "ResolvedModelConfig",
]
