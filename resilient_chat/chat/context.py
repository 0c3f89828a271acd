"""
Runtime collaborators shared by a chat session.

``ChatContext`` is the one object a session needs besides its history: the
content generator, config resolution, hooks, recorder, negotiation handlers,
the active model and the retry budget.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Union

from ..config.models import DEFAULT_MODEL, resolve_model
from ..config.settings import ChatSettings
from ..config.constants import DEFAULT_INITIAL_DELAY_MS, DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_DELAY_MS
from ..observability.metrics import RetryMetrics
from ..providers.base import ContentGenerator
from ..recording.base import ChatRecorder, NullRecorder
from ..services.model_config import ModelConfigService
from .hooks import HookSystem

logger = logging.getLogger(__name__)

# (failed_model, fallback_model, error) -> intent
FallbackHandler = Callable[[str, str, Any], Union[str, Awaitable[str]]]
# (validation_link, validation_description, learn_more_url) -> intent
ValidationHandler = Callable[[Optional[str], Optional[str], Optional[str]], Union[str, Awaitable[str]]]


class ChatContext:
    def __init__(
        self,
        content_generator: ContentGenerator,
        model: str = DEFAULT_MODEL,
        model_config_service: Optional[ModelConfigService] = None,
        hooks: Optional[HookSystem] = None,
        recorder: Optional[ChatRecorder] = None,
        fallback_handler: Optional[FallbackHandler] = None,
        validation_handler: Optional[ValidationHandler] = None,
        auth_type: Optional[str] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_delay_ms: float = DEFAULT_INITIAL_DELAY_MS,
        max_delay_ms: float = DEFAULT_MAX_DELAY_MS,
        retry_fetch_errors: bool = False,
        metrics: Optional[RetryMetrics] = None,
        on_model_change: Optional[Callable[[str], None]] = None,
    ):
        self.content_generator = content_generator
        self.model = resolve_model(model)
        self.model_config_service = model_config_service or ModelConfigService()
        self.hooks = hooks
        self.recorder = recorder or NullRecorder()
        self.fallback_handler = fallback_handler
        self.validation_handler = validation_handler
        self.auth_type = auth_type
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.max_delay_ms = max_delay_ms
        self.retry_fetch_errors = retry_fetch_errors
        self.metrics = metrics or RetryMetrics()
        self.on_model_change = on_model_change
        self._active_model: Optional[str] = None
        self._fallback_mode = False

    def get_active_model(self) -> str:
        """Model the next request targets: the active override, else the configured model."""
        return self._active_model or self.model

    def set_active_model(self, model: str) -> None:
        """Target ``model`` until the configured model changes; not persisted."""
        self._active_model = resolve_model(model)

    def set_model(self, model: str) -> None:
        model = resolve_model(model)
        changed = model != self.model or self._active_model != model
        self.model = model
        self._active_model = model
        self._fallback_mode = False
        if changed and self.on_model_change is not None:
            self.on_model_change(model)

    def activate_fallback_mode(self, model: str) -> None:
        """Switch the session to ``model`` for the rest of its lifetime."""
        model = resolve_model(model)
        self.model = model
        self._active_model = model
        self._fallback_mode = True
        logger.info(f"Switched to fallback model {model}", extra={"auth_type": self.auth_type})

    @property
    def in_fallback_mode(self) -> bool:
        return self._fallback_mode

    @classmethod
    def from_settings(
        cls,
        settings: ChatSettings,
        content_generator: Optional[ContentGenerator] = None,
        **kwargs: Any,
    ) -> "ChatContext":
        """Build a context from ``ChatSettings``; a Gemini generator is created if none is given."""
        if content_generator is None:
            from ..providers.gemini import GeminiContentGenerator

            content_generator = GeminiContentGenerator(
                api_key=settings.api_key, base_url=settings.base_url
            )
        return cls(
            content_generator=content_generator,
            model=settings.model,
            auth_type=settings.auth_type,
            max_attempts=settings.max_attempts,
            initial_delay_ms=settings.initial_delay_ms,
            max_delay_ms=settings.max_delay_ms,
            retry_fetch_errors=settings.retry_fetch_errors,
            **kwargs,
        )
