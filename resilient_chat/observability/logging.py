"""
Structured logging utility for chat sessions and content generators.

Messages are prefixed with ``[component=... key=value ...]`` so that the
session, retry engine and generator log lines can be correlated by
``prompt_id`` and ``model``.
"""

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Optional


class ChatLogger:
    """Structured logger for one component of the chat runtime."""

    def __init__(self, component: str):
        """
        Initialize logger for a component.

        Args:
            component: Component name (e.g., "session", "gemini")
        """
        self.component = component
        self.logger = logging.getLogger(f"resilient_chat.{component}")

    def _format_message(self, message: str, **kwargs) -> str:
        fields = [f"component={self.component}"]
        for key, value in kwargs.items():
            if value is not None:
                fields.append(f"{key}={value}")
        return f"[{' '.join(fields)}] {message}"

    def debug(self, message: str, model: Optional[str] = None,
              prompt_id: Optional[str] = None, **kwargs):
        self.logger.debug(
            self._format_message(message, model=model, prompt_id=prompt_id, **kwargs)
        )

    def info(self, message: str, model: Optional[str] = None,
             prompt_id: Optional[str] = None, **kwargs):
        self.logger.info(
            self._format_message(message, model=model, prompt_id=prompt_id, **kwargs)
        )

    def warning(self, message: str, model: Optional[str] = None,
                prompt_id: Optional[str] = None, **kwargs):
        self.logger.warning(
            self._format_message(message, model=model, prompt_id=prompt_id, **kwargs)
        )

    def error(self, message: str, model: Optional[str] = None,
              prompt_id: Optional[str] = None, error: Optional[BaseException] = None, **kwargs):
        if error:
            kwargs['error_type'] = type(error).__name__
            kwargs['error_msg'] = str(error)
        self.logger.error(
            self._format_message(message, model=model, prompt_id=prompt_id, **kwargs)
        )

    @contextmanager
    def track_request(self, method: str, model: str, prompt_id: Optional[str] = None):
        """
        Time one unit of chat work (a turn, a stream) and log how it ended.

        The yielded dict is mutable; set ``model`` on it when a fallback
        moved the work to another model so the closing line names it.
        A cancelled turn (``CancelledError``) logs nothing on exit.
        """
        prompt_id = prompt_id or uuid.uuid4().hex[:8]
        started = time.monotonic()
        tracked = {'model': model, 'prompt_id': prompt_id}
        self.debug(f"{method} started", model=model, prompt_id=prompt_id)

        try:
            yield tracked
        except Exception as e:
            self.error(
                f"{method} failed",
                model=tracked['model'],
                prompt_id=prompt_id,
                duration_ms=int((time.monotonic() - started) * 1000),
                error=e,
            )
            raise
        self.info(
            f"{method} finished",
            model=tracked['model'],
            prompt_id=prompt_id,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def log_usage(self, usage: Dict[str, Any], model: str, prompt_id: Optional[str]):
        """Log token usage from a response's usage metadata."""
        self.info(
            "Token usage",
            model=model,
            prompt_id=prompt_id,
            prompt_tokens=usage.get('prompt_token_count'),
            candidates_tokens=usage.get('candidates_token_count'),
            thoughts_tokens=usage.get('thoughts_token_count') or None,
            cached_tokens=usage.get('cached_content_token_count') or None,
            total_tokens=usage.get('total_token_count'),
        )

    def log_streaming_metrics(self, chunks: int, total_chars: int, duration: float,
                              model: str, prompt_id: Optional[str]):
        chars_per_second = total_chars / duration if duration > 0 else 0
        self.info(
            "Streaming metrics",
            model=model,
            prompt_id=prompt_id,
            chunks=chunks,
            total_chars=total_chars,
            duration_ms=int(duration * 1000),
            chars_per_second=int(chars_per_second),
        )
