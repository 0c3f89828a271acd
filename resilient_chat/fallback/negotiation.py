"""
User-facing negotiation for quota fallback and account validation.

At most one fallback request and one validation request can be pending at a
time across the whole process. A second caller that arrives while one is
pending gets ``"stop"`` (fallback) or ``"cancel"`` (validation) right away
instead of opening another prompt.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..reliability.errors import ModelNotFoundError, TerminalQuotaError
from ..reliability.retry import VALIDATION_CANCEL

logger = logging.getLogger(__name__)

# Fallback intents
RETRY_ALWAYS = "retry_always"
RETRY_ONCE = "retry_once"
RETRY_LATER = "retry_later"
STOP = "stop"
UPGRADE = "upgrade"

FALLBACK_INTENTS = (RETRY_ALWAYS, RETRY_ONCE, RETRY_LATER, STOP, UPGRADE)


def describe_fallback(failed_model: str, fallback_model: str, error: Any) -> str:
    """Message shown to the user when asking whether to switch models."""
    if isinstance(error, ModelNotFoundError):
        return (
            f"It seems like you don't have access to {failed_model}.\n"
            "Your admin might have disabled the access. "
            "Contact them to enable the Preview Release Channel."
        )
    if isinstance(error, TerminalQuotaError):
        lines = [f"Usage limit reached for {failed_model}."]
        if error.retry_delay_ms:
            minutes = max(1, int(error.retry_delay_ms // 60000))
            lines.append(f"Access resets in about {minutes} minute(s).")
        lines.append(f"Switch to {fallback_model} to keep going, or try again later.")
        return "\n".join(lines)
    return (
        f"We are currently experiencing high demand.\n"
        f"Switch to {fallback_model} to keep going, or try again later."
    )


@dataclass
class FallbackRequest:
    failed_model: str
    fallback_model: str
    error: Any
    future: "asyncio.Future[str]" = field(repr=False)

    @property
    def message(self) -> str:
        return describe_fallback(self.failed_model, self.fallback_model, self.error)

    @property
    def is_terminal_quota_error(self) -> bool:
        return isinstance(self.error, TerminalQuotaError)

    @property
    def is_model_not_found_error(self) -> bool:
        return isinstance(self.error, ModelNotFoundError)


@dataclass
class ValidationRequest:
    validation_link: Optional[str]
    validation_description: Optional[str]
    learn_more_url: Optional[str]
    future: "asyncio.Future[str]" = field(repr=False)


class NegotiationBroker:
    """
    Single pending-request slot per negotiation kind.

    ``fallback_handler`` and ``validation_handler`` are the callables a
    ``ChatContext`` registers. Each parks the caller until the UI answers via
    ``resolve_fallback`` / ``resolve_validation``. ``on_fallback_request`` and
    ``on_validation_request`` notify the UI that a request is waiting.
    """

    def __init__(
        self,
        on_fallback_request: Optional[Callable[[FallbackRequest], None]] = None,
        on_validation_request: Optional[Callable[[ValidationRequest], None]] = None,
    ):
        self.on_fallback_request = on_fallback_request
        self.on_validation_request = on_validation_request
        self._pending_fallback: Optional[FallbackRequest] = None
        self._pending_validation: Optional[ValidationRequest] = None

    @property
    def pending_fallback(self) -> Optional[FallbackRequest]:
        return self._pending_fallback

    @property
    def pending_validation(self) -> Optional[ValidationRequest]:
        return self._pending_validation

    async def fallback_handler(self, failed_model: str, fallback_model: str, error: Any) -> str:
        if self._pending_fallback is not None:
            logger.info(
                "Fallback negotiation already pending, stopping concurrent request",
                extra={"failed_model": failed_model},
            )
            return STOP

        future = asyncio.get_running_loop().create_future()
        request = FallbackRequest(failed_model, fallback_model, error, future)
        self._pending_fallback = request
        try:
            if self.on_fallback_request is not None:
                self.on_fallback_request(request)
            return await future
        finally:
            self._pending_fallback = None

    def resolve_fallback(self, intent: str) -> bool:
        """Answer the pending fallback request. Returns False if none is pending."""
        request = self._pending_fallback
        if request is None or request.future.done():
            return False
        if intent not in FALLBACK_INTENTS:
            raise ValueError(f"Unknown fallback intent: {intent}")
        request.future.set_result(intent)
        return True

    async def validation_handler(
        self,
        validation_link: Optional[str],
        validation_description: Optional[str],
        learn_more_url: Optional[str],
    ) -> str:
        if self._pending_validation is not None:
            logger.info("Validation negotiation already pending, cancelling concurrent request")
            return VALIDATION_CANCEL

        future = asyncio.get_running_loop().create_future()
        request = ValidationRequest(validation_link, validation_description, learn_more_url, future)
        self._pending_validation = request
        try:
            if self.on_validation_request is not None:
                self.on_validation_request(request)
            return await future
        finally:
            self._pending_validation = None

    def resolve_validation(self, intent: str) -> bool:
        request = self._pending_validation
        if request is None or request.future.done():
            return False
        request.future.set_result(intent)
        return True


_default_broker: Optional[NegotiationBroker] = None


def get_negotiation_broker() -> NegotiationBroker:
    """Process-wide broker shared by every session."""
    global _default_broker
    if _default_broker is None:
        _default_broker = NegotiationBroker()
    return _default_broker


def reset_negotiation_broker() -> None:
    global _default_broker
    _default_broker = None
