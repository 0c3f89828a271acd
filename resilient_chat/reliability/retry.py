from __future__ import annotations

import inspect
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING

from ..config.constants import (
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_MS,
)
from .backoff import compute_backoff_delay
from .cancellation import CancellationToken, cancellable_sleep
from .error_classifier import ErrorClassification, ErrorClassifier, is_retryable_error
from .errors import (
    ErrorCategory,
    RequestCancelledError,
    RetryableQuotaError,
    ValidationRequiredError,
)

if TYPE_CHECKING:
    from ..observability.metrics import RetryMetrics

logger = logging.getLogger(__name__)

# Intents returned by on_validation_required
VALIDATION_VERIFY = "verify"
VALIDATION_CHANGE_AUTH = "change_auth"
VALIDATION_CANCEL = "cancel"


class RetryExhaustedError(Exception):
    """Every attempt produced content the caller asked to retry."""


@dataclass
class RetryOptions:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay_ms: float = DEFAULT_INITIAL_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    should_retry_on_error: Callable[[Any, bool], bool] = is_retryable_error
    should_retry_on_content: Optional[Callable[[Any], bool]] = None
    # (auth_type, error) -> truthy to retry against a fallback model
    on_persistent_429: Optional[Callable[..., Any]] = None
    # (error) -> "verify" | "change_auth" | "cancel"
    on_validation_required: Optional[Callable[..., Any]] = None
    auth_type: Optional[str] = None
    retry_fetch_errors: bool = False
    signal: Optional[CancellationToken] = None
    on_retry: Optional[Callable[[int, Any, float], None]] = None
    classifier: Callable[[Any], ErrorClassification] = ErrorClassifier.classify
    # Label used in logs and metrics
    model: Optional[str] = None
    rng: Optional[random.Random] = field(default=None, repr=False)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class RetryManager:
    """
    Drives an async operation through retries.

    This class handles:
    - Exponential backoff with jitter for transient failures
    - Server-provided delays for retryable quota errors
    - Fallback and validation callbacks that reset the attempt budget
    - Cancellation between and during waits

    Holds no state across calls apart from the optional metrics sink.
    """

    def __init__(self, metrics: Optional["RetryMetrics"] = None):
        self.metrics = metrics

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        options: Optional[RetryOptions] = None,
    ) -> Any:
        """
        Execute ``operation`` with retry logic.

        Args:
            operation: Zero-argument async callable, invoked once per attempt
            options: Retry configuration

        Returns:
            Result from the first successful attempt

        Raises:
            RequestCancelledError: The signal fired
            TerminalQuotaError / ModelNotFoundError / ValidationRequiredError:
                No handler recovered the failure
            RetryableQuotaError: Quota retries exhausted
            The original error for exhausted 5xx or non-retryable failures
        """
        options = options or RetryOptions()
        signal = options.signal

        if signal is not None and signal.cancelled:
            raise RequestCancelledError(reason=signal.reason)
        if options.max_attempts < 1:
            raise ValueError("max_attempts must be a positive number.")

        attempt = 0
        backoff_step = 0

        while attempt < options.max_attempts:
            if signal is not None and signal.cancelled:
                raise RequestCancelledError(reason=signal.reason)
            attempt += 1

            try:
                result = await operation()
            except RequestCancelledError:
                raise
            except Exception as error:  # noqa: BLE001
                classification = options.classifier(error)
                category = classification.category

                if category in (ErrorCategory.TERMINAL_QUOTA, ErrorCategory.MODEL_NOT_FOUND):
                    if await self._try_fallback(options, classification.error):
                        attempt, backoff_step = 0, 0
                        continue
                    self._record_failure(options, category)
                    raise classification.error

                if category == ErrorCategory.VALIDATION_REQUIRED:
                    if await self._try_validation(options, classification.error):
                        attempt, backoff_step = 0, 0
                        continue
                    self._record_failure(options, category)
                    raise classification.error

                if category in (ErrorCategory.RETRYABLE_QUOTA, ErrorCategory.GENERIC_5XX):
                    if attempt >= options.max_attempts:
                        logger.warning(
                            f"Attempt {attempt} failed: {classification.error}. Max attempts reached",
                            extra={"model": options.model, "attempt": attempt, "error_category": category.value},
                        )
                        if await self._try_fallback(options, classification.error):
                            attempt, backoff_step = 0, 0
                            continue
                        self._record_failure(options, category)
                        if isinstance(classification.error, RetryableQuotaError):
                            raise classification.error
                        raise

                    quota_delay = getattr(classification.error, "retry_delay_ms", None)
                    if category == ErrorCategory.RETRYABLE_QUOTA and quota_delay is not None:
                        delay_ms = quota_delay
                    else:
                        delay_ms = compute_backoff_delay(
                            backoff_step, options.initial_delay_ms, options.max_delay_ms, options.rng
                        )
                        backoff_step += 1
                    await self._wait(options, attempt, error, delay_ms, category)
                    continue

                if attempt >= options.max_attempts or not options.should_retry_on_error(
                    error, options.retry_fetch_errors
                ):
                    self._record_failure(options, category)
                    raise

                delay_ms = compute_backoff_delay(
                    backoff_step, options.initial_delay_ms, options.max_delay_ms, options.rng
                )
                backoff_step += 1
                await self._wait(options, attempt, error, delay_ms, category)
                continue

            if options.should_retry_on_content is not None and options.should_retry_on_content(result):
                delay_ms = compute_backoff_delay(
                    backoff_step, options.initial_delay_ms, options.max_delay_ms, options.rng
                )
                backoff_step += 1
                await self._wait(options, attempt, ValueError("Invalid content"), delay_ms, None)
                continue

            if attempt > 1 and self.metrics is not None:
                self.metrics.record_success(options.model or "unknown", attempt)
            return result

        raise RetryExhaustedError("Retry attempts exhausted")

    async def _try_fallback(self, options: RetryOptions, error: Any) -> bool:
        if options.on_persistent_429 is None:
            return False
        try:
            fallback = await _maybe_await(options.on_persistent_429(options.auth_type, error))
        except Exception as handler_error:  # noqa: BLE001
            logger.error(
                f"Model fallback handler failed: {handler_error}",
                extra={"model": options.model, "error_type": type(handler_error).__name__},
            )
            return False
        if fallback:
            logger.info(
                "Fallback accepted, resetting retry budget",
                extra={"model": options.model, "fallback": str(fallback)},
            )
            if self.metrics is not None:
                self.metrics.record_fallback(options.model or "unknown")
        return bool(fallback)

    async def _try_validation(self, options: RetryOptions, error: ValidationRequiredError) -> bool:
        if options.on_validation_required is None:
            return False
        try:
            intent = await _maybe_await(options.on_validation_required(error))
        except Exception as handler_error:  # noqa: BLE001
            logger.error(
                f"Validation handler failed: {handler_error}",
                extra={"model": options.model, "error_type": type(handler_error).__name__},
            )
            return False
        if intent == VALIDATION_VERIFY:
            return True
        # change_auth or cancel: the user already dealt with it
        error.user_handled = True
        return False

    async def _wait(
        self,
        options: RetryOptions,
        attempt: int,
        error: Any,
        delay_ms: float,
        category: Optional[ErrorCategory],
    ) -> None:
        error_type = type(error).__name__
        logger.warning(
            f"Attempt {attempt} failed with {error_type}. Retrying after {int(delay_ms)}ms...",
            extra={
                "model": options.model,
                "attempt": attempt,
                "error_type": error_type,
                "error_message": str(error)[:200],
                "delay_ms": delay_ms,
                "error_category": category.value if category else "content",
            },
        )
        if self.metrics is not None:
            self.metrics.record_attempt(options.model or "unknown", category)
            self.metrics.add_delay(delay_ms)
        if options.on_retry is not None:
            try:
                options.on_retry(attempt, error, delay_ms)
            except Exception as callback_error:  # noqa: BLE001
                logger.warning(f"on_retry callback failed: {callback_error}")
        await cancellable_sleep(delay_ms, options.signal)

    def _record_failure(self, options: RetryOptions, category: ErrorCategory) -> None:
        if self.metrics is not None:
            self.metrics.record_failure(options.model or "unknown", category)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[Any]],
    options: Optional[RetryOptions] = None,
    metrics: Optional["RetryMetrics"] = None,
) -> Any:
    """Functional entry point; see ``RetryManager.execute_with_retry``."""
    return await RetryManager(metrics).execute_with_retry(operation, options)
