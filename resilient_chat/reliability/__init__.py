"""Reliability components: error classification, backoff, retries and cancellation."""

from .api_errors import ApiErrorInfo, get_error_status, parse_api_error
from .backoff import apply_jitter, compute_backoff_delay
from .cancellation import CancellationToken, cancellable_sleep, iterate_with_cancellation
from .error_classifier import (
    ErrorClassification,
    ErrorClassifier,
    classify_error,
    is_network_error,
    is_retryable_error,
)
from .errors import (
    ApiError,
    ErrorCategory,
    InvalidStreamError,
    InvalidStreamReason,
    ModelNotFoundError,
    RequestCancelledError,
    RetryableQuotaError,
    TerminalQuotaError,
    ValidationRequiredError,
)
from .retry import (
    RetryExhaustedError,
    RetryManager,
    RetryOptions,
    retry_with_backoff,
)

__all__ = [
    # Parsing
    "ApiErrorInfo",
    "get_error_status",
    "parse_api_error",
    # Backoff
    "apply_jitter",
    "compute_backoff_delay",
    # Cancellation
    "CancellationToken",
    "cancellable_sleep",
    "iterate_with_cancellation",
    # Classification
    "ErrorCategory",
    "ErrorClassification",
    "ErrorClassifier",
    "classify_error",
    "is_network_error",
    "is_retryable_error",
    # Errors
    "ApiError",
    "InvalidStreamError",
    "InvalidStreamReason",
    "ModelNotFoundError",
    "RequestCancelledError",
    "RetryableQuotaError",
    "TerminalQuotaError",
    "ValidationRequiredError",
    # Retry
    "RetryExhaustedError",
    "RetryManager",
    "RetryOptions",
    "retry_with_backoff",
]
