"""
Typed errors raised by the retry engine and the chat session.

Each error carries the ``ErrorCategory`` it was classified as so callers can
branch on the category instead of on the concrete class.
"""

from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .api_errors import ApiErrorInfo


class ErrorCategory(Enum):
    """Closed set of failure categories the retry engine acts on."""
    TERMINAL_QUOTA = "terminal_quota"
    RETRYABLE_QUOTA = "retryable_quota"
    VALIDATION_REQUIRED = "validation_required"
    MODEL_NOT_FOUND = "model_not_found"
    GENERIC_5XX = "generic_5xx"
    GENERIC_NETWORK = "generic_network"
    NON_RETRYABLE = "non_retryable"


class ApiError(Exception):
    """
    Non-success HTTP response from the model endpoint.

    The message is the raw response body (usually a JSON error payload) so
    that structured parsing can recover the ``@type``-tagged details.

    Attributes:
        status: HTTP status code
        body: Raw response body
        headers: Response headers, if available
    """

    def __init__(self, status: int, body: str = "", headers: Optional[dict] = None):
        super().__init__(body or f"HTTP {status}")
        self.status = status
        self.body = body
        self.headers = headers or {}

    @property
    def status_code(self) -> int:
        return self.status


class ClassifiedError(Exception):
    """Base for errors produced by classification."""

    category: ErrorCategory = ErrorCategory.NON_RETRYABLE

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 info: Optional["ApiErrorInfo"] = None):
        super().__init__(message)
        self.cause = cause
        self.info = info
        if cause is not None:
            self.__cause__ = cause


class TerminalQuotaError(ClassifiedError):
    """Quota that will not recover within this session (daily limits)."""

    category = ErrorCategory.TERMINAL_QUOTA

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 info: Optional["ApiErrorInfo"] = None,
                 retry_delay_ms: Optional[float] = None):
        super().__init__(message, cause, info)
        self.retry_delay_ms = retry_delay_ms


class RetryableQuotaError(ClassifiedError):
    """Rate limit that clears after ``retry_delay_ms`` (None when unknown)."""

    category = ErrorCategory.RETRYABLE_QUOTA

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 info: Optional["ApiErrorInfo"] = None,
                 retry_delay_ms: Optional[float] = None):
        super().__init__(message, cause, info)
        self.retry_delay_ms = retry_delay_ms


class ValidationRequiredError(ClassifiedError):
    """The account must be verified out of band before requests succeed."""

    category = ErrorCategory.VALIDATION_REQUIRED

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 info: Optional["ApiErrorInfo"] = None,
                 validation_link: Optional[str] = None,
                 validation_description: Optional[str] = None,
                 learn_more_url: Optional[str] = None):
        super().__init__(message, cause, info)
        self.validation_link = validation_link
        self.validation_description = validation_description
        self.learn_more_url = learn_more_url
        # Set once the user chose change_auth/cancel so callers don't prompt again
        self.user_handled = False


class ModelNotFoundError(ClassifiedError):
    category = ErrorCategory.MODEL_NOT_FOUND

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 info: Optional["ApiErrorInfo"] = None, status: int = 404):
        super().__init__(message, cause, info)
        self.status = status


class InvalidStreamReason(str, Enum):
    NO_FINISH_REASON = "NO_FINISH_REASON"
    NO_RESPONSE_TEXT = "NO_RESPONSE_TEXT"
    MALFORMED_FUNCTION_CALL = "MALFORMED_FUNCTION_CALL"


_INVALID_STREAM_MESSAGES = {
    InvalidStreamReason.NO_FINISH_REASON: "Model stream ended without a finish reason.",
    InvalidStreamReason.NO_RESPONSE_TEXT: "Model stream ended with empty response text.",
    InvalidStreamReason.MALFORMED_FUNCTION_CALL: "Model stream ended with malformed function call.",
}


class InvalidStreamError(Exception):
    """The stream completed but its content is not an acceptable turn."""

    category = ErrorCategory.NON_RETRYABLE

    def __init__(self, reason: InvalidStreamReason, message: Optional[str] = None):
        super().__init__(message or _INVALID_STREAM_MESSAGES[reason])
        self.reason = reason


class RequestCancelledError(Exception):
    """The caller's cancellation token fired."""

    category = ErrorCategory.NON_RETRYABLE

    def __init__(self, message: str = "Request was cancelled", reason: Any = None):
        super().__init__(message)
        self.reason = reason
