"""
Error classification for retry decisions.

Maps any failure (exception, dict payload or string) into exactly one
``ErrorCategory``. Quota, validation and not-found categories also produce a
typed error that carries the details the caller needs to act on.
"""

import asyncio
import re
import socket
import ssl
from dataclasses import dataclass
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

import httpx

from ..config.constants import (
    MAX_ERROR_CAUSE_DEPTH,
    PER_MINUTE_QUOTA_DELAY_S,
    RATE_LIMIT_EXCEEDED_DEFAULT_DELAY_S,
)
from .api_errors import (
    ApiErrorInfo,
    get_error_status,
    parse_api_error,
    parse_duration_seconds,
)
from .errors import (
    ClassifiedError,
    ErrorCategory,
    ModelNotFoundError,
    RetryableQuotaError,
    TerminalQuotaError,
    ValidationRequiredError,
)

CLOUDCODE_DOMAINS = (
    "cloudcode-pa.googleapis.com",
    "staging-cloudcode-pa.googleapis.com",
    "autopush-cloudcode-pa.googleapis.com",
)

NETWORK_ERROR_CODES = {
    "ECONNRESET",
    "ETIMEDOUT",
    "EPIPE",
    "ENOTFOUND",
    "EAI_AGAIN",
    "ECONNREFUSED",
    "EPROTO",
}

NETWORK_EXCEPTION_TYPES: Tuple[type, ...] = (
    ConnectionResetError,
    ConnectionRefusedError,
    BrokenPipeError,
    TimeoutError,
    asyncio.TimeoutError,
    socket.gaierror,
    ssl.SSLError,
    httpx.TransportError,
)

RETRY_IN_PATTERN = re.compile(r"Please retry in ([0-9.]+(?:ms|s))")


@dataclass
class ErrorClassification:
    """Result of classifying one failure."""
    category: ErrorCategory
    # Typed error for quota/validation/not-found, the original error otherwise
    error: Any
    status_code: Optional[int] = None
    retry_delay_ms: Optional[float] = None

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.RETRYABLE_QUOTA,
            ErrorCategory.GENERIC_5XX,
            ErrorCategory.GENERIC_NETWORK,
        )


def _code_of(error: Any) -> Optional[str]:
    for attr in ("code", "errno"):
        value = error.get(attr) if isinstance(error, dict) else getattr(error, attr, None)
        if isinstance(value, str):
            return value
    return None


def _is_network_code(code: Optional[str]) -> bool:
    if not code:
        return False
    return code in NETWORK_ERROR_CODES or code.startswith("ERR_SSL_")


def is_network_error(error: Any) -> bool:
    """True for transport-level failures, looking through the cause chain."""
    current = error
    for _ in range(MAX_ERROR_CAUSE_DEPTH):
        if current is None:
            return False
        if isinstance(current, NETWORK_EXCEPTION_TYPES):
            return True
        if _is_network_code(_code_of(current)):
            return True
        if isinstance(current, BaseException):
            current = current.__cause__ or getattr(current, "cause", None)
        elif isinstance(current, dict):
            current = current.get("cause")
        else:
            current = getattr(current, "cause", None)
    return False


def _message_of(error: Any, info: Optional[ApiErrorInfo]) -> str:
    if info is not None and info.message:
        return info.message
    if isinstance(error, dict):
        message = error.get("message")
        return message if isinstance(message, str) else str(error)
    return str(error)


def _is_cloudcode(error_info: Optional[dict]) -> bool:
    return bool(error_info) and error_info.get("domain") in CLOUDCODE_DOMAINS


def _seconds_to_ms(seconds: Optional[float]) -> Optional[float]:
    return seconds * 1000 if seconds else None


class ErrorClassifier:
    """Stateless classifier; ``classify`` is total and deterministic."""

    @classmethod
    def classify(cls, error: Any) -> ErrorClassification:
        if isinstance(error, ClassifiedError):
            return ErrorClassification(
                error.category,
                error,
                status_code=get_error_status(error),
                retry_delay_ms=getattr(error, "retry_delay_ms", None),
            )

        if is_network_error(error):
            return ErrorClassification(ErrorCategory.GENERIC_NETWORK, error)

        info = parse_api_error(error)
        status = info.code if info is not None and info.code is not None else get_error_status(error)

        if info is not None and info.truncated:
            return ErrorClassification(ErrorCategory.GENERIC_NETWORK, error, status_code=status)

        if status == 429:
            return cls._classify_quota(error, info)

        if status is None:
            retry_in = cls._retry_in_from_message(error, info)
            if retry_in is not None:
                return retry_in

        if status == 403 and info is not None:
            validation = cls._classify_validation(info)
            if validation is not None:
                return ErrorClassification(
                    ErrorCategory.VALIDATION_REQUIRED, validation, status_code=status
                )

        if status == 404:
            message = (info.message if info is not None and info.message else None) or (
                str(error) if isinstance(error, BaseException) and str(error) else "Model not found"
            )
            not_found = ModelNotFoundError(
                message,
                cause=error if isinstance(error, BaseException) else None,
                info=info,
                status=status,
            )
            return ErrorClassification(ErrorCategory.MODEL_NOT_FOUND, not_found, status_code=status)

        if status is not None and 500 <= status <= 599:
            return ErrorClassification(ErrorCategory.GENERIC_5XX, error, status_code=status)

        return ErrorClassification(ErrorCategory.NON_RETRYABLE, error, status_code=status)

    @classmethod
    def _classify_quota(cls, error: Any, info: Optional[ApiErrorInfo]) -> ErrorClassification:
        cause = error if isinstance(error, BaseException) else None

        if info is None or not info.details:
            retry_in = cls._retry_in_from_message(error, info)
            if retry_in is not None:
                return retry_in
            return cls._retryable(_message_of(error, info), cause, info, None)

        quota_failure = info.quota_failure
        error_info = info.error_info
        retry_info = info.retry_info

        # Daily limits win over any retry hint
        violations = (quota_failure or {}).get("violations") or []
        for violation in violations:
            quota_id = violation.get("quotaId") or ""
            if "PerDay" in quota_id or "Daily" in quota_id:
                return cls._terminal(
                    "You have exhausted your daily quota on this model.", cause, info, None
                )

        delay_s = parse_duration_seconds((retry_info or {}).get("retryDelay"))

        if _is_cloudcode(error_info):
            reason = error_info.get("reason")
            if reason == "RATE_LIMIT_EXCEEDED":
                return cls._retryable(
                    info.message, cause, info, delay_s or RATE_LIMIT_EXCEEDED_DEFAULT_DELAY_S
                )
            if reason == "QUOTA_EXHAUSTED":
                return cls._terminal(info.message, cause, info, delay_s)

        if delay_s:
            return cls._retryable(
                f"{info.message}\nSuggested retry after {retry_info['retryDelay']}.",
                cause,
                info,
                delay_s,
            )

        for violation in violations:
            if "PerMinute" in (violation.get("quotaId") or ""):
                return cls._retryable(
                    f"{info.message}\nSuggested retry after {PER_MINUTE_QUOTA_DELAY_S}s.",
                    cause,
                    info,
                    PER_MINUTE_QUOTA_DELAY_S,
                )

        if error_info:
            quota_limit = (error_info.get("metadata") or {}).get("quota_limit") or ""
            if "PerMinute" in quota_limit:
                return cls._retryable(
                    f"{error_info.get('reason')}\nSuggested retry after {PER_MINUTE_QUOTA_DELAY_S}s.",
                    cause,
                    info,
                    PER_MINUTE_QUOTA_DELAY_S,
                )

        retry_in = cls._retry_in_from_message(error, info)
        if retry_in is not None:
            return retry_in
        return cls._retryable(_message_of(error, info), cause, info, None)

    @classmethod
    def _retry_in_from_message(
        cls, error: Any, info: Optional[ApiErrorInfo]
    ) -> Optional[ErrorClassification]:
        message = _message_of(error, info)
        match = RETRY_IN_PATTERN.search(message)
        if not match:
            return None
        delay_s = parse_duration_seconds(match.group(1))
        if delay_s is None:
            return None
        cause = error if isinstance(error, BaseException) else None
        return cls._retryable(message, cause, info, delay_s)

    @staticmethod
    def _retryable(message, cause, info, delay_s) -> ErrorClassification:
        delay_ms = _seconds_to_ms(delay_s)
        typed = RetryableQuotaError(message, cause=cause, info=info, retry_delay_ms=delay_ms)
        return ErrorClassification(
            ErrorCategory.RETRYABLE_QUOTA, typed, status_code=429, retry_delay_ms=delay_ms
        )

    @staticmethod
    def _terminal(message, cause, info, delay_s) -> ErrorClassification:
        delay_ms = _seconds_to_ms(delay_s)
        typed = TerminalQuotaError(message, cause=cause, info=info, retry_delay_ms=delay_ms)
        return ErrorClassification(
            ErrorCategory.TERMINAL_QUOTA, typed, status_code=429, retry_delay_ms=delay_ms
        )

    @staticmethod
    def _classify_validation(info: ApiErrorInfo) -> Optional[ValidationRequiredError]:
        error_info = info.error_info
        if not _is_cloudcode(error_info) or error_info.get("reason") != "VALIDATION_REQUIRED":
            return None

        validation_link = None
        validation_description = None
        learn_more_url = None

        links = (info.help or {}).get("links") or []
        if links:
            validation_link = links[0].get("url")
            validation_description = links[0].get("description")
            for link in links:
                description = (link.get("description") or "").strip().lower()
                url = link.get("url") or ""
                if description == "learn more" or urlparse(url).hostname == "support.google.com":
                    learn_more_url = url
                    break

        if not validation_link:
            validation_link = (error_info.get("metadata") or {}).get("validation_link")

        return ValidationRequiredError(
            info.message,
            info=info,
            validation_link=validation_link,
            validation_description=validation_description,
            learn_more_url=learn_more_url,
        )


def classify_error(error: Any) -> ErrorClassification:
    return ErrorClassifier.classify(error)


def is_retryable_error(error: Any, retry_fetch_errors: bool = False) -> bool:
    """Default "should retry" predicate for the generic retry path."""
    if is_network_error(error):
        return True
    if retry_fetch_errors and "fetch failed" in str(error).lower():
        return True

    status = get_error_status(error)
    if status is None:
        info = parse_api_error(error)
        status = info.code if info is not None else None
    if status == 400:
        return False
    return status == 429 or (status is not None and 500 <= status <= 599)
