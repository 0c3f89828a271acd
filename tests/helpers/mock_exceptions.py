"""Builders for API errors used across the retry and classification tests."""

import json
from typing import Any, Dict, List, Optional

from resilient_chat.reliability.api_errors import (
    ERROR_INFO_TYPE,
    HELP_TYPE,
    QUOTA_FAILURE_TYPE,
    RETRY_INFO_TYPE,
)
from resilient_chat.reliability.errors import ApiError

CLOUDCODE_DOMAIN = "cloudcode-pa.googleapis.com"


class MockHTTPResponse:
    """Mock HTTP response for exception testing."""

    def __init__(self, status_code: int, headers: Optional[Dict[str, str]] = None, data: Any = None):
        self.status_code = status_code
        self.headers = headers or {}
        self.data = data


class MockResponseDataError(Exception):
    """Error that carries its payload on ``response.data``."""

    def __init__(self, message: str, status_code: int, data: Any = None):
        super().__init__(message)
        self.response = MockHTTPResponse(status_code, data=data)


class MockNetworkError(Exception):
    """Error identified only by a string ``code``."""

    def __init__(self, code: str, message: str = "socket hang up"):
        super().__init__(message)
        self.code = code


def error_payload(code: int, message: str, details: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


def api_error(code: int, message: str = "error", details: Optional[List[Dict[str, Any]]] = None) -> ApiError:
    return ApiError(code, json.dumps(error_payload(code, message, details)))


def quota_failure(quota_id: str) -> Dict[str, Any]:
    return {"@type": QUOTA_FAILURE_TYPE, "violations": [{"quotaId": quota_id}]}


def retry_info(delay: str) -> Dict[str, Any]:
    return {"@type": RETRY_INFO_TYPE, "retryDelay": delay}


def error_info(reason: str, domain: str = CLOUDCODE_DOMAIN, metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    detail: Dict[str, Any] = {"@type": ERROR_INFO_TYPE, "reason": reason, "domain": domain}
    if metadata is not None:
        detail["metadata"] = metadata
    return detail


def help_links(*links: Dict[str, str]) -> Dict[str, Any]:
    return {"@type": HELP_TYPE, "links": list(links)}


def daily_quota_error() -> ApiError:
    return api_error(
        429,
        "Quota exceeded for quota metric 'Requests per day'",
        [quota_failure("GenerateRequestsPerDayPerProjectPerModel"), retry_info("3600s")],
    )


def per_minute_quota_error() -> ApiError:
    return api_error(
        429,
        "Quota exceeded for quota metric 'Requests per minute'",
        [quota_failure("GenerateRequestsPerMinutePerProjectPerModel")],
    )


def retryable_quota_error(delay: str = "0.05s") -> ApiError:
    return api_error(429, "Resource has been exhausted", [retry_info(delay)])


def validation_required_error() -> ApiError:
    return api_error(
        403,
        "Account verification required",
        [
            error_info("VALIDATION_REQUIRED"),
            help_links(
                {"description": "Verify your account", "url": "https://accounts.google.com/verify"},
                {"description": "Learn more", "url": "https://support.google.com/verify"},
            ),
        ],
    )


def not_found_error(model: str = "gemini-3-pro-preview") -> ApiError:
    return api_error(404, f"models/{model} is not found")


def server_error(code: int = 503) -> ApiError:
    return api_error(code, "The model is overloaded. Please try again later.")
