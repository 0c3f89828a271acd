"""
Structured parsing of Google-style API error payloads.

Error responses look like ``{"error": {"code": 429, "message": "...",
"details": [{"@type": "type.googleapis.com/google.rpc.RetryInfo", ...}]}}``.
Proxies frequently wrap one such payload inside the ``message`` string of
another, so the parser unwraps nested JSON up to a fixed depth.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..config.constants import MAX_ERROR_UNWRAP_DEPTH
from .errors import ApiError

logger = logging.getLogger(__name__)

TYPE_PREFIX = "type.googleapis.com/google.rpc."
ERROR_INFO_TYPE = TYPE_PREFIX + "ErrorInfo"
QUOTA_FAILURE_TYPE = TYPE_PREFIX + "QuotaFailure"
RETRY_INFO_TYPE = TYPE_PREFIX + "RetryInfo"
HELP_TYPE = TYPE_PREFIX + "Help"


@dataclass
class ApiErrorInfo:
    """Normalized ``{"error": {...}}`` payload."""
    code: Optional[int]
    message: str
    details: List[Dict[str, Any]] = field(default_factory=list)
    # Nesting was still unresolved when the unwrap depth ran out
    truncated: bool = False

    def find_detail(self, type_url: str) -> Optional[Dict[str, Any]]:
        for detail in self.details:
            if detail.get("@type") == type_url:
                return detail
        return None

    @property
    def error_info(self) -> Optional[Dict[str, Any]]:
        return self.find_detail(ERROR_INFO_TYPE)

    @property
    def quota_failure(self) -> Optional[Dict[str, Any]]:
        return self.find_detail(QUOTA_FAILURE_TYPE)

    @property
    def retry_info(self) -> Optional[Dict[str, Any]]:
        return self.find_detail(RETRY_INFO_TYPE)

    @property
    def help(self) -> Optional[Dict[str, Any]]:
        return self.find_detail(HELP_TYPE)


def _try_json(text: Any) -> Any:
    if not isinstance(text, str):
        return text
    stripped = text.strip()
    if not stripped or stripped[0] not in "{[":
        return text
    try:
        return json.loads(stripped)
    except ValueError:
        return text


def _first_if_list(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _response_payload(response: Any) -> Any:
    """Pull a body out of an httpx-like response or an object exposing ``response.data``."""
    if isinstance(response, dict):
        return response.get("data")
    data = getattr(response, "data", None)
    if data is not None:
        return data
    if isinstance(response, httpx.Response):
        try:
            return response.json()
        except (ValueError, httpx.ResponseNotRead):
            try:
                return response.text
            except httpx.ResponseNotRead:
                return None
    json_method = getattr(response, "json", None)
    if callable(json_method):
        try:
            return json_method()
        except Exception:  # noqa: BLE001
            pass
    return getattr(response, "text", None)


def _extract_payload(error: Any) -> Optional[Dict[str, Any]]:
    """Locate the object that carries an ``error`` key."""
    candidates: List[Any] = []

    if isinstance(error, ApiError):
        candidates.append(error.body)
    if isinstance(error, httpx.HTTPStatusError):
        candidates.append(_response_payload(error.response))
    elif isinstance(error, BaseException) or (
        error is not None and not isinstance(error, (dict, list, str))
    ):
        response = getattr(error, "response", None)
        if response is not None:
            candidates.append(_response_payload(response))
    if isinstance(error, dict) and isinstance(error.get("response"), dict):
        candidates.append(error["response"].get("data"))

    candidates.append(error)
    if isinstance(error, BaseException):
        message = getattr(error, "message", None)
        if message is not None:
            candidates.append(message)
        if error.args:
            candidates.append(error.args[0])

    for candidate in candidates:
        candidate = _first_if_list(_try_json(candidate))
        if isinstance(candidate, dict) and isinstance(candidate.get("error"), dict):
            return candidate
    return None


def _normalize_details(details: Any) -> List[Dict[str, Any]]:
    if not isinstance(details, list):
        return []
    normalized = []
    for detail in details:
        if not isinstance(detail, dict):
            continue
        # Some responses carry keys with stray whitespace, e.g. " @type"
        cleaned = {str(key).strip(): value for key, value in detail.items()}
        if "@type" in cleaned:
            normalized.append(cleaned)
    return normalized


def parse_api_error(error: Any) -> Optional[ApiErrorInfo]:
    """
    Parse an error into an ``ApiErrorInfo``.

    Accepts exceptions (``ApiError``, ``httpx.HTTPStatusError``, anything
    with a ``response``), dict payloads, lists of payloads and JSON strings.
    Returns None when no structured error can be found.
    """
    payload = _extract_payload(error)
    if payload is None:
        return None

    current = payload["error"]
    code = current.get("code")
    truncated = False

    depth = 0
    while True:
        nested = _first_if_list(_try_json(current.get("message")))
        if not (isinstance(nested, dict) and isinstance(nested.get("error"), dict)):
            break
        if depth >= MAX_ERROR_UNWRAP_DEPTH:
            truncated = True
            logger.warning(
                "API error nesting exceeded unwrap depth",
                extra={"max_depth": MAX_ERROR_UNWRAP_DEPTH},
            )
            break
        current = nested["error"]
        if isinstance(current.get("code"), int):
            code = current["code"]
        depth += 1

    message = current.get("message")
    if not isinstance(message, str):
        message = json.dumps(message) if message is not None else ""

    return ApiErrorInfo(
        code=code if isinstance(code, int) and not isinstance(code, bool) else None,
        message=message,
        details=_normalize_details(current.get("details")),
        truncated=truncated,
    )


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def get_error_status(error: Any) -> Optional[int]:
    """Best-effort HTTP status for an error object or payload."""
    if isinstance(error, dict):
        for key in ("status", "status_code", "code"):
            status = _as_status(error.get(key))
            if status is not None:
                return status
        response = error.get("response")
        if isinstance(response, dict):
            return _as_status(response.get("status")) or _as_status(response.get("status_code"))
        return None

    if error is None or isinstance(error, (str, list)):
        return None

    for attr in ("status", "status_code", "code"):
        status = _as_status(getattr(error, attr, None))
        if status is not None:
            return status

    response = getattr(error, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            status = _as_status(getattr(response, attr, None))
            if status is not None:
                return status
    return None


def parse_duration_seconds(duration: Any) -> Optional[float]:
    """Parse ``"34.07s"`` / ``"900ms"`` into seconds."""
    if not isinstance(duration, str):
        return None
    duration = duration.strip()
    try:
        if duration.endswith("ms"):
            return float(duration[:-2]) / 1000
        if duration.endswith("s"):
            return float(duration[:-1])
    except ValueError:
        return None
    return None
