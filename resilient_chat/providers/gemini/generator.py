"""
Streaming content generator for the Gemini REST endpoint.

Uses ``:streamGenerateContent?alt=sse`` over ``httpx``. The request is
opened when ``generate_content_stream`` is awaited so that transport errors
and non-success statuses are raised before any chunk is produced; the
returned iterator then parses one ``GenerateContentResponse`` per SSE
``data:`` line.
"""

import json
import time
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ...config.constants import (
    API_KEY_ENV_VAR,
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_READ_TIMEOUT_S,
)
from ...models.content import Content
from ...models.generation import GenerateContentRequest, GenerateContentResponse
from ...observability.logging import ChatLogger
from ...reliability.cancellation import CancellationToken
from ...reliability.errors import ApiError, RequestCancelledError

logger = ChatLogger("gemini")

# Config fields that live at the top level of the REST payload
_TOP_LEVEL_CONFIG_FIELDS = ("tools", "toolConfig")
_SSE_DATA_PREFIX = "data:"


def build_request_payload(request: GenerateContentRequest) -> Dict[str, Any]:
    """Translate a request into the REST JSON body."""
    config = request.config.to_wire()
    payload: Dict[str, Any] = {
        "contents": [content.to_wire() for content in request.contents],
    }

    system_instruction = config.pop("systemInstruction", None)
    if system_instruction is not None:
        if isinstance(system_instruction, str):
            system_instruction = {"parts": [{"text": system_instruction}]}
        elif isinstance(request.config.system_instruction, Content):
            system_instruction = {"parts": system_instruction.get("parts", [])}
        payload["systemInstruction"] = system_instruction

    for field_name in _TOP_LEVEL_CONFIG_FIELDS:
        value = config.pop(field_name, None)
        if value is not None:
            payload[field_name] = value

    if config:
        payload["generationConfig"] = config
    return payload


def parse_sse_line(line: str) -> Optional[GenerateContentResponse]:
    """Parse one SSE line; None for comments, blanks and non-data fields."""
    line = line.strip()
    if not line.startswith(_SSE_DATA_PREFIX):
        return None
    data = line[len(_SSE_DATA_PREFIX):].strip()
    if not data or data == "[DONE]":
        return None
    return GenerateContentResponse.model_validate(json.loads(data))


class GeminiContentGenerator:
    """``ContentGenerator`` backed by an ``httpx.AsyncClient``."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
    ):
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout or httpx.Timeout(
            DEFAULT_READ_TIMEOUT_S, connect=DEFAULT_CONNECT_TIMEOUT_S
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def is_available(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> Dict[str, str]:
        if not self._api_key:
            raise ValueError(f"Gemini API key not configured; set {API_KEY_ENV_VAR}")
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self._api_key,
        }

    def _url(self, model: str) -> str:
        model_path = model if model.startswith("models/") else f"models/{model}"
        return f"{self.base_url}/{model_path}:streamGenerateContent"

    async def generate_content_stream(
        self,
        request: GenerateContentRequest,
        prompt_id: str,
        signal: Optional[CancellationToken] = None,
    ) -> AsyncIterator[GenerateContentResponse]:
        if signal is not None:
            signal.raise_if_cancelled()

        http_request = self.client.build_request(
            "POST",
            self._url(request.model),
            params={"alt": "sse"},
            headers=self._headers(),
            json=build_request_payload(request),
        )
        logger.debug("Opening stream", model=request.model, prompt_id=prompt_id)
        response = await self.client.send(http_request, stream=True)

        if response.status_code >= 400:
            body = await response.aread()
            await response.aclose()
            text = body.decode("utf-8", errors="replace")
            logger.warning(
                "Stream request rejected",
                model=request.model,
                prompt_id=prompt_id,
                status=response.status_code,
            )
            raise ApiError(response.status_code, text, dict(response.headers))

        return self._iterate(response, request.model, prompt_id, signal)

    async def _iterate(
        self,
        response: httpx.Response,
        model: str,
        prompt_id: str,
        signal: Optional[CancellationToken],
    ) -> AsyncIterator[GenerateContentResponse]:
        chunks = 0
        total_chars = 0
        start_time = time.time()
        usage = None
        try:
            async for line in response.aiter_lines():
                if signal is not None and signal.cancelled:
                    raise RequestCancelledError(reason=signal.reason)
                chunk = parse_sse_line(line)
                if chunk is None:
                    continue
                chunks += 1
                total_chars += len(chunk.text)
                if chunk.usage_metadata is not None:
                    usage = chunk.usage_metadata
                yield chunk
        finally:
            await response.aclose()
            if usage is not None:
                logger.log_usage(usage.model_dump(), model, prompt_id)
            logger.log_streaming_metrics(chunks, total_chars, time.time() - start_time, model, prompt_id)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
