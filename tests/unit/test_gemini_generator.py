"""Unit tests for the Gemini REST content generator."""

import json

import httpx
import pytest

from resilient_chat.models import Content, GenerateContentConfig, GenerateContentRequest, Part, Role
from resilient_chat.providers.gemini import (
    GeminiContentGenerator,
    build_request_payload,
    parse_sse_line,
)
from resilient_chat.reliability import CancellationToken, ErrorCategory, RequestCancelledError, classify_error
from resilient_chat.reliability.errors import ApiError
from tests.helpers.mock_exceptions import error_payload, quota_failure

BASE_URL = "https://example.test/v1beta"


def sse_body(*payloads):
    return "".join(f"data: {json.dumps(payload)}\n\n" for payload in payloads)


def chunk_payload(text, finish_reason=None, usage=None):
    candidate = {"content": {"role": "model", "parts": [{"text": text}]}}
    if finish_reason:
        candidate["finishReason"] = finish_reason
    payload = {"candidates": [candidate]}
    if usage:
        payload["usageMetadata"] = usage
    return payload


def make_request(**config):
    return GenerateContentRequest(
        model="gemini-2.5-pro",
        contents=[Content(role=Role.USER, parts=[Part(text="hi")])],
        config=GenerateContentConfig(**config),
    )


def make_generator(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiContentGenerator(api_key=api_key, base_url=BASE_URL, client=client)


class TestPayload:

    def test_config_fields_are_split(self):
        request = make_request(
            temperature=0.5,
            thinking_config={"includeThoughts": True},
            system_instruction="Be brief.",
            tools=[{"functionDeclarations": [{"name": "ls"}]}],
            tool_config={"functionCallingConfig": {"mode": "AUTO"}},
        )

        payload = build_request_payload(request)

        assert payload["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
        assert payload["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
        assert payload["tools"] == [{"functionDeclarations": [{"name": "ls"}]}]
        assert payload["toolConfig"] == {"functionCallingConfig": {"mode": "AUTO"}}
        assert payload["generationConfig"] == {"temperature": 0.5, "thinkingConfig": {"includeThoughts": True}}

    def test_content_system_instruction(self):
        instruction = Content(role=Role.USER, parts=[Part(text="rules")])

        payload = build_request_payload(make_request(system_instruction=instruction))

        assert payload["systemInstruction"] == {"parts": [{"text": "rules"}]}

    def test_empty_config_is_omitted(self):
        assert "generationConfig" not in build_request_payload(make_request())

    def test_camel_case_parts(self):
        request = GenerateContentRequest(
            model="m",
            contents=[Content(role=Role.MODEL, parts=[Part(text="x", thought_signature="sig")])],
        )

        assert build_request_payload(request)["contents"][0]["parts"][0] == {"text": "x", "thoughtSignature": "sig"}


class TestParseSseLine:

    def test_data_line(self):
        chunk = parse_sse_line(f"data: {json.dumps(chunk_payload('hey', 'STOP'))}")

        assert chunk.text == "hey"
        assert chunk.finish_reason == "STOP"

    @pytest.mark.parametrize("line", ["", ": keep-alive", "event: message", "data:", "data: [DONE]"])
    def test_ignored_lines(self, line):
        assert parse_sse_line(line) is None


class TestStreaming:

    @pytest.mark.asyncio
    async def test_streams_chunks(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            body = sse_body(
                chunk_payload("Hel"),
                chunk_payload("lo", "STOP", usage={"promptTokenCount": 3, "totalTokenCount": 5}),
            )
            return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})

        generator = make_generator(handler)

        stream = await generator.generate_content_stream(make_request(), "prompt-1")
        chunks = [chunk async for chunk in stream]

        assert [chunk.text for chunk in chunks] == ["Hel", "lo"]
        assert chunks[-1].usage_metadata.prompt_token_count == 3

        request = seen["request"]
        assert request.method == "POST"
        assert request.url.path == "/v1beta/models/gemini-2.5-pro:streamGenerateContent"
        assert request.url.params["alt"] == "sse"
        assert request.headers["x-goog-api-key"] == "test-key"
        assert json.loads(request.content)["contents"][0]["parts"] == [{"text": "hi"}]

    @pytest.mark.asyncio
    async def test_error_status_raises_classifiable_api_error(self):
        body = json.dumps(error_payload(429, "quota", [quota_failure("GenerateRequestsPerDay")]))

        def handler(request):
            return httpx.Response(429, text=body, headers={"retry-after": "60"})

        generator = make_generator(handler)

        with pytest.raises(ApiError) as exc_info:
            await generator.generate_content_stream(make_request(), "p")

        error = exc_info.value
        assert error.status == 429
        assert error.headers["retry-after"] == "60"
        assert classify_error(error).category == ErrorCategory.TERMINAL_QUOTA

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        generator = make_generator(handler)

        with pytest.raises(httpx.ConnectError):
            await generator.generate_content_stream(make_request(), "p")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        generator = make_generator(lambda request: httpx.Response(200), api_key=None)

        assert not generator.is_available()
        with pytest.raises(ValueError):
            await generator.generate_content_stream(make_request(), "p")

    @pytest.mark.asyncio
    async def test_cancelled_signal_stops_reading(self):
        def handler(request):
            return httpx.Response(200, text=sse_body(chunk_payload("a"), chunk_payload("b", "STOP")))

        generator = make_generator(handler)
        signal = CancellationToken()

        stream = await generator.generate_content_stream(make_request(), "p", signal)
        first = await stream.__anext__()
        signal.cancel()

        assert first.text == "a"
        with pytest.raises(RequestCancelledError):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_pre_cancelled_signal(self):
        calls = []
        generator = make_generator(lambda request: calls.append(request) or httpx.Response(200))
        signal = CancellationToken()
        signal.cancel()

        with pytest.raises(RequestCancelledError):
            await generator.generate_content_stream(make_request(), "p", signal)
        assert calls == []

    @pytest.mark.asyncio
    async def test_aclose_only_closes_owned_client(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        generator = GeminiContentGenerator(api_key="k", base_url=BASE_URL, client=client)

        await generator.aclose()

        assert not client.is_closed
        await client.aclose()
