from .generator import GeminiContentGenerator, build_request_payload, parse_sse_line

__all__ = [
    "GeminiContentGenerator",
    "build_request_payload",
    "parse_sse_line",
]
