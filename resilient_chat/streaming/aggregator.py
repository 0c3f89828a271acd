"""
Local token estimation for conversation content.

Used for the prompt token count before the endpoint has reported any usage
metadata (for instance right after ``set_history``).
"""

import json
from typing import Iterable

from ..models.content import Part


ASCII_TOKENS_PER_CHAR = 0.25
NON_ASCII_TOKENS_PER_CHAR = 1.3
# Above this size the per-character scan is skipped
FAST_PATH_CHAR_THRESHOLD = 100_000
FAST_PATH_CHARS_PER_TOKEN = 4

IMAGE_TOKEN_ESTIMATE = 3000
PDF_TOKEN_ESTIMATE = 25800


class CharacterTokenEstimator:
    """Character-based token estimation weighted for non-ASCII scripts."""

    def count_text(self, text: str) -> float:
        if not text:
            return 0.0
        if len(text) > FAST_PATH_CHAR_THRESHOLD:
            return len(text) / FAST_PATH_CHARS_PER_TOKEN
        tokens = 0.0
        for char in text:
            tokens += ASCII_TOKENS_PER_CHAR if ord(char) < 128 else NON_ASCII_TOKENS_PER_CHAR
        return tokens

    def count_part(self, part: Part) -> float:
        if part.text is not None:
            return self.count_text(part.text)
        if part.inline_data is not None or part.file_data is not None:
            mime_type = (part.inline_data or part.file_data).mime_type or ""
            return PDF_TOKEN_ESTIMATE if mime_type == "application/pdf" else IMAGE_TOKEN_ESTIMATE
        if part.function_call is not None:
            payload = part.function_call.name + json.dumps(part.function_call.args, default=str)
            return len(payload) / FAST_PATH_CHARS_PER_TOKEN
        if part.function_response is not None:
            payload = part.function_response.name + json.dumps(
                part.function_response.response, default=str
            )
            return len(payload) / FAST_PATH_CHARS_PER_TOKEN
        return 0.0

    def estimate_parts(self, parts: Iterable[Part]) -> int:
        return int(sum(self.count_part(part) for part in parts))


_default_estimator = CharacterTokenEstimator()


def estimate_token_count(parts: Iterable[Part]) -> int:
    """Estimate the token count of ``parts`` without calling the endpoint."""
    return _default_estimator.estimate_parts(parts)
