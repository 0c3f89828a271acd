"""
End-of-stream validation for model turns.

``StreamValidator`` watches every chunk of one attempt, then decides whether
the completed stream is an acceptable turn. A stream is accepted when it
requested a tool call, or when it carries a finish reason other than
``MALFORMED_FUNCTION_CALL`` and some non-thought text.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..models.content import Content, Part, Role, is_valid_content
from ..models.generation import FinishReason, GenerateContentResponse
from ..reliability.errors import InvalidStreamError, InvalidStreamReason

_SUBJECT_PATTERN = re.compile(r"\*\*(.*?)\*\*", re.DOTALL)


@dataclass
class ThoughtSummary:
    subject: str
    description: str


def parse_thought(text: str) -> ThoughtSummary:
    """Split ``**Subject** description`` thought text."""
    match = _SUBJECT_PATTERN.search(text)
    subject = match.group(1).strip() if match else ""
    description = _SUBJECT_PATTERN.sub("", text, count=1).strip()
    return ThoughtSummary(subject=subject, description=description)


def consolidate_parts(parts: List[Part]) -> List[Part]:
    """Merge adjacent plain text parts; everything else stays separate."""
    consolidated: List[Part] = []
    for part in parts:
        last = consolidated[-1] if consolidated else None
        if last is not None and last.text and last.is_plain_text() and part.is_plain_text():
            consolidated[-1] = last.model_copy(update={"text": last.text + part.text})
        else:
            consolidated.append(part.model_copy(deep=True))
    return consolidated


@dataclass
class TurnCompletionRecord:
    """What one streaming attempt produced."""
    text: str = ""
    parts: List[Part] = field(default_factory=list)
    has_tool_call: bool = False
    finish_reason: Optional[str] = None

    def to_content(self) -> Content:
        return Content(role=Role.MODEL, parts=[part.model_copy(deep=True) for part in self.parts])


class StreamValidator:
    """Accumulates one attempt's chunks and judges the result."""

    def __init__(self):
        self._parts: List[Part] = []
        self._has_tool_call = False
        self._finish_reason: Optional[str] = None
        self._record: Optional[TurnCompletionRecord] = None

    def observe(self, chunk: GenerateContentResponse) -> List[ThoughtSummary]:
        """
        Fold ``chunk`` into the running record.

        Returns the thoughts found in the chunk so the caller can forward them
        to a transcript recorder.
        """
        for candidate in chunk.candidates:
            if candidate.finish_reason:
                self._finish_reason = candidate.finish_reason
                break

        candidate = chunk.first_candidate
        if candidate is None or candidate.content is None or not is_valid_content(candidate.content):
            return []

        parts = candidate.content.parts
        thoughts: List[ThoughtSummary] = []
        if any(part.thought for part in parts):
            first = parts[0]
            if first.text:
                thoughts.append(parse_thought(first.text))
        if any(part.function_call is not None for part in parts):
            self._has_tool_call = True
        self._parts.extend(parts)
        return thoughts

    def finalize(self) -> TurnCompletionRecord:
        parts = consolidate_parts(self._parts)
        text = "".join(part.text for part in parts if part.text and not part.thought).strip()
        self._record = TurnCompletionRecord(
            text=text,
            parts=parts,
            has_tool_call=self._has_tool_call,
            finish_reason=self._finish_reason,
        )
        return self._record

    @property
    def record(self) -> TurnCompletionRecord:
        if self._record is None:
            return self.finalize()
        return self._record

    def verdict(self) -> Optional[InvalidStreamReason]:
        """None when the turn is acceptable, otherwise why it is not."""
        record = self.record
        if record.has_tool_call:
            return None
        if not record.finish_reason:
            return InvalidStreamReason.NO_FINISH_REASON
        if record.finish_reason == FinishReason.MALFORMED_FUNCTION_CALL:
            return InvalidStreamReason.MALFORMED_FUNCTION_CALL
        if not record.text:
            return InvalidStreamReason.NO_RESPONSE_TEXT
        return None

    def raise_if_invalid(self) -> TurnCompletionRecord:
        reason = self.verdict()
        if reason is not None:
            raise InvalidStreamError(reason)
        return self.record


def validate_stream(chunks: List[GenerateContentResponse]) -> Tuple[TurnCompletionRecord, Optional[InvalidStreamReason]]:
    """Validate a fully collected stream in one call."""
    validator = StreamValidator()
    for chunk in chunks:
        validator.observe(chunk)
    record = validator.finalize()
    return record, validator.verdict()
