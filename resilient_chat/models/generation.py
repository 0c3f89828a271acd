"""Request and response models for content generation."""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from .content import Content, FunctionCall, WireModel


class FinishReason(str, Enum):
    """Why the model stopped emitting tokens."""
    FINISH_REASON_UNSPECIFIED = "FINISH_REASON_UNSPECIFIED"
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    LANGUAGE = "LANGUAGE"
    BLOCKLIST = "BLOCKLIST"
    PROHIBITED_CONTENT = "PROHIBITED_CONTENT"
    SPII = "SPII"
    MALFORMED_FUNCTION_CALL = "MALFORMED_FUNCTION_CALL"
    IMAGE_SAFETY = "IMAGE_SAFETY"
    UNEXPECTED_TOOL_CALL = "UNEXPECTED_TOOL_CALL"
    OTHER = "OTHER"


class UsageMetadata(WireModel):
    prompt_token_count: Optional[int] = None
    candidates_token_count: Optional[int] = None
    total_token_count: Optional[int] = None
    thoughts_token_count: Optional[int] = None
    cached_content_token_count: Optional[int] = None
    tool_use_prompt_token_count: Optional[int] = None


class Candidate(WireModel):
    content: Optional[Content] = None
    # Kept as a plain string; unknown reasons from newer API versions pass through.
    # FinishReason members compare equal to their values.
    finish_reason: Optional[str] = None
    index: Optional[int] = None


class GenerateContentResponse(WireModel):
    """One streamed chunk (or a full response) from the model."""

    candidates: List[Candidate] = Field(default_factory=list)
    usage_metadata: Optional[UsageMetadata] = None
    model_version: Optional[str] = None
    response_id: Optional[str] = None
    prompt_feedback: Optional[Dict[str, Any]] = None

    @property
    def first_candidate(self) -> Optional[Candidate]:
        return self.candidates[0] if self.candidates else None

    @property
    def finish_reason(self) -> Optional[str]:
        candidate = self.first_candidate
        return candidate.finish_reason if candidate else None

    @property
    def parts(self):
        candidate = self.first_candidate
        if candidate is None or candidate.content is None:
            return []
        return candidate.content.parts

    @property
    def text(self) -> str:
        """Concatenated non-thought text of the first candidate."""
        return "".join(
            part.text for part in self.parts if part.text and not part.thought
        )

    @property
    def function_calls(self) -> List[FunctionCall]:
        return [part.function_call for part in self.parts if part.function_call is not None]


class GenerateContentConfig(WireModel):
    """Generation parameters. Extra keys pass through to the endpoint."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None
    candidate_count: Optional[int] = None
    stop_sequences: Optional[List[str]] = None
    response_mime_type: Optional[str] = None
    thinking_config: Optional[Dict[str, Any]] = None
    system_instruction: Optional[Union[str, Content]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_config: Optional[Dict[str, Any]] = None

    def merged(self, overrides: Optional[Dict[str, Any]]) -> "GenerateContentConfig":
        """Copy with non-None override values applied on top."""
        if not overrides:
            return self.model_copy(deep=True)
        data = self.model_dump(exclude_none=True)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return GenerateContentConfig.model_validate(data)


class GenerateContentRequest(WireModel):
    model: str
    contents: List[Content] = Field(default_factory=list)
    config: GenerateContentConfig = Field(default_factory=GenerateContentConfig)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        protected_namespaces=(),
    )
