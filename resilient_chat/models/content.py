"""Conversation content types.

Wire-shaped models for conversation history. Field names are snake_case in
Python and camelCase on the wire (``model_dump(by_alias=True)``).
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models that mirror the REST payload shape."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Role(str, Enum):
    """Conversation turn roles."""
    USER = "user"
    MODEL = "model"


class FunctionCall(WireModel):
    id: Optional[str] = None
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class FunctionResponse(WireModel):
    id: Optional[str] = None
    name: str
    response: Dict[str, Any] = Field(default_factory=dict)


class Blob(WireModel):
    mime_type: str
    data: str  # base64


class FileData(WireModel):
    mime_type: Optional[str] = None
    file_uri: str


class Part(WireModel):
    """One element of a turn. Exactly one payload field is expected to be set."""

    text: Optional[str] = None
    thought: Optional[bool] = None
    thought_signature: Optional[str] = None
    function_call: Optional[FunctionCall] = None
    function_response: Optional[FunctionResponse] = None
    inline_data: Optional[Blob] = None
    file_data: Optional[FileData] = None

    def is_empty(self) -> bool:
        """True when none of the declared fields is set; unknown keys do not count."""
        return all(getattr(self, name) is None for name in type(self).model_fields)

    def is_plain_text(self) -> bool:
        """Text that is not a thought and carries no other payload."""
        return (
            isinstance(self.text, str)
            and not self.thought
            and self.function_call is None
            and self.function_response is None
            and self.inline_data is None
            and self.file_data is None
        )


class Content(WireModel):
    role: Role
    parts: List[Part] = Field(default_factory=list)

    def is_function_response(self) -> bool:
        """A user turn made only of tool results."""
        return (
            self.role == Role.USER
            and bool(self.parts)
            and all(part.function_response is not None for part in self.parts)
        )


PartLike = Union[str, Part, Dict[str, Any]]
PartListUnion = Union[PartLike, Sequence[PartLike]]


def to_part(value: PartLike) -> Part:
    if isinstance(value, Part):
        return value
    if isinstance(value, str):
        return Part(text=value)
    if isinstance(value, dict):
        return Part.model_validate(value)
    raise TypeError(f"Cannot convert {type(value).__name__} to Part")


def to_parts(message: PartListUnion) -> List[Part]:
    if isinstance(message, (str, Part, dict)):
        return [to_part(message)]
    return [to_part(item) for item in message]


def create_user_content(message: PartListUnion) -> Content:
    return Content(role=Role.USER, parts=to_parts(message))


def parts_to_string(parts: Sequence[Part]) -> str:
    """Human-readable rendering of parts, used for transcripts."""
    rendered = []
    for part in parts:
        if part.text is not None:
            rendered.append(part.text)
        elif part.function_call is not None:
            rendered.append(f"[Function Call: {part.function_call.name}]")
        elif part.function_response is not None:
            rendered.append(f"[Function Response: {part.function_response.name}]")
        elif part.inline_data is not None:
            rendered.append(f"<{part.inline_data.mime_type}>")
        elif part.file_data is not None:
            rendered.append(f"[File: {part.file_data.file_uri}]")
    return "".join(rendered)


def is_valid_content(content: Content) -> bool:
    """A turn is valid when it has parts and none is empty or empty-text."""
    if not content.parts:
        return False
    for part in content.parts:
        if part.is_empty():
            return False
        if not part.thought and part.text is not None and part.text == "":
            return False
    return True
