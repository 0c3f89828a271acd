"""In-memory transcript recorder, mainly for tests and the CLI."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..models.content import Content, PartListUnion, Role, parts_to_string, to_parts
from ..models.generation import UsageMetadata
from ..models.tool_calls import ToolCallRecord
from ..streaming.validator import ThoughtSummary
from .base import MODEL_MESSAGE, USER_MESSAGE


@dataclass
class RecordedMessage:
    type: str
    model: str
    content: str
    display_content: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    thoughts: List[ThoughtSummary] = field(default_factory=list)
    tokens: Optional[Dict[str, Any]] = None
    tool_calls: List[ToolCallRecord] = field(default_factory=list)


def _render(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, Content):
        return parts_to_string(content.parts)
    return parts_to_string(to_parts(content))


class InMemoryChatRecorder:
    """Keeps the transcript as a list of ``RecordedMessage``.

    Thoughts and token counts attach to the most recent model message; if
    none exists yet they are buffered until one is recorded.
    """

    def __init__(self):
        self.messages: List[RecordedMessage] = []
        self._pending_thoughts: List[ThoughtSummary] = []
        self._pending_tokens: Optional[Dict[str, Any]] = None

    def record_message(self, model: str, type: str, content: Any,
                       display_content: Optional[PartListUnion] = None) -> None:
        message = RecordedMessage(
            type=type,
            model=model,
            content=_render(content),
            display_content=_render(display_content) if display_content is not None else None,
        )
        if type == MODEL_MESSAGE:
            message.thoughts, self._pending_thoughts = self._pending_thoughts, []
            if self._pending_tokens is not None:
                message.tokens, self._pending_tokens = self._pending_tokens, None
        self.messages.append(message)

    def record_message_tokens(self, usage: UsageMetadata) -> None:
        tokens = usage.model_dump(exclude_none=True)
        last = self._last_model_message()
        if last is not None and last.tokens is None:
            last.tokens = tokens
        else:
            self._pending_tokens = tokens

    def record_thought(self, thought: ThoughtSummary) -> None:
        self._pending_thoughts.append(thought)

    def record_tool_calls(self, model: str, tool_calls: List[ToolCallRecord]) -> None:
        last = self._last_model_message()
        if last is None:
            last = RecordedMessage(type=MODEL_MESSAGE, model=model, content="")
            self.messages.append(last)
        known = {call.id: index for index, call in enumerate(last.tool_calls)}
        for call in tool_calls:
            if call.id in known:
                last.tool_calls[known[call.id]] = call
            else:
                last.tool_calls.append(call)

    def update_messages_from_history(self, history: List[Content]) -> None:
        """Fill in results for tool calls that completed outside the session."""
        responses = {}
        for content in history:
            if content.role != Role.USER:
                continue
            for part in content.parts:
                if part.function_response is not None and part.function_response.id:
                    responses[part.function_response.id] = part
        if not responses:
            return
        for message in self.messages:
            for index, call in enumerate(message.tool_calls):
                if call.id in responses and not call.result:
                    message.tool_calls[index] = call.model_copy(
                        update={"result": [responses[call.id]]}
                    )

    def _last_model_message(self) -> Optional[RecordedMessage]:
        for message in reversed(self.messages):
            if message.type == MODEL_MESSAGE:
                return message
            if message.type == USER_MESSAGE:
                return None
        return None
