"""Transcript recording contract used by the chat session."""

from typing import Any, List, Optional, Protocol, runtime_checkable

from ..models.content import Content, PartListUnion
from ..models.generation import UsageMetadata
from ..models.tool_calls import ToolCallRecord
from ..streaming.validator import ThoughtSummary

# Message types
USER_MESSAGE = "user"
MODEL_MESSAGE = "gemini"


@runtime_checkable
class ChatRecorder(Protocol):
    """
    Sink for transcript events.

    The session treats every call as fire-and-forget: exceptions are logged
    and never abort a turn.
    """

    def record_message(
        self,
        model: str,
        type: str,
        content: Any,
        display_content: Optional[PartListUnion] = None,
    ) -> None: ...

    def record_message_tokens(self, usage: UsageMetadata) -> None: ...

    def record_thought(self, thought: ThoughtSummary) -> None: ...

    def record_tool_calls(self, model: str, tool_calls: List[ToolCallRecord]) -> None: ...

    def update_messages_from_history(self, history: List[Content]) -> None: ...


class NullRecorder:
    """Recorder that drops everything."""

    def record_message(self, model, type, content, display_content=None):
        pass

    def record_message_tokens(self, usage):
        pass

    def record_thought(self, thought):
        pass

    def record_tool_calls(self, model, tool_calls):
        pass

    def update_messages_from_history(self, history):
        pass
