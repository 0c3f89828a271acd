"""Tool call records passed from the scheduler to the transcript recorder."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .content import Part


class ToolCallRequestInfo(BaseModel):
    call_id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    prompt_id: Optional[str] = None


class ToolCallResponseInfo(BaseModel):
    call_id: str
    response_parts: List[Part] = Field(default_factory=list)
    result_display: Optional[Any] = None
    error: Optional[str] = None


class CompletedToolCall(BaseModel):
    """A tool call that reached a terminal state in the scheduler."""

    request: ToolCallRequestInfo
    response: ToolCallResponseInfo
    status: str = "success"  # success | error | cancelled


class ToolCallRecord(BaseModel):
    """Flattened form written to the transcript."""

    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    result: List[Part] = Field(default_factory=list)
    status: str
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    result_display: Optional[Any] = None

    @classmethod
    def from_completed(cls, call: CompletedToolCall) -> "ToolCallRecord":
        return cls(
            id=call.request.call_id,
            name=call.request.name,
            args=call.request.args,
            result=call.response.response_parts,
            status=call.status,
            result_display=call.response.result_display,
        )
