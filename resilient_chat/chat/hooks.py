"""
Hook contract for intercepting model calls.

The hook execution engine lives outside this package; the session only
depends on ``HookSystem`` and the result models below.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ..models.content import Content
from ..models.generation import GenerateContentConfig, GenerateContentResponse

DEFAULT_STOP_REASON = "Agent execution stopped by hook"
DEFAULT_BLOCK_REASON = "Model call blocked by hook"
DEFAULT_AFTER_MODEL_BLOCK_REASON = "Agent execution blocked by hook"


class ModelRequest(BaseModel):
    """Final request parameters shown to hooks."""

    model_config = ConfigDict(protected_namespaces=())

    model: str
    config: GenerateContentConfig = Field(default_factory=GenerateContentConfig)
    contents: List[Content] = Field(default_factory=list)


class BeforeModelHookResult(BaseModel):
    stopped: bool = False
    blocked: bool = False
    reason: Optional[str] = None
    synthetic_response: Optional[GenerateContentResponse] = None
    modified_config: Optional[Dict[str, Any]] = None
    modified_contents: Optional[List[Content]] = None


class BeforeToolSelectionHookResult(BaseModel):
    tools: Optional[List[Dict[str, Any]]] = None
    tool_config: Optional[Dict[str, Any]] = None


class AfterModelHookResult(BaseModel):
    stopped: bool = False
    blocked: bool = False
    reason: Optional[str] = None
    # Replacement chunk; when absent the original chunk is forwarded
    response: Optional[GenerateContentResponse] = None


@runtime_checkable
class HookSystem(Protocol):
    async def fire_before_model_event(self, request: ModelRequest) -> BeforeModelHookResult: ...

    async def fire_before_tool_selection_event(
        self, request: ModelRequest
    ) -> BeforeToolSelectionHookResult: ...

    async def fire_after_model_event(
        self, original_request: ModelRequest, chunk: GenerateContentResponse
    ) -> AfterModelHookResult: ...
