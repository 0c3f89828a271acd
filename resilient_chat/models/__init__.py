from .content import (
    Blob,
    Content,
    FileData,
    FunctionCall,
    FunctionResponse,
    Part,
    PartListUnion,
    Role,
    create_user_content,
    is_valid_content,
    parts_to_string,
    to_parts,
)
from .events import (
    AgentExecutionBlockedEvent,
    AgentExecutionStoppedEvent,
    Blocked,
    ChunkEvent,
    Committed,
    Failed,
    RetryEvent,
    Stopped,
    StreamEvent,
    StreamEventType,
    TurnOutcome,
)
from .generation import (
    Candidate,
    FinishReason,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    UsageMetadata,
)
from .tool_calls import (
    CompletedToolCall,
    ToolCallRecord,
    ToolCallRequestInfo,
    ToolCallResponseInfo,
)

__all__ = [
    "Blob",
    "Content",
    "FileData",
    "FunctionCall",
    "FunctionResponse",
    "Part",
    "PartListUnion",
    "Role",
    "create_user_content",
    "is_valid_content",
    "parts_to_string",
    "to_parts",
    "AgentExecutionBlockedEvent",
    "AgentExecutionStoppedEvent",
    "Blocked",
    "ChunkEvent",
    "Committed",
    "Failed",
    "RetryEvent",
    "Stopped",
    "StreamEvent",
    "StreamEventType",
    "TurnOutcome",
    "Candidate",
    "FinishReason",
    "GenerateContentConfig",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "UsageMetadata",
    "CompletedToolCall",
    "ToolCallRecord",
    "ToolCallRequestInfo",
    "ToolCallResponseInfo",
]
