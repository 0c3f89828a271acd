"""Event models for streaming chat turns.

A turn stream yields ``StreamEvent`` instances; the turn itself resolves to
one of the ``TurnOutcome`` variants once the producer finishes.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .content import Content
from .generation import GenerateContentResponse


class StreamEventType(str, Enum):
    CHUNK = "chunk"
    RETRY = "retry"
    AGENT_EXECUTION_STOPPED = "agent_execution_stopped"
    AGENT_EXECUTION_BLOCKED = "agent_execution_blocked"


@dataclass
class StreamEvent:
    """Base class for all turn stream events."""
    type: StreamEventType = StreamEventType.CHUNK
    timestamp: float = field(default_factory=time.time)


@dataclass
class ChunkEvent(StreamEvent):
    """A response chunk forwarded from the model."""
    type: StreamEventType = field(default=StreamEventType.CHUNK, init=False)
    value: Optional[GenerateContentResponse] = None


@dataclass
class RetryEvent(StreamEvent):
    """Emitted before the turn is re-attempted; discard partial output."""
    type: StreamEventType = field(default=StreamEventType.RETRY, init=False)


@dataclass
class AgentExecutionStoppedEvent(StreamEvent):
    type: StreamEventType = field(default=StreamEventType.AGENT_EXECUTION_STOPPED, init=False)
    reason: str = ""


@dataclass
class AgentExecutionBlockedEvent(StreamEvent):
    type: StreamEventType = field(default=StreamEventType.AGENT_EXECUTION_BLOCKED, init=False)
    reason: str = ""


# Turn outcomes


@dataclass
class Committed:
    """The model turn passed validation and was appended to history."""
    content: Content


@dataclass
class Stopped:
    """A hook stopped the turn; nothing was committed."""
    reason: str


@dataclass
class Blocked:
    """A hook blocked the turn, optionally supplying a replacement response."""
    reason: str
    synthetic_response: Optional[GenerateContentResponse] = None


@dataclass
class Failed:
    error: BaseException


TurnOutcome = Union[Committed, Stopped, Blocked, Failed]
