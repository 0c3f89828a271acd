"""Transcript recording sinks."""

from .base import MODEL_MESSAGE, USER_MESSAGE, ChatRecorder, NullRecorder
from .in_memory import InMemoryChatRecorder, RecordedMessage

__all__ = [
    "MODEL_MESSAGE",
    "USER_MESSAGE",
    "ChatRecorder",
    "NullRecorder",
    "InMemoryChatRecorder",
    "RecordedMessage",
]
