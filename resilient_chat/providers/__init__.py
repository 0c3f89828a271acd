"""Content generators for the chat session."""

from .base import ContentGenerator
from .gemini import GeminiContentGenerator

__all__ = [
    "ContentGenerator",
    "GeminiContentGenerator",
]
