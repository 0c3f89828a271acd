"""
Resilient Chat SDK - streaming chat sessions that survive an unreliable model API.

This package provides:
- ChatSession: serialized, streaming turns over curated conversation history
- RetryManager / retry_with_backoff: backoff with quota-aware classification
- ErrorClassifier: closed error taxonomy for API, quota and network failures
- StreamValidator: end-of-stream checks that trigger content retries
- NegotiationBroker: one pending fallback/validation prompt per process
"""

__version__ = "0.1.0"

from .chat import ChatContext, ChatSession
from .config import ChatSettings
from .fallback import NegotiationBroker, get_negotiation_broker, handle_fallback
from .models import (
    Content,
    GenerateContentConfig,
    GenerateContentResponse,
    Part,
    Role,
    StreamEventType,
)
from .providers import ContentGenerator, GeminiContentGenerator
from .reliability import (
    CancellationToken,
    ErrorCategory,
    ErrorClassifier,
    RetryManager,
    RetryOptions,
    retry_with_backoff,
)
from .services import ModelConfigKey, ModelConfigService
from .streaming import StreamValidator, TurnStream

__all__ = [
    # Session
    "ChatContext",
    "ChatSession",
    "ChatSettings",
    "TurnStream",

    # Negotiation
    "NegotiationBroker",
    "get_negotiation_broker",
    "handle_fallback",

    # Models
    "Content",
    "GenerateContentConfig",
    "GenerateContentResponse",
    "Part",
    "Role",
    "StreamEventType",

    # Providers
    "ContentGenerator",
    "GeminiContentGenerator",

    # Reliability
    "CancellationToken",
    "ErrorCategory",
    "ErrorClassifier",
    "RetryManager",
    "RetryOptions",
    "retry_with_backoff",
    "StreamValidator",

    # Config services
    "ModelConfigKey",
    "ModelConfigService",
]
