from .handler import (
    AUTH_API_KEY,
    AUTH_OAUTH,
    FALLBACK_AUTH_TYPES,
    UPGRADE_URL,
    handle_fallback,
)
from .negotiation import (
    FALLBACK_INTENTS,
    RETRY_ALWAYS,
    RETRY_LATER,
    RETRY_ONCE,
    STOP,
    UPGRADE,
    FallbackRequest,
    NegotiationBroker,
    ValidationRequest,
    describe_fallback,
    get_negotiation_broker,
    reset_negotiation_broker,
)

__all__ = [
    "AUTH_API_KEY",
    "AUTH_OAUTH",
    "FALLBACK_AUTH_TYPES",
    "UPGRADE_URL",
    "handle_fallback",
    "FALLBACK_INTENTS",
    "RETRY_ALWAYS",
    "RETRY_LATER",
    "RETRY_ONCE",
    "STOP",
    "UPGRADE",
    "FallbackRequest",
    "NegotiationBroker",
    "ValidationRequest",
    "describe_fallback",
    "get_negotiation_broker",
    "reset_negotiation_broker",
]
