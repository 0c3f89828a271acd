from .context import ChatContext, FallbackHandler, ValidationHandler
from .history import (
    ensure_active_loop_has_thought_signatures,
    extract_curated_history,
    find_active_loop_start,
    strip_thoughts,
    validate_history,
)
from .hooks import (
    AfterModelHookResult,
    BeforeModelHookResult,
    BeforeToolSelectionHookResult,
    HookSystem,
    ModelRequest,
)
from .session import ChatSession

__all__ = [
    "ChatContext",
    "ChatSession",
    "FallbackHandler",
    "ValidationHandler",
    "ensure_active_loop_has_thought_signatures",
    "extract_curated_history",
    "find_active_loop_start",
    "strip_thoughts",
    "validate_history",
    "AfterModelHookResult",
    "BeforeModelHookResult",
    "BeforeToolSelectionHookResult",
    "HookSystem",
    "ModelRequest",
]
