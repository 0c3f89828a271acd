"""Streaming helpers for chat turns."""

from .aggregator import CharacterTokenEstimator, estimate_token_count
from .channel import TurnStream
from .validator import (
    StreamValidator,
    ThoughtSummary,
    TurnCompletionRecord,
    consolidate_parts,
    parse_thought,
    validate_stream,
)

__all__ = [
    "CharacterTokenEstimator",
    "estimate_token_count",
    "TurnStream",
    "StreamValidator",
    "ThoughtSummary",
    "TurnCompletionRecord",
    "consolidate_parts",
    "parse_thought",
    "validate_stream",
]
