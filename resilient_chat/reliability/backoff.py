"""Exponential backoff with symmetric jitter."""

import random
from typing import Optional

from ..config.constants import BACKOFF_JITTER_RATIO


def apply_jitter(delay_ms: float, rng: Optional[random.Random] = None) -> float:
    """Spread ``delay_ms`` uniformly over +/- the jitter ratio."""
    rng = rng or random
    jitter = delay_ms * BACKOFF_JITTER_RATIO * rng.uniform(-1, 1)
    return max(0.0, delay_ms + jitter)


def compute_backoff_delay(
    attempt: int,
    base_delay_ms: float,
    max_delay_ms: float,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Delay before retry number ``attempt`` (0-based).

    ``min(base * 2**attempt, max)`` with jitter applied, clamped to
    ``[0, max_delay_ms]``.
    """
    exponent = max(0, attempt)
    # Cap the exponent so huge attempt counts after fallback resets can't overflow
    capped = min(base_delay_ms * (2 ** min(exponent, 62)), max_delay_ms)
    return min(max_delay_ms, apply_jitter(capped, rng))
