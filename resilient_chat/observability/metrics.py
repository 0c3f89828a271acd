from __future__ import annotations

from typing import Dict, Optional

from ..reliability.errors import ErrorCategory

CONTENT_CATEGORY = "content"


class RetryMetrics:
    """Tracks retry metrics for observability."""

    def __init__(self):
        self.retry_attempts: Dict[str, int] = {}
        self.retry_successes: Dict[str, int] = {}
        self.attempts_to_success: Dict[str, int] = {}
        self.retry_failures: Dict[str, int] = {}
        self.error_counts: Dict[str, int] = {}
        self.fallbacks: Dict[str, int] = {}
        self.content_retries: int = 0
        self.content_retry_failures: int = 0
        self.total_retry_delay_ms: float = 0.0

    @staticmethod
    def _category_name(category: Optional[ErrorCategory]) -> str:
        return category.value if category is not None else CONTENT_CATEGORY

    def record_attempt(self, model: str, category: Optional[ErrorCategory]):
        """Record a retry attempt; ``None`` means a content retry."""
        name = self._category_name(category)
        key = f"{model}:{name}"
        self.retry_attempts[key] = self.retry_attempts.get(key, 0) + 1
        self.error_counts[name] = self.error_counts.get(name, 0) + 1

    def record_success(self, model: str, attempts: int):
        """Record a success that took ``attempts`` calls in total."""
        self.retry_successes[model] = self.retry_successes.get(model, 0) + 1
        self.attempts_to_success[model] = self.attempts_to_success.get(model, 0) + attempts

    def record_failure(self, model: str, category: Optional[ErrorCategory] = None):
        self.retry_failures[model] = self.retry_failures.get(model, 0) + 1

    def record_fallback(self, model: str):
        self.fallbacks[model] = self.fallbacks.get(model, 0) + 1

    def record_content_retry(self):
        self.content_retries += 1

    def record_content_retry_failure(self):
        self.content_retry_failures += 1

    def add_delay(self, delay_ms: float):
        self.total_retry_delay_ms += delay_ms

    def get_success_rate(self, model: str) -> float:
        """Calculate retry success rate for a model."""
        successes = self.retry_successes.get(model, 0)
        failures = self.retry_failures.get(model, 0)
        total = successes + failures
        return successes / total if total > 0 else 0.0

    def snapshot(self) -> Dict[str, object]:
        return {
            "retry_attempts": dict(self.retry_attempts),
            "retry_successes": dict(self.retry_successes),
            "attempts_to_success": dict(self.attempts_to_success),
            "retry_failures": dict(self.retry_failures),
            "error_counts": dict(self.error_counts),
            "fallbacks": dict(self.fallbacks),
            "content_retries": self.content_retries,
            "content_retry_failures": self.content_retry_failures,
            "total_retry_delay_ms": self.total_retry_delay_ms,
        }
