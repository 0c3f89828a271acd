"""Unit tests for backoff delay computation."""

import random
import statistics

import pytest

from resilient_chat.reliability import apply_jitter, compute_backoff_delay


class TestBackoff:

    def test_never_exceeds_max(self, rng):
        for attempt in range(40):
            delay = compute_backoff_delay(attempt, 5000, 30000, rng)
            assert 0 <= delay <= 30000

    def test_jitter_stays_within_thirty_percent(self, rng):
        for _ in range(500):
            delay = apply_jitter(1000, rng)
            assert 700 <= delay <= 1300

    def test_jitter_never_negative(self, rng):
        assert apply_jitter(0, rng) == 0

    def test_non_decreasing_in_expectation(self):
        rng = random.Random(7)
        means = [
            statistics.mean(compute_backoff_delay(attempt, 100, 30000, rng) for _ in range(300))
            for attempt in range(8)
        ]
        for earlier, later in zip(means, means[1:]):
            assert later >= earlier

    def test_exponential_growth_before_cap(self):
        class NoJitter(random.Random):
            def uniform(self, a, b):
                return 0.0

        rng = NoJitter()
        delays = [compute_backoff_delay(attempt, 100, 10000, rng) for attempt in range(5)]

        assert delays == [100, 200, 400, 800, 1600]

    def test_huge_attempt_counts_do_not_overflow(self, rng):
        assert compute_backoff_delay(10_000, 5000, 30000, rng) <= 30000

    @pytest.mark.parametrize("attempt", [0, 1, 2])
    def test_zero_base_delay(self, rng, attempt):
        assert compute_backoff_delay(attempt, 0, 30000, rng) == 0
