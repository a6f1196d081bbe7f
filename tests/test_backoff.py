"""Tests for RetrySchedule."""
import pytest

from licensegate.core.backoff import RetrySchedule


class TestRetrySchedule:
    """Pauses between license server attempts."""

    def test_single_attempt_never_pauses(self):
        assert list(RetrySchedule(max_attempts=1).pauses()) == [0.0]

    def test_pauses_double_without_jitter(self):
        schedule = RetrySchedule(max_attempts=4, base_delay=0.5, max_delay=5.0, jitter=lambda: 0.0)

        assert list(schedule.pauses()) == [0.0, 0.5, 1.0, 2.0]

    def test_pauses_are_capped(self):
        schedule = RetrySchedule(max_attempts=6, base_delay=1.0, max_delay=3.0, jitter=lambda: 0.0)

        assert list(schedule.pauses())[-3:] == [3.0, 3.0, 3.0]

    def test_jitter_adds_at_most_ten_percent(self):
        schedule = RetrySchedule(max_attempts=3, base_delay=1.0, jitter=lambda: 0.5)

        assert list(schedule.pauses()) == pytest.approx([0.0, 1.05, 2.1])

    @pytest.mark.parametrize("max_attempts", [0, -3])
    def test_at_least_one_attempt(self, max_attempts):
        assert list(RetrySchedule(max_attempts=max_attempts).pauses()) == [0.0]

    def test_delay_before_retry(self):
        schedule = RetrySchedule(base_delay=0.25, max_delay=10.0, jitter=lambda: 0.0)

        assert [schedule.delay_before_retry(n) for n in (1, 2, 3)] == [0.25, 0.5, 1.0]
