"""
Tests for conflict retry logic.
"""

import time

import pytest

from placement_engine.core.exceptions import (
    ConflictRetryable,
    ConstraintViolation,
    OperationTimeout,
    StoreUnavailable,
)
from placement_engine.utils.retry import deadline_expired, retry_on_conflict, retrying


class TestRetryOnConflict:
    """Test the retry decorator."""

    def test_success_on_first_try(self):
        call_count = [0]

        @retry_on_conflict(max_attempts=3, base_delay=0)
        def succeeds(deadline=None):
            call_count[0] += 1
            return "success"

        assert succeeds() == "success"
        assert call_count[0] == 1

    def test_retry_then_succeed(self):
        call_count = [0]

        @retry_on_conflict(max_attempts=3, base_delay=0)
        def conflicts_twice(deadline=None):
            call_count[0] += 1
            if call_count[0] < 3:
                raise ConflictRetryable("items", "k")
            return "success"

        assert conflicts_twice() == "success"
        assert call_count[0] == 3

    def test_attempts_exhausted(self):
        call_count = [0]

        @retry_on_conflict(max_attempts=2, base_delay=0)
        def always_conflicts(deadline=None):
            call_count[0] += 1
            raise ConflictRetryable("items", "k")

        with pytest.raises(StoreUnavailable):
            always_conflicts()
        assert call_count[0] == 2

    def test_other_errors_not_retried(self):
        call_count = [0]

        @retry_on_conflict(max_attempts=3, base_delay=0)
        def violates(deadline=None):
            call_count[0] += 1
            raise ConstraintViolation("nope")

        with pytest.raises(ConstraintViolation):
            violates()
        assert call_count[0] == 1

    def test_expired_deadline_skips_call(self):
        call_count = [0]

        @retry_on_conflict(max_attempts=3, base_delay=0)
        def work(deadline=None):
            call_count[0] += 1

        with pytest.raises(OperationTimeout):
            work(deadline=time.monotonic() - 1)
        assert call_count[0] == 0

    def test_backoff_past_deadline_times_out(self):
        @retry_on_conflict(max_attempts=5, base_delay=10, max_delay=10)
        def always_conflicts(deadline=None):
            raise ConflictRetryable("items", "k")

        with pytest.raises(OperationTimeout):
            always_conflicts(deadline=time.monotonic() + 1)

    def test_on_retry_callback(self):
        calls = []
        attempts = [0]

        @retry_on_conflict(max_attempts=3, base_delay=0, on_retry=lambda a, e, d: calls.append(a))
        def conflicts_once(deadline=None):
            attempts[0] += 1
            if attempts[0] == 1:
                raise ConflictRetryable("items", "k")
            return True

        conflicts_once()
        assert calls == [1]

    def test_retrying_uses_settings(self, settings):
        settings.max_commit_attempts = 4
        call_count = [0]

        def always_conflicts(deadline=None):
            call_count[0] += 1
            raise ConflictRetryable("items", "k")

        with pytest.raises(StoreUnavailable):
            retrying(always_conflicts, settings)()
        assert call_count[0] == 4


class TestDeadlineExpired:
    def test_no_deadline(self):
        assert not deadline_expired(None)

    def test_past_and_future(self):
        assert deadline_expired(time.monotonic() - 1)
        assert not deadline_expired(time.monotonic() + 60)
