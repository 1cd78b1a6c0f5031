"""
Tests for retry_with_backoff, independent of any network code.
"""

from __future__ import annotations

import pytest

from presale_relay.core.retry import RetryExhausted, backoff_delay, retry_with_backoff


class Flaky:
    def __init__(self, failures: int, error: type[Exception] = ConnectionError) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return "ok"


def test_backoff_delay_doubles():
    assert [backoff_delay(n) for n in range(1, 5)] == [2.0, 4.0, 8.0, 16.0]
    assert backoff_delay(1, base_delay_sec=0.5) == 1.0


def test_returns_first_success_without_sleeping():
    sleeps: list[float] = []
    fn = Flaky(0)
    assert retry_with_backoff(fn, sleep=sleeps.append) == "ok"
    assert fn.calls == 1
    assert sleeps == []


def test_succeeds_on_last_attempt():
    sleeps: list[float] = []
    fn = Flaky(4)
    assert retry_with_backoff(fn, max_attempts=5, sleep=sleeps.append) == "ok"
    assert fn.calls == 5
    assert sleeps == [2.0, 4.0, 8.0, 16.0]


def test_exhausted_after_max_attempts():
    sleeps: list[float] = []
    fn = Flaky(10)
    with pytest.raises(RetryExhausted) as exc_info:
        retry_with_backoff(fn, max_attempts=5, sleep=sleeps.append)
    assert fn.calls == 5
    assert exc_info.value.attempts == 5
    assert str(exc_info.value.last_error) == "failure 5"
    assert len(sleeps) == 4


def test_give_up_on_propagates_immediately():
    sleeps: list[float] = []
    fn = Flaky(3, error=PermissionError)
    with pytest.raises(PermissionError):
        retry_with_backoff(fn, give_up_on=(PermissionError,), sleep=sleeps.append)
    assert fn.calls == 1
    assert sleeps == []


def test_errors_outside_retry_on_propagate():
    fn = Flaky(3, error=KeyError)
    with pytest.raises(KeyError):
        retry_with_backoff(fn, retry_on=(ConnectionError,), sleep=lambda s: None)
    assert fn.calls == 1


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        retry_with_backoff(lambda: None, max_attempts=0)
