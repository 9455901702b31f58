"""Tests for feed retry with backoff."""

import pytest

from scalper_app.errors import MalformedDataError, TransientFeedError
from scalper_app.execution.base import call_with_retry


class FlakyCall:
    def __init__(self, failures, result="ok", error=None):
        self.failures = failures
        self.result = result
        self.error = error or TransientFeedError("timeout", endpoint="fake")
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        self.last_args = (args, kwargs)
        if self.calls <= self.failures:
            raise self.error
        return self.result


class TestCallWithRetry:

    def test_success_first_try(self):
        delays = []
        func = FlakyCall(0)
        assert call_with_retry(func, "a", key="b", sleep=delays.append) == "ok"
        assert func.last_args == (("a",), {"key": "b"})
        assert delays == []

    def test_retries_with_exponential_backoff(self):
        delays = []
        func = FlakyCall(2)
        result = call_with_retry(func, max_retries=2, base_delay=0.5, sleep=delays.append)
        assert result == "ok"
        assert func.calls == 3
        assert delays == [0.5, 1.0]

    def test_gives_up_after_max_retries(self):
        delays = []
        func = FlakyCall(10)
        with pytest.raises(TransientFeedError) as exc_info:
            call_with_retry(func, max_retries=2, base_delay=0.1, sleep=delays.append)
        assert func.calls == 3
        assert exc_info.value.retry_count == 2
        assert exc_info.value.max_retries == 2

    def test_data_quality_errors_not_retried(self):
        delays = []
        func = FlakyCall(1, error=MalformedDataError("bad payload"))
        with pytest.raises(MalformedDataError):
            call_with_retry(func, sleep=delays.append)
        assert func.calls == 1
        assert delays == []
