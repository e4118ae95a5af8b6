"""Tests for with_retry and its backoff policy."""

import logging
import threading
from unittest.mock import Mock, patch

import pytest

from src.shared.http import FetchCancelled, FetchError
from src.shared.retry import compute_backoff, is_retriable, sleep_or_cancel, with_retry


class TestIsRetriable:

    @pytest.mark.parametrize("error", [
        FetchError("u", "t", kind='timeout'),
        FetchError("u", "c", kind='connection'),
        FetchError("u", "s", status=503),
        FetchError("u", "r", status=429),
    ])
    def test_transient_errors(self, error):
        assert is_retriable(error)

    @pytest.mark.parametrize("error", [
        FetchError("u", "nf", status=404),
        FetchError("u", "fb", status=403),
        FetchError("u", "bad json", kind='decode'),
        FetchError("u", "redirect loop", kind='request'),
        FetchCancelled(),
        ValueError("not a fetch error"),
    ])
    def test_permanent_errors(self, error):
        assert not is_retriable(error)


class TestComputeBackoff:

    def test_exponential_without_jitter(self):
        assert compute_backoff(1, 0.5, 8.0, jitter=0) == 0.5
        assert compute_backoff(2, 0.5, 8.0, jitter=0) == 1.0
        assert compute_backoff(3, 0.5, 8.0, jitter=0) == 2.0

    def test_capped_at_max_delay(self):
        assert compute_backoff(10, 0.5, 8.0, jitter=0) == 8.0

    def test_jitter_stays_in_band(self):
        for _ in range(50):
            delay = compute_backoff(2, 1.0, 8.0, jitter=0.25)
            assert 1.5 <= delay <= 2.5

    def test_retry_after_is_a_floor(self):
        assert compute_backoff(1, 0.5, 8.0, jitter=0, retry_after=5.0) == 5.0


class TestWithRetry:
    """with_retry retries transient failures only and re-raises the last error."""

    def test_returns_first_success(self):
        op = Mock(return_value="ok")
        assert with_retry(op, max_attempts=3) == "ok"
        assert op.call_count == 1

    def test_retries_transient_then_succeeds(self):
        op = Mock(side_effect=[FetchError("u", "boom", status=502), "ok"])
        with patch('src.shared.retry.sleep_or_cancel') as mock_sleep:
            assert with_retry(op, max_attempts=3, base_delay=0.01) == "ok"
        assert op.call_count == 2
        assert mock_sleep.call_count == 1

    def test_permanent_error_short_circuits(self):
        op = Mock(side_effect=FetchError("u", "gone", status=404))
        with patch('src.shared.retry.sleep_or_cancel') as mock_sleep:
            with pytest.raises(FetchError):
                with_retry(op, max_attempts=5)
        assert op.call_count == 1
        mock_sleep.assert_not_called()

    def test_exhaustion_raises_last_error(self):
        errors = [FetchError("u", f"fail {i}", kind='timeout') for i in range(3)]
        op = Mock(side_effect=errors)
        with patch('src.shared.retry.sleep_or_cancel'):
            with pytest.raises(FetchError) as exc_info:
                with_retry(op, max_attempts=3)
        assert exc_info.value is errors[-1]
        assert op.call_count == 3

    def test_retry_after_is_honoured_but_capped(self):
        op = Mock(side_effect=[FetchError("u", "slow down", status=429, retry_after=500.0), "ok"])
        with patch('src.shared.retry.sleep_or_cancel') as mock_sleep:
            with_retry(op, max_attempts=2, base_delay=0.01, max_retry_after=30.0)
        delay = mock_sleep.call_args[0][0]
        assert 30.0 <= delay < 31.0

    def test_logs_retry_with_label(self, caplog):
        op = Mock(side_effect=[FetchError("https://api.example.com/x?key=s", "boom", kind='connection'), "ok"])
        with patch('src.shared.retry.sleep_or_cancel'), caplog.at_level(logging.WARNING):
            with_retry(op, max_attempts=2, label="[cann]")
        messages = [record.message for record in caplog.records]
        assert any(m.startswith("[cann] Transient failure") for m in messages)
        assert not any("key=s" in m for m in messages)

    def test_cancel_before_first_attempt(self):
        cancel = threading.Event()
        cancel.set()
        op = Mock()
        with pytest.raises(FetchCancelled):
            with_retry(op, cancel_event=cancel)
        op.assert_not_called()


class TestSleepOrCancel:

    def test_cancel_wakes_sleep(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(FetchCancelled):
            sleep_or_cancel(10.0, cancel)

    def test_plain_sleep_without_token(self):
        with patch('src.shared.retry.time.sleep') as mock_sleep:
            sleep_or_cancel(0.5)
        mock_sleep.assert_called_once_with(0.5)
