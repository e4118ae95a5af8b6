"""Tests for randomized and stable request pacing."""

from unittest.mock import patch

from src.shared.delays import fnv1a_64, random_delay, stable_pacing_ms


class TestRandomDelay:

    def test_delay_within_bounds(self):
        with patch('src.shared.delays.sleep_or_cancel') as mock_sleep:
            delay = random_delay(0.2, 0.4)
        assert 0.2 <= delay <= 0.4
        mock_sleep.assert_called_once()

    def test_zero_delay_does_not_sleep(self):
        with patch('src.shared.delays.sleep_or_cancel') as mock_sleep:
            assert random_delay(0, 0) == 0
        mock_sleep.assert_not_called()


class TestFnv1a:

    def test_known_vectors(self):
        assert fnv1a_64("") == 0xcbf29ce484222325
        assert fnv1a_64("a") == 0xaf63dc4c8601ec8c

    def test_fits_in_64_bits(self):
        assert 0 <= fnv1a_64("a much longer brand slug for hashing") < 2 ** 64


class TestStablePacing:

    def test_deterministic(self):
        assert stable_pacing_ms("cann", 3, 350, 400) == stable_pacing_ms("cann", 3, 350, 400)

    def test_within_window(self):
        for index in range(20):
            value = stable_pacing_ms("cycling-frog", index, 350, 400)
            assert 350 <= value < 750

    def test_varies_with_index(self):
        values = {stable_pacing_ms("cann", index, 350, 400) for index in range(10)}
        assert len(values) > 1

    def test_zero_spread_is_base(self):
        assert stable_pacing_ms("cann", 7, 350, 0) == 350
