"""Unit tests for the sliding window rate limiter."""

import pytest

from anki_companion.errors import RateLimitedError
from anki_companion.rate_limit import SlidingWindowLimiter, client_key


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestSlidingWindowLimiter:
    """Tests for SlidingWindowLimiter."""

    def test_twenty_first_request_rejected(self):
        """Test the default limit allows 20 hits per minute."""
        limiter = SlidingWindowLimiter(clock=FakeClock())

        for _ in range(20):
            limiter.hit("1.2.3.4")

        with pytest.raises(RateLimitedError) as exc_info:
            limiter.hit("1.2.3.4")
        assert exc_info.value.retry_after_seconds >= 1
        assert exc_info.value.limit == 20

    def test_remaining_counts_down(self):
        """Test each hit reports the remaining budget."""
        limiter = SlidingWindowLimiter(limit=3, window=60, clock=FakeClock())

        assert [limiter.hit("a").remaining for _ in range(3)] == [2, 1, 0]

    def test_window_slides(self):
        """Test old hits stop counting once the window passes."""
        clock = FakeClock()
        limiter = SlidingWindowLimiter(limit=2, window=60, clock=clock)
        limiter.hit("a")
        clock.now += 30
        limiter.hit("a")

        with pytest.raises(RateLimitedError) as exc_info:
            limiter.hit("a")
        assert exc_info.value.retry_after_seconds == 30

        clock.now += 30
        assert limiter.hit("a").remaining == 0

    def test_retry_after_at_least_one_second(self):
        """Test the retry delay never rounds down to zero."""
        clock = FakeClock()
        limiter = SlidingWindowLimiter(limit=1, window=60, clock=clock)
        limiter.hit("a")
        clock.now += 59.9

        with pytest.raises(RateLimitedError) as exc_info:
            limiter.hit("a")
        assert exc_info.value.retry_after_seconds == 1

    def test_keys_are_independent(self):
        """Test one client hitting the limit does not affect another."""
        limiter = SlidingWindowLimiter(limit=1, window=60, clock=FakeClock())
        limiter.hit("a")

        assert limiter.hit("b").remaining == 0

    def test_reset(self):
        """Test reset clears all recorded hits."""
        limiter = SlidingWindowLimiter(limit=1, window=60, clock=FakeClock())
        limiter.hit("a")
        limiter.reset()

        assert limiter.hit("a").remaining == 0

    def test_idle_clients_are_forgotten(self):
        """Test clients without hits inside the window are dropped from memory."""
        clock = FakeClock()
        limiter = SlidingWindowLimiter(limit=5, window=60, clock=clock)
        for index in range(1000):
            limiter.hit(f"10.0.{index // 256}.{index % 256}")

        clock.now += 3600
        limiter.hit("10.9.9.9")

        assert list(limiter._hits) == ["10.9.9.9"]

    def test_active_clients_keep_their_budget(self):
        """Test a sweep does not reset clients still inside the window."""
        clock = FakeClock()
        limiter = SlidingWindowLimiter(limit=2, window=60, clock=clock)
        limiter.hit("a")
        clock.now += 59
        limiter.hit("a")
        clock.now += 2
        limiter.hit("b")

        assert limiter.hit("a").remaining == 0

    def test_headers(self):
        """Test the success headers describe the budget."""
        limiter = SlidingWindowLimiter(limit=5, window=60, clock=FakeClock(1000.0))

        headers = limiter.hit("a").headers()

        assert headers == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "4",
            "X-RateLimit-Reset": "1060",
        }


class TestClientKey:
    """Tests for client_key function."""

    def test_forwarded_for_first_entry(self):
        assert client_key({"x-forwarded-for": "10.0.0.1, 10.0.0.2"}, "127.0.0.1") == "10.0.0.1"

    def test_real_ip(self):
        assert client_key({"x-real-ip": "10.0.0.3"}, "127.0.0.1") == "10.0.0.3"

    def test_socket_address(self):
        assert client_key({}, "127.0.0.1") == "127.0.0.1"

    def test_unknown(self):
        assert client_key({"x-forwarded-for": "  "}, None) == "unknown"
