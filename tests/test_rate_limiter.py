from datetime import datetime, timedelta

from legalpro_lib.rate_limiter import RateLimiter


def test_blocks_after_limit_per_key():
    limiter = RateLimiter(max_requests=2)
    now = datetime(2024, 1, 1, 12, 0)

    assert limiter.check_limit('41.0.0.1', now)
    assert limiter.check_limit('41.0.0.1', now)
    assert not limiter.check_limit('41.0.0.1', now)
    assert limiter.check_limit('41.0.0.2', now)


def test_window_slides():
    limiter = RateLimiter(max_requests=1, window=timedelta(hours=1))
    start = datetime(2024, 1, 1, 12, 0)

    assert limiter.check_limit('ip', start)
    assert not limiter.check_limit('ip', start + timedelta(minutes=59))
    assert limiter.check_limit('ip', start + timedelta(hours=1))


def test_reset():
    limiter = RateLimiter(max_requests=1)
    limiter.check_limit('ip')
    limiter.reset()
    assert limiter.check_limit('ip')
