import threading

from conftest import FakeClock
from pro_account.security.rate_limit import FixedWindowRateLimiter
from pro_account.settings import Settings


def _limiter(clock: FakeClock, **overrides) -> FixedWindowRateLimiter:
    s = Settings(_env_file=None, rate_limit_window_seconds=60, rate_limit_max_requests=3, **overrides)
    return FixedWindowRateLimiter(app_settings=s, clock=clock)


def test_denies_after_max_requests_then_resets(clock: FakeClock) -> None:
    limiter = _limiter(clock)

    assert [limiter.is_allowed("1.2.3.4") for _ in range(4)] == [True, True, True, False]
    clock.advance(59)
    assert limiter.is_allowed("1.2.3.4") is False
    clock.advance(1)
    assert limiter.is_allowed("1.2.3.4") is True


def test_identifiers_have_separate_windows(clock: FakeClock) -> None:
    limiter = _limiter(clock)
    for _ in range(3):
        limiter.is_allowed("a")

    assert limiter.is_allowed("a") is False
    assert limiter.is_allowed("b") is True


def test_get_info_reports_remaining(clock: FakeClock) -> None:
    limiter = _limiter(clock)
    assert limiter.get_info("a").remaining == 3

    limiter.is_allowed("a")
    limiter.is_allowed("a")
    info = limiter.get_info("a")
    assert info.count == 2
    assert info.remaining == 1
    assert info.reset_in == 60
    clock.advance(15)
    assert limiter.get_info("a").reset_in == 45

    for _ in range(5):
        limiter.is_allowed("a")
    assert limiter.get_info("a").remaining == 0


def test_capacity_evicts_least_recently_seen(clock: FakeClock) -> None:
    limiter = _limiter(clock, rate_limit_max_identifiers=2)
    for _ in range(3):
        limiter.is_allowed("a")
    limiter.is_allowed("b")
    limiter.is_allowed("c")

    # "a" was evicted, so it starts a fresh window.
    assert limiter.is_allowed("a") is True


def test_stale_windows_are_swept(clock: FakeClock) -> None:
    limiter = _limiter(clock)
    limiter.is_allowed("a")
    limiter.is_allowed("b")
    clock.advance(61)
    limiter.is_allowed("c")
    assert list(limiter._windows) == ["c"]


def test_concurrent_callers_never_exceed_the_limit() -> None:
    s = Settings(_env_file=None, rate_limit_window_seconds=3600, rate_limit_max_requests=50)
    limiter = FixedWindowRateLimiter(app_settings=s)
    allowed: list[bool] = []
    lock = threading.Lock()
    start = threading.Barrier(8)

    def worker() -> None:
        start.wait()
        for _ in range(25):
            ok = limiter.is_allowed("shared")
            with lock:
                allowed.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(allowed) == 200
    assert sum(allowed) == 50
