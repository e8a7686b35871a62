import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from pro_account.settings import Settings, settings


@dataclass
class RateLimitWindow:
    identifier: str
    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitInfo:
    count: int
    reset_in: float
    remaining: int


class FixedWindowRateLimiter:
    """Fixed-window request counter keyed by client identifier.

    Check-and-increment happens under one lock, so concurrent callers can never
    both take the last slot of a window. Memory is bounded: expired windows are
    swept at most once per window and, past ``max_identifiers``, the least
    recently seen identifier is evicted.
    """

    def __init__(
        self,
        *,
        app_settings: Settings = settings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = app_settings.rate_limit_window_seconds
        self.max_requests = app_settings.rate_limit_max_requests
        self.max_identifiers = app_settings.rate_limit_max_identifiers
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: OrderedDict[str, RateLimitWindow] = OrderedDict()
        self._last_sweep = clock()

    def _expired(self, window: RateLimitWindow, now: float) -> bool:
        return now - window.window_start >= self.window_seconds

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        for key in [k for k, w in self._windows.items() if self._expired(w, now)]:
            del self._windows[key]
        self._last_sweep = now

    def is_allowed(self, identifier: str) -> bool:
        with self._lock:
            now = self._clock()
            self._sweep(now)

            window = self._windows.get(identifier)
            if window is None or self._expired(window, now):
                window = RateLimitWindow(identifier=identifier, count=0, window_start=now)
                self._windows[identifier] = window
            self._windows.move_to_end(identifier)
            while len(self._windows) > self.max_identifiers:
                self._windows.popitem(last=False)

            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def get_info(self, identifier: str) -> RateLimitInfo:
        with self._lock:
            now = self._clock()
            window = self._windows.get(identifier)
            if window is None or self._expired(window, now):
                return RateLimitInfo(
                    count=0,
                    reset_in=self.window_seconds,
                    remaining=self.max_requests,
                )
            return RateLimitInfo(
                count=window.count,
                reset_in=max(0.0, window.window_start + self.window_seconds - now),
                remaining=max(0, self.max_requests - window.count),
            )
