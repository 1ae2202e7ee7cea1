"""
In-memory attempt counter for login and registration.

Records live in process memory only: they are lost on restart and are not
shared between server instances, so this is a soft brake on brute force, not
a security boundary.
"""
import threading
import time
from collections import namedtuple
from datetime import timedelta

RateLimitPolicy = namedtuple("RateLimitPolicy", ["max_attempts", "window"])

LOGIN_POLICY = RateLimitPolicy(max_attempts=5, window=timedelta(minutes=15))
REGISTER_POLICY = RateLimitPolicy(max_attempts=3, window=timedelta(minutes=60))


class AttemptRecord:
    __slots__ = ("attempts", "last_attempt", "window")

    def __init__(self, attempts: int, last_attempt: float, window: float):
        self.attempts = attempts
        self.last_attempt = last_attempt
        self.window = window

    def expired(self, now: float) -> bool:
        return now - self.last_attempt > self.window


def _seconds(window) -> float:
    if isinstance(window, timedelta):
        return window.total_seconds()
    return float(window)


# Expired records are swept at most this often (seconds)
SWEEP_INTERVAL = 60.0


class RateLimiter:
    def __init__(self, clock=time.monotonic, sweep_interval: float = SWEEP_INTERVAL):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = None
        self._records: dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @staticmethod
    def key(email: str, action: str) -> str:
        return f"{action}:{email.lower()}"

    def _sweep(self, now: float) -> None:
        # An expired record counts the same as a missing one, so dropping it
        # never changes a later decision. Caller holds the lock.
        if self._last_sweep is not None and now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        for key in [k for k, record in self._records.items() if record.expired(now)]:
            del self._records[key]

    def check_and_record(self, email: str, action: str, max_attempts: int, window) -> bool:
        """
        Record one attempt and report whether the caller is now limited.

        The first attempt, and the first one after `window` has elapsed since
        the previous attempt, starts a fresh count of 1.
        """
        key = self.key(email, action)
        window_seconds = _seconds(window)

        with self._lock:
            now = self._clock()
            self._sweep(now)
            record = self._records.get(key)

            if record is None or record.expired(now):
                self._records[key] = AttemptRecord(1, now, window_seconds)
                return False

            record.attempts += 1
            record.last_attempt = now
            record.window = window_seconds
            return record.attempts > max_attempts

    def clear(self, email: str, action: str) -> None:
        with self._lock:
            self._records.pop(self.key(email, action), None)

    def attempts(self, email: str, action: str) -> int:
        with self._lock:
            record = self._records.get(self.key(email, action))
            return record.attempts if record else 0

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self._last_sweep = None
