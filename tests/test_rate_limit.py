import threading
from datetime import timedelta

import pytest

from pollguard.utils.rate_limit import LOGIN_POLICY, REGISTER_POLICY, RateLimiter

WINDOW = timedelta(minutes=15)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


def test_default_policies():
    assert LOGIN_POLICY.max_attempts == 5
    assert LOGIN_POLICY.window == timedelta(minutes=15)
    assert REGISTER_POLICY.max_attempts == 3
    assert REGISTER_POLICY.window == timedelta(minutes=60)


def test_sixth_attempt_within_window_is_limited(limiter, clock):
    results = []
    for _ in range(6):
        results.append(limiter.check_and_record("ada@example.com", "login", 5, WINDOW))
        clock.advance(10)
    assert results == [False] * 5 + [True]


def test_attempt_after_window_resets_counter(limiter, clock):
    for _ in range(6):
        limiter.check_and_record("ada@example.com", "login", 5, WINDOW)

    clock.advance(WINDOW.total_seconds() + 1)
    assert limiter.check_and_record("ada@example.com", "login", 5, WINDOW) is False
    assert limiter.attempts("ada@example.com", "login") == 1


def test_window_is_measured_from_last_attempt(limiter, clock):
    for _ in range(5):
        limiter.check_and_record("ada@example.com", "login", 5, WINDOW)
        clock.advance(WINDOW.total_seconds() - 1)
    # Attempts kept arriving inside the window, so nothing was reset
    assert limiter.check_and_record("ada@example.com", "login", 5, WINDOW) is True


def test_exact_window_boundary_does_not_reset(limiter, clock):
    limiter.check_and_record("ada@example.com", "login", 1, WINDOW)
    clock.advance(WINDOW.total_seconds())
    assert limiter.check_and_record("ada@example.com", "login", 1, WINDOW) is True


def test_clear_behaves_like_first_attempt(limiter):
    for _ in range(7):
        limiter.check_and_record("ada@example.com", "login", 5, WINDOW)

    limiter.clear("ada@example.com", "login")

    assert limiter.attempts("ada@example.com", "login") == 0
    assert limiter.check_and_record("ada@example.com", "login", 5, WINDOW) is False
    assert limiter.attempts("ada@example.com", "login") == 1


def test_keys_are_case_insensitive_and_per_action(limiter):
    for _ in range(3):
        limiter.check_and_record("Ada@Example.com", "register", 3, 3600)

    assert limiter.check_and_record("ada@example.com", "register", 3, 3600) is True
    assert limiter.check_and_record("ada@example.com", "login", 3, 3600) is False


def test_window_accepts_seconds(limiter, clock):
    limiter.check_and_record("ada@example.com", "login", 1, 60)
    clock.advance(61)
    assert limiter.check_and_record("ada@example.com", "login", 1, 60) is False


def test_concurrent_attempts_are_all_counted():
    limiter = RateLimiter()
    workers, per_worker = 8, 250

    def hammer():
        for _ in range(per_worker):
            limiter.check_and_record("ada@example.com", "login", 5, WINDOW)

    threads = [threading.Thread(target=hammer) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert limiter.attempts("ada@example.com", "login") == workers * per_worker


def test_expired_records_are_swept(limiter, clock):
    for n in range(50):
        limiter.check_and_record(f"user{n}@example.com", "login", 5, WINDOW)
    assert len(limiter) == 50

    clock.advance(WINDOW.total_seconds() + 1)
    limiter.check_and_record("late@example.com", "login", 5, WINDOW)

    assert len(limiter) == 1
    assert limiter.attempts("user0@example.com", "login") == 0


def test_sweep_keeps_records_still_inside_their_window(limiter, clock):
    for _ in range(3):
        limiter.check_and_record("ada@example.com", "register", 3, REGISTER_POLICY.window)
    limiter.check_and_record("bob@example.com", "login", 5, WINDOW)

    # Past the login window, still inside the registration window
    clock.advance(WINDOW.total_seconds() + 1)
    limiter.check_and_record("carol@example.com", "login", 5, WINDOW)

    assert limiter.attempts("bob@example.com", "login") == 0
    assert limiter.attempts("ada@example.com", "register") == 3
    assert limiter.check_and_record("ada@example.com", "register", 3, REGISTER_POLICY.window) is True


def test_sweep_runs_at_most_once_per_interval(clock):
    limiter = RateLimiter(clock=clock, sweep_interval=300)
    limiter.check_and_record("ada@example.com", "login", 5, 10)

    clock.advance(11)
    limiter.check_and_record("bob@example.com", "login", 5, 10)
    # Expired, but the next sweep is not due yet
    assert len(limiter) == 2
    assert limiter.check_and_record("ada@example.com", "login", 1, 10) is False
