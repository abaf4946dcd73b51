"""Unit tests for the in-memory counter store."""

import threading

import pytest

from throttle.adapters.rate_limit.base import RateLimitPolicy
from throttle.adapters.rate_limit.in_memory import LocalCounterStore


def test_allows_up_to_limit_in_same_window(clock) -> None:
    store = LocalCounterStore(clock=clock)
    policy = RateLimitPolicy(max_requests=3, window_seconds=60)

    assert store.check_and_increment("k", policy).allowed is True
    assert store.check_and_increment("k", policy).allowed is True
    result = store.check_and_increment("k", policy)
    assert result.allowed is True
    assert result.remaining == 0


def test_first_request_reports_full_window(clock) -> None:
    store = LocalCounterStore(clock=clock)
    policy = RateLimitPolicy(max_requests=5, window_seconds=60)

    result = store.check_and_increment("k", policy)

    assert result.allowed is True
    assert result.remaining == 4
    assert result.reset_in_ms == 60_000


def test_blocks_when_over_limit(clock) -> None:
    store = LocalCounterStore(clock=clock)
    policy = RateLimitPolicy(max_requests=2, window_seconds=60)

    store.check_and_increment("k", policy)
    clock.advance(15)
    store.check_and_increment("k", policy)

    blocked = store.check_and_increment("k", policy)
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.reset_in_ms == 45_000


def test_remaining_strictly_decreases_and_never_negative(clock) -> None:
    store = LocalCounterStore(clock=clock)
    policy = RateLimitPolicy(max_requests=4, window_seconds=60)

    remaining = [store.check_and_increment("k", policy).remaining for _ in range(6)]

    assert remaining == [3, 2, 1, 0, 0, 0]


def test_resets_after_window_passes(clock) -> None:
    store = LocalCounterStore(clock=clock)
    policy = RateLimitPolicy(max_requests=1, window_seconds=10)

    assert store.check_and_increment("k", policy).allowed is True
    assert store.check_and_increment("k", policy).allowed is False

    # Still inside the window exactly at reset_at
    clock.advance(10)
    assert store.check_and_increment("k", policy).allowed is False

    clock.advance(0.001)
    result = store.check_and_increment("k", policy)
    assert result.allowed is True
    assert result.remaining == 0


def test_isolated_by_identity(clock) -> None:
    store = LocalCounterStore(clock=clock)
    policy = RateLimitPolicy(max_requests=1, window_seconds=60)

    assert store.check_and_increment("k1", policy).allowed is True
    assert store.check_and_increment("k1", policy).allowed is False

    clock.advance(30)
    other = store.check_and_increment("k2", policy)
    assert other.allowed is True
    assert other.reset_in_ms == 60_000


def test_isolated_by_namespace(clock) -> None:
    store = LocalCounterStore(clock=clock)
    ai = RateLimitPolicy(max_requests=1, window_seconds=60, namespace="ai")
    api = RateLimitPolicy(max_requests=1, window_seconds=60, namespace="api")

    assert store.check_and_increment("user", ai).allowed is True
    assert store.check_and_increment("user", ai).allowed is False
    assert store.check_and_increment("user", api).allowed is True


def test_sweeps_expired_entries_once_threshold_exceeded(clock) -> None:
    store = LocalCounterStore(max_entries=3, clock=clock)
    policy = RateLimitPolicy(max_requests=5, window_seconds=10)

    for idx in range(4):
        store.check_and_increment(f"old-{idx}", policy)
    assert store.size == 4

    clock.advance(11)
    store.check_and_increment("fresh", policy)

    assert store.size == 1


def test_keeps_live_entries_when_sweeping(clock) -> None:
    store = LocalCounterStore(max_entries=2, clock=clock)
    short = RateLimitPolicy(max_requests=5, window_seconds=10, namespace="short")
    long = RateLimitPolicy(max_requests=5, window_seconds=100, namespace="long")

    store.check_and_increment("a", short)
    store.check_and_increment("b", short)
    store.check_and_increment("c", long)

    clock.advance(11)
    store.check_and_increment("d", short)

    assert store.size == 2
    assert store.check_and_increment("c", long).remaining == 3


def test_no_sweep_below_threshold(clock) -> None:
    store = LocalCounterStore(max_entries=10, clock=clock)
    policy = RateLimitPolicy(max_requests=5, window_seconds=10)

    store.check_and_increment("a", policy)
    clock.advance(11)
    store.check_and_increment("b", policy)

    assert store.size == 2


def test_concurrent_increments_are_not_lost() -> None:
    store = LocalCounterStore()
    policy = RateLimitPolicy(max_requests=50, window_seconds=60)
    results = []
    results_lock = threading.Lock()

    def _worker() -> None:
        for _ in range(10):
            result = store.check_and_increment("shared", policy)
            with results_lock:
                results.append(result)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    allowed = [r for r in results if r.allowed]
    assert len(allowed) == 50
    assert sorted(r.remaining for r in allowed) == list(range(50))


def test_clear_drops_all_entries(clock) -> None:
    store = LocalCounterStore(clock=clock)
    policy = RateLimitPolicy(max_requests=1, window_seconds=60)
    store.check_and_increment("k", policy)

    store.clear()

    assert store.size == 0
    assert store.check_and_increment("k", policy).allowed is True


def test_invalid_constructor_args() -> None:
    with pytest.raises(ValueError):
        LocalCounterStore(max_entries=0)


def test_invalid_identity() -> None:
    store = LocalCounterStore()

    with pytest.raises(ValueError):
        store.check_and_increment("", RateLimitPolicy(max_requests=1, window_seconds=60))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_requests": 0, "window_seconds": 60},
        {"max_requests": 1, "window_seconds": 0},
        {"max_requests": 1, "window_seconds": -5},
        {"max_requests": 1, "window_seconds": float("nan")},
        {"max_requests": 1, "window_seconds": float("inf")},
        {"max_requests": 1, "window_seconds": 60, "namespace": ""},
    ],
)
def test_invalid_policy_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitPolicy(**kwargs)


def test_policy_helpers() -> None:
    policy = RateLimitPolicy(max_requests=10, window_seconds=1.5, namespace="ai")

    assert policy.window_ms == 1500
    assert policy.remote_window_seconds == 2
    assert policy.key_for("user-a") == "ai:user-a"
