import random
from concurrent.futures import ThreadPoolExecutor

from httpstat.counters import CounterSet


def test_observe_tracks_totals_errors_and_status_buckets() -> None:
    counters = CounterSet()
    statuses = [200, 200, 404, 500, 503, 301, 200, 502]

    for status in statuses:
        counters.observe(status, 0.25)

    values = counters.snapshot()
    assert values.requests_total == len(statuses)
    assert values.errors_total == 3
    assert values.time_total_seconds == 0.25 * len(statuses)
    assert values.status_counts == {"200": 3, "404": 1, "500": 1, "503": 1, "301": 1, "502": 1}
    assert sum(values.status_counts.values()) == values.requests_total


def test_random_statuses_are_fully_accounted_for() -> None:
    rng = random.Random(7)
    statuses = [rng.choice([200, 201, 204, 400, 404, 418, 500, 502, 504]) for _ in range(500)]
    counters = CounterSet()

    for status in statuses:
        counters.observe(status, 0.001)

    assert counters.requests_total == 500
    assert counters.errors_total == sum(1 for s in statuses if s >= 500)
    assert sum(counters.status_counts().values()) == 500


def test_499_is_not_an_error() -> None:
    counters = CounterSet()
    counters.observe(499, 0.0)
    counters.observe(500, 0.0)
    assert counters.errors_total == 1


def test_concurrent_updates_are_not_lost() -> None:
    counters = CounterSet()

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda _: counters.observe(200, 0.5), range(100)))

    assert counters.requests_total == 100
    assert counters.status_counts() == {"200": 100}
    assert counters.time_total_seconds == 50.0


def test_snapshot_is_detached_from_live_counters() -> None:
    counters = CounterSet()
    counters.observe(200, 1.0)
    before = counters.snapshot()

    counters.observe(404, 1.0)

    assert before.requests_total == 1
    assert before.status_counts == {"200": 1}
    assert counters.snapshot().requests_total == 2
