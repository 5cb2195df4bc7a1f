from __future__ import annotations

import threading

import pytest

from feed_pipeline.images.models import RunStats
from feed_pipeline.images.scheduler import effective_concurrency, run_pool


@pytest.mark.parametrize(
    "configured, tasks, expected",
    [(4, 10, 4), (4, 2, 2), (0, 5, 1), (-3, 5, 1), (8, 0, 0)],
)
def test_effective_concurrency(configured, tasks, expected):
    assert effective_concurrency(configured, tasks) == expected


def test_every_task_runs_exactly_once():
    seen: list[int] = []
    lock = threading.Lock()

    def worker(i: int) -> int:
        with lock:
            seen.append(i)
        return i * 10

    results, workers = run_pool(list(range(50)), worker, concurrency=4, stats=RunStats())

    assert workers == 4
    assert sorted(seen) == list(range(50))
    assert sorted(results) == [i * 10 for i in range(50)]


def test_none_results_are_dropped():
    results, _ = run_pool([1, 2, 3, 4], lambda i: i if i % 2 else None, concurrency=2, stats=RunStats())
    assert sorted(results) == [1, 3]


def test_worker_exception_is_isolated_and_counted(caplog):
    stats = RunStats()

    def worker(i: int) -> int:
        if i == 3:
            raise RuntimeError("kaboom")
        return i

    with caplog.at_level("WARNING", logger="feed_pipeline"):
        results, _ = run_pool(
            [1, 2, 3, 4, 5], worker, concurrency=3, stats=stats, describe=lambda i: f"offer-{i}"
        )

    assert sorted(results) == [1, 2, 4, 5]
    assert stats.skipped == 1
    assert "offer-3" in caplog.text
    assert "kaboom" in caplog.text


def test_empty_task_list():
    assert run_pool([], lambda t: t, concurrency=4, stats=RunStats()) == ([], 0)


def test_slow_task_does_not_block_other_workers():
    # the first task only finishes once every other task is done; with a
    # shared cursor the second worker drains the rest of the list
    others_done = threading.Event()
    remaining = list(range(1, 20))
    lock = threading.Lock()

    def worker(i: int) -> bool:
        if i == 0:
            return others_done.wait(timeout=10)
        with lock:
            remaining.remove(i)
            if not remaining:
                others_done.set()
        return True

    results, workers = run_pool(list(range(20)), worker, concurrency=2, stats=RunStats())

    assert workers == 2
    assert all(results)
    assert len(results) == 20


def test_run_stats_increments_are_atomic():
    stats = RunStats()

    def bump():
        for _ in range(2000):
            stats.incr("uploaded")

    threads = [threading.Thread(target=bump) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert stats.uploaded == 16000


def test_run_stats_rejects_unknown_counter():
    with pytest.raises(KeyError):
        RunStats().incr("nope")
