from __future__ import annotations

import itertools
import logging
import threading
from concurrent import futures
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from feed_pipeline.images.models import RunStats

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def effective_concurrency(configured: int, task_count: int) -> int:
    return min(max(configured, 1), task_count)


def run_pool(
    tasks: Sequence[T],
    worker: Callable[[T], Optional[R]],
    concurrency: int,
    stats: RunStats,
    describe: Callable[[T], str] = repr,
) -> Tuple[List[R], int]:
    """
    Run ``worker`` over ``tasks`` on a bounded thread pool.

    Workers pull the next unclaimed index from one shared cursor until the
    list is exhausted, so a slow task never holds back the others. An
    exception escaping ``worker`` is counted as skipped and logged; it never
    stops the pool. Results come back in completion order (callers sort).

    Returns:
        (non-None results, number of workers used)
    """
    n = len(tasks)
    workers = effective_concurrency(concurrency, n)
    if workers == 0:
        return [], 0

    cursor = itertools.count()
    cursor_lock = threading.Lock()
    results: List[R] = []

    def claim() -> int:
        with cursor_lock:
            return next(cursor)

    def loop() -> None:
        while True:
            i = claim()
            if i >= n:
                return
            task = tasks[i]
            try:
                result = worker(task)
            except Exception as e:
                stats.incr("skipped")
                logger.warning("Offer %s failed: %s", describe(task), e)
                continue
            if result is not None:
                results.append(result)

    with futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix="image-sync") as ex:
        running = [ex.submit(loop) for _ in range(workers)]
        for f in running:
            f.result()

    return results, workers
