"""
Execution strategies for the per-chunk extraction pass.

Strategy Pattern: the synthesizer decides *what* runs per chunk, the
strategy decides *how* (a bounded thread pool in production, inline in
tests). Both expose the same interface, so the calling code is identical.

Usage:
    # Production: at most 5 backend calls in flight
    strategy = ThreadPoolStrategy(max_workers=5)

    # Tests: deterministic, single-threaded
    strategy = SequentialStrategy()

    results = list(strategy.map(extract_chunk, chunks))
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Iterator, TypeVar

from vekkam.config import PARALLEL_MAX_WORKERS

T = TypeVar('T')
R = TypeVar('R')


class ExecutorStrategy(ABC):
    """How chunk tasks get scheduled; ``max_workers`` is 1 for inline runs."""

    max_workers: int

    @abstractmethod
    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        """Schedule fn(item); failures land in the returned Future."""

    @abstractmethod
    def map(self, fn: Callable[[T], R], items: list[T]) -> Iterator[R]:
        ...

    @abstractmethod
    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False


class ThreadPoolStrategy(ExecutorStrategy):
    """
    Bounded thread pool.

    Backend calls spend their time waiting on HTTP responses and release
    the GIL while doing so, so threads give real concurrency here.

    Args:
        max_workers: Maximum backend calls in flight (default PARALLEL_MAX_WORKERS).

    Example:
        with ThreadPoolStrategy(max_workers=5) as strategy:
            facts = list(strategy.map(extract_chunk, chunks))
    """

    def __init__(self, max_workers: int | None = None):
        if max_workers is None:
            max_workers = PARALLEL_MAX_WORKERS
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="vekkam-chunk")
        self.max_workers = max_workers

    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        return self._executor.submit(fn, item)

    def map(self, fn: Callable[[T], R], items: list[T]) -> Iterator[R]:
        return self._executor.map(fn, items)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)


class SequentialStrategy(ExecutorStrategy):
    """
    Inline execution for tests and debugging.

    Tasks run at submit time, in order, on the calling thread, and the
    outcome is wrapped in an already-completed Future.
    """

    def __init__(self):
        self.max_workers = 1

    def submit(self, fn: Callable[[T], R], item: T) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(item))
        except Exception as e:
            future.set_exception(e)
        return future

    def map(self, fn: Callable[[T], R], items: list[T]) -> Iterator[R]:
        for item in items:
            yield fn(item)

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        pass
