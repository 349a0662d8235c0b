"""
Task runner for fan-out backend calls.

Runs one function over many payloads through an ExecutorStrategy,
capturing each task's outcome as a TaskResult so that one failing chunk
never aborts the others.

Usage:
    runner = ParallelTaskRunner(strategy=ThreadPoolStrategy(max_workers=5))
    results = runner.run(extract_chunk, [(chunk.id, chunk) for chunk in chunks])

    for result in results:          # submission order
        if result.success:
            merged.append(result.result)
        else:
            warning(f"{result.task_id} dropped: {result.error}")
"""

import threading
from concurrent.futures import as_completed
from dataclasses import dataclass
from typing import Any, Callable

from vekkam.logging_config import debug_log
from vekkam.parallel.executor_strategy import ExecutorStrategy


@dataclass
class TaskResult:
    """
    Outcome of one task.

    Attributes:
        task_id: Identifier given at submission (e.g. a chunk id)
        success: True if the task returned without raising
        result: Return value (if success=True)
        error: Exception raised (if success=False)
    """

    task_id: str
    success: bool
    result: Any = None
    error: Exception = None


class ParallelTaskRunner:
    """
    Runs tasks with a configurable ExecutorStrategy.

    - Per-task exception capture (one failure does not abort the batch)
    - Optional completion callback for progress reporting
    - Cancellation via threading.Event; tasks not yet submitted are skipped
    - Results returned in submission order

    Args:
        strategy: ExecutorStrategy to run tasks with.
        on_task_complete: Optional callback(task_id, result) for successes.
    """

    def __init__(
        self,
        strategy: ExecutorStrategy,
        on_task_complete: Callable[[str, Any], None] | None = None,
    ):
        self.strategy = strategy
        self.on_task_complete = on_task_complete
        self._cancel_event = threading.Event()

    def run(self, fn: Callable[[Any], Any], items: list[tuple[str, Any]]) -> list[TaskResult]:
        """
        Run fn over each (task_id, payload) pair.

        Args:
            fn: Function called with the payload
            items: (task_id, payload) tuples

        Returns:
            TaskResult per submitted item, in submission order
        """
        if not items:
            return []

        futures = {}
        for position, (task_id, payload) in enumerate(items):
            if self._cancel_event.is_set():
                debug_log(f"[TaskRunner] Cancelled before submitting {len(items) - position} tasks")
                break
            futures[self.strategy.submit(fn, payload)] = (position, task_id)

        results: dict[int, TaskResult] = {}
        for future in as_completed(futures):
            position, task_id = futures[future]
            if future.cancelled():
                results[position] = TaskResult(task_id=task_id, success=False, error=RuntimeError("Task cancelled"))
                continue
            try:
                result = future.result()
            except Exception as e:
                results[position] = TaskResult(task_id=task_id, success=False, error=e)
                continue

            results[position] = TaskResult(task_id=task_id, success=True, result=result)
            if self.on_task_complete:
                self.on_task_complete(task_id, result)

        ordered = [results[position] for position in sorted(results)]
        failed = sum(1 for r in ordered if not r.success)
        debug_log(f"[TaskRunner] {len(ordered)} tasks finished, {failed} failed")
        return ordered

    def cancel(self):
        """Stop submitting tasks and cancel those not yet started."""
        self._cancel_event.set()
        self.strategy.shutdown(wait=False, cancel_futures=True)

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()
