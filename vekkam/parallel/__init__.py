"""
Parallel execution for the per-chunk extraction pass.

Components:
    ExecutorStrategy - Abstract base class defining the execution interface
    ThreadPoolStrategy - Bounded thread pool (production)
    SequentialStrategy - Inline execution (tests/debugging)
    ParallelTaskRunner - Fan-out with per-task failure capture
    TaskResult - Outcome of one task

Testing Example:
    from vekkam.parallel import SequentialStrategy, ParallelTaskRunner

    runner = ParallelTaskRunner(strategy=SequentialStrategy())
    results = runner.run(extract_chunk, items)
"""

from .executor_strategy import ExecutorStrategy, SequentialStrategy, ThreadPoolStrategy
from .task_runner import ParallelTaskRunner, TaskResult

__all__ = [
    # Strategies
    'ExecutorStrategy',
    'ThreadPoolStrategy',
    'SequentialStrategy',
    # Task runner
    'ParallelTaskRunner',
    'TaskResult',
]
