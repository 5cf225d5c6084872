"""
Bounded-concurrency job pool: isolated executors, scheduler, progress.
"""

from pyshrink.pool.executor import (
    ProcessExecutor,
    ThreadExecutor,
    WorkFunction,
    execute_job,
)
from pyshrink.pool.progress import ProgressAggregator, ProgressState
from pyshrink.pool.run import DEFAULT_CAPACITY, BatchReport, run_batch
from pyshrink.pool.scheduler import TaskPool

__all__ = [
    "DEFAULT_CAPACITY",
    "BatchReport",
    "ProcessExecutor",
    "ProgressAggregator",
    "ProgressState",
    "TaskPool",
    "ThreadExecutor",
    "WorkFunction",
    "execute_job",
    "run_batch",
]
