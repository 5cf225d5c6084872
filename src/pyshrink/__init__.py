"""
pyshrink: bounded-concurrency batch processing of image files.
"""

from pyshrink.errors import ConfigError, ExecutorFault, JobFailure, PyshrinkError
from pyshrink.pool import (
    BatchReport,
    ProgressAggregator,
    ProgressState,
    TaskPool,
    run_batch,
)
from pyshrink.types import Job, Result, ResultStatus

__version__ = "0.1.0"

__all__ = [
    "BatchReport",
    "ConfigError",
    "ExecutorFault",
    "Job",
    "JobFailure",
    "ProgressAggregator",
    "ProgressState",
    "PyshrinkError",
    "Result",
    "ResultStatus",
    "TaskPool",
    "run_batch",
]
