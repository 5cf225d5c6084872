"""
Batch runner: submit a job sequence to a TaskPool and aggregate its Results.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from pyshrink.pool.executor import WorkFunction
from pyshrink.pool.progress import ProgressAggregator, ProgressState, Sink, UpdateHook
from pyshrink.pool.scheduler import TaskPool
from pyshrink.types.job import Job, Result, ResultStatus

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 4


@dataclass(slots=True)
class BatchReport:
    """Final counters and every Result of a batch, in completion order."""

    state: ProgressState
    results: list[Result] = field(default_factory=list)
    peak_in_flight: int = 0

    @property
    def failed(self) -> list[Result]:
        return [r for r in self.results if r.status is ResultStatus.FAILED]

    @property
    def skipped(self) -> list[Result]:
        return [r for r in self.results if r.status is ResultStatus.SKIPPED]


def run_batch(
    jobs: Sequence[Job],
    work_fn: WorkFunction,
    capacity: int = DEFAULT_CAPACITY,
    *,
    sink: Sink | None = None,
    on_update: UpdateHook | None = None,
    job_timeout: float | None = None,
    executor: str = "process",
) -> BatchReport:
    """Run ``work_fn`` over ``jobs`` with at most ``capacity`` concurrent workers.

    Returns once every job has produced its Result and the summary has been
    written to ``sink``. Only configuration errors raise; job failures are
    reported in the returned BatchReport.
    """
    jobs = list(jobs)
    aggregator = ProgressAggregator(len(jobs), sink, on_update=on_update)
    # Constructed before any job is submitted so ConfigError surfaces first
    pool = TaskPool(
        capacity,
        work_fn,
        on_result=aggregator.on_result,
        job_timeout=job_timeout,
        executor=executor,
    )

    logger.info(
        "Processing %d jobs with up to %d %s workers", len(jobs), capacity, executor
    )
    aggregator.start()
    try:
        with pool:
            for job in jobs:
                pool.submit(job)
            pool.drain()
    finally:
        state = aggregator.close()

    logger.info("Completed %d/%d jobs", state.completed_count, state.total_count)
    return BatchReport(
        state=state,
        results=aggregator.results,
        peak_in_flight=pool.peak_in_flight,
    )


__all__ = ["BatchReport", "DEFAULT_CAPACITY", "run_batch"]
