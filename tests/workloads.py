"""
Work functions used by the pool tests.

They live in their own importable module so that spawned worker processes
can unpickle them.
"""

import os
import threading
import time

from pyshrink.errors import JobFailure
from pyshrink.types.job import Job, Result


def sleep_job(job: Job) -> Result:
    """Sleep for ``payload['seconds']`` and report wall-clock start/end."""
    started = time.time()
    time.sleep(job.payload.get("seconds", 0.0))
    return Result.succeeded(
        job.id,
        original_size=job.payload.get("original_size", 100),
        transformed_size=job.payload.get("transformed_size", 50),
        started=started,
        finished=time.time(),
    )


def raising_job(job: Job) -> Result:
    raise RuntimeError(f"boom in {job.id}")


def job_failure_job(job: Job) -> Result:
    raise JobFailure("unsupported format")


def none_job(job: Job) -> Result:
    return None


def exit_job(job: Job) -> Result:
    # Simulates a worker killed from outside: no Result is ever sent
    os._exit(3)


def hang_job(job: Job) -> Result:
    time.sleep(60)
    return Result.succeeded(job.id)


def mixed_job(job: Job) -> Result:
    """Dispatch on ``payload['kind']`` so one batch can mix outcomes."""
    kind = job.payload.get("kind", "ok")
    if kind == "raise":
        return raising_job(job)
    if kind == "exit":
        return exit_job(job)
    if kind == "hang":
        return hang_job(job)
    return sleep_job(job)


class ConcurrencyProbe:
    """Thread-executor work function that records how many jobs overlap."""

    def __init__(self, seconds: float = 0.02) -> None:
        self.seconds = seconds
        self.active = 0
        self.peak = 0
        self.seen: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, job: Job) -> Result:
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.seen.append(job.id)
        try:
            time.sleep(job.payload.get("seconds", self.seconds))
        finally:
            with self._lock:
                self.active -= 1
        return Result.succeeded(job.id, original_size=10, transformed_size=5)


def max_overlap(results: list[Result]) -> int:
    """Largest number of [started, finished) intervals open at once."""
    events = []
    for result in results:
        events.append((result.metrics["started"], 1))
        events.append((result.metrics["finished"], -1))
    # Ends sort before starts at the same instant
    events.sort(key=lambda event: (event[0], event[1]))
    current = peak = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak
