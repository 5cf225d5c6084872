"""
Bounded-concurrency task pool.

A single coordinator thread owns the pending queue and the in-flight set.
``submit`` hands jobs over through a thread-safe intake and a wake-up pipe;
the coordinator admits them FIFO while fewer than ``capacity`` executors run
and blocks on executor pipes, process sentinels and the wake-up pipe between
events. ``drain`` waits on a condition variable until every submitted job has
produced its Result.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
import time
from collections import deque
from collections.abc import Callable
from multiprocessing.connection import wait

from pyshrink.errors import ConfigError, ExecutorFault
from pyshrink.pool.executor import (
    EXECUTOR_KINDS,
    BaseExecutor,
    WorkFunction,
    create_executor,
)
from pyshrink.types.job import Job, Result

logger = logging.getLogger(__name__)

ResultCallback = Callable[[Result], None]


class TaskPool:
    """Runs submitted jobs with at most ``capacity`` isolated executors at once.

    Args:
        capacity: Maximum number of executors running concurrently (>= 1).
        work_fn: Module-level ``(Job) -> Result`` callable run once per job.
        on_result: Called on the coordinator thread with every Result, in
            completion order. It must not block; hand results to a queue.
        job_timeout: Seconds an executor may run before it is torn down and
            its job reported as failed. ``None`` disables the timeout. Only
            process executors support it.
        executor: ``"process"`` (default) or ``"thread"``.
        start_method: multiprocessing start method for process executors.
    """

    def __init__(
        self,
        capacity: int,
        work_fn: WorkFunction,
        *,
        on_result: ResultCallback | None = None,
        job_timeout: float | None = None,
        executor: str = "process",
        start_method: str = "spawn",
    ) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigError(f"capacity must be a positive integer, got {capacity!r}")
        if job_timeout is not None and not job_timeout > 0:
            raise ConfigError(f"job_timeout must be positive, got {job_timeout!r}")
        if executor not in EXECUTOR_KINDS:
            raise ConfigError(
                f"executor must be one of {', '.join(EXECUTOR_KINDS)}, got {executor!r}"
            )
        if executor == "thread" and job_timeout is not None:
            # An overdue thread cannot be stopped and would keep its file busy
            raise ConfigError("job_timeout requires process executors")
        if not callable(work_fn):
            raise ConfigError("work_fn must be callable")

        self._capacity = capacity
        self._work_fn = work_fn
        self._on_result = on_result
        self._job_timeout = job_timeout
        self._executor_kind = executor
        self._mp_context = mp.get_context(start_method) if executor == "process" else None

        # Coordinator-owned state
        self._pending: deque[Job] = deque()
        self._running: list[BaseExecutor] = []
        self._peak_in_flight = 0

        # Hand-off from submit() to the coordinator
        self._intake: deque[Job] = deque()
        self._wake_reader, self._wake_writer = mp.Pipe(duplex=False)

        self._cond = threading.Condition()
        self._submitted = 0
        self._completed = 0
        self._closing = False
        self._closed = False
        self._fault: BaseException | None = None
        self._coordinator: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight_count(self) -> int:
        return len(self._running)

    @property
    def pending_count(self) -> int:
        return len(self._pending) + len(self._intake)

    @property
    def peak_in_flight(self) -> int:
        """Highest number of executors that ran at the same time."""
        return self._peak_in_flight

    @property
    def submitted_count(self) -> int:
        with self._cond:
            return self._submitted

    @property
    def completed_count(self) -> int:
        with self._cond:
            return self._completed

    def submit(self, job: Job) -> None:
        """Queue ``job`` for execution; never blocks on running jobs."""
        if not isinstance(job, Job):
            raise TypeError(f"Expected Job, got {type(job).__name__}")
        with self._cond:
            if self._closing:
                raise RuntimeError("Cannot submit to a closed TaskPool")
            self._submitted += 1
            self._intake.append(job)
            self._ensure_coordinator()
        self._wake()

    def drain(self) -> None:
        """Block until every submitted job has produced exactly one Result."""
        with self._cond:
            while self._completed < self._submitted and self._fault is None:
                self._cond.wait()
            if self._fault is not None:
                raise RuntimeError("TaskPool coordinator failed") from self._fault

    def close(self) -> None:
        """Drain outstanding work and stop the coordinator thread."""
        if self._closed:
            return
        with self._cond:
            self._closing = True
            coordinator = self._coordinator
        try:
            self.drain()
        finally:
            if coordinator is not None:
                self._wake()
                coordinator.join()
            self._wake_reader.close()
            self._wake_writer.close()
            self._closed = True

    def __enter__(self) -> "TaskPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Coordinator
    # ------------------------------------------------------------------

    def _ensure_coordinator(self) -> None:
        if self._coordinator is None:
            self._coordinator = threading.Thread(
                target=self._coordinate,
                name="pyshrink-pool-coordinator",
                daemon=True,
            )
            self._coordinator.start()

    def _wake(self) -> None:
        try:
            self._wake_writer.send_bytes(b"\0")
        except OSError:
            logger.debug("Wake-up pipe already closed")

    def _coordinate(self) -> None:
        try:
            while True:
                self._take_intake()
                self._admit()
                with self._cond:
                    finished = (
                        self._closing
                        and not self._running
                        and not self._pending
                        and not self._intake
                    )
                if finished:
                    return
                self._wait_for_events()
                self._expire_overdue()
        except BaseException as exc:
            logger.exception("TaskPool coordinator crashed")
            with self._cond:
                self._fault = exc
                self._cond.notify_all()

    def _take_intake(self) -> None:
        while self._intake:
            self._pending.append(self._intake.popleft())

    def _admit(self) -> None:
        while self._pending and len(self._running) < self._capacity:
            job = self._pending.popleft()
            executor = create_executor(
                self._executor_kind,
                job,
                timeout=self._job_timeout,
                context=self._mp_context,
            )
            try:
                executor.start(self._work_fn)
            except ExecutorFault as exc:
                logger.error("Could not start executor for %s: %s", job.id, exc)
                self._complete(Result.failed(job.id, str(exc)))
                continue
            except Exception as exc:
                logger.error("Could not start executor for %s: %s", job.id, exc)
                self._complete(
                    Result.failed(job.id, f"Failed to start executor: {exc}")
                )
                continue
            self._running.append(executor)
            self._peak_in_flight = max(self._peak_in_flight, len(self._running))
            logger.debug(
                "Admitted %s (%d/%d in flight, %d pending)",
                job.id,
                len(self._running),
                self._capacity,
                len(self._pending),
            )

    def _wait_for_events(self) -> None:
        owners: dict[object, BaseExecutor] = {}
        for executor in self._running:
            for obj in executor.wait_objects():
                owners[obj] = executor

        ready = wait([self._wake_reader, *owners], timeout=self._next_timeout())

        finished: list[BaseExecutor] = []
        for obj in ready:
            if obj is self._wake_reader:
                self._clear_wakeups()
                continue
            executor = owners[obj]
            if executor not in finished:
                finished.append(executor)

        for executor in finished:
            self._release(executor)
            self._complete(executor.collect())

    def _clear_wakeups(self) -> None:
        try:
            while self._wake_reader.poll():
                self._wake_reader.recv_bytes()
        except (EOFError, OSError):
            pass

    def _next_timeout(self) -> float | None:
        deadlines = [e.deadline for e in self._running if e.deadline is not None]
        if not deadlines:
            return None
        return max(0.0, min(deadlines) - time.monotonic())

    def _expire_overdue(self) -> None:
        now = time.monotonic()
        for executor in [e for e in self._running if e.is_overdue(now)]:
            self._release(executor)
            self._complete(
                executor.kill(f"Job timed out after {self._job_timeout:g}s")
            )

    def _release(self, executor: BaseExecutor) -> None:
        self._running.remove(executor)

    def _complete(self, result: Result) -> None:
        if self._on_result is not None:
            try:
                self._on_result(result)
            except Exception:
                logger.exception("Result callback failed for %s", result.job_id)
        with self._cond:
            self._completed += 1
            self._cond.notify_all()


__all__ = ["TaskPool", "ResultCallback"]
