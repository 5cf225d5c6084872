"""
Isolated executors: one execution context per job, one Result per executor.

A worker runs ``execute_job`` and sends its single Result back through a
one-way pipe. The coordinator blocks on ``wait_objects()`` and calls
``collect()`` once any of them is ready.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
import time
from collections.abc import Callable
from multiprocessing.connection import Connection

from pyshrink.errors import ExecutorFault, JobFailure
from pyshrink.types.job import Job, Result

logger = logging.getLogger(__name__)

WorkFunction = Callable[[Job], Result]

# Seconds to wait for a worker process to exit after it has reported
JOIN_GRACE_SECONDS = 2.0

EXECUTOR_KINDS = ("process", "thread")


def execute_job(work_fn: WorkFunction, job: Job) -> Result:
    """Run ``work_fn`` on ``job`` and always return a Result.

    Exceptions raised by the work function never cross this boundary; they
    become failed Results with a non-empty reason.
    """
    try:
        result = work_fn(job)
    except JobFailure as exc:
        return Result.failed(job.id, str(exc) or type(exc).__name__)
    except Exception as exc:
        logger.debug("Work function raised for %s", job.id, exc_info=True)
        message = str(exc)
        reason = f"{type(exc).__name__}: {message}" if message else type(exc).__name__
        return Result.failed(job.id, reason)

    if not isinstance(result, Result):
        return Result.failed(
            job.id,
            f"Work function returned {type(result).__name__}, expected Result",
        )
    if result.job_id != job.id:
        return Result.failed(
            job.id, f"Work function reported a result for '{result.job_id}'"
        )
    return result


def _worker_main(work_fn: WorkFunction, job: Job, conn: Connection) -> None:
    """Entry point of an isolated worker: report exactly one Result."""
    try:
        result = execute_job(work_fn, job)
        try:
            conn.send(result)
        except (OSError, ValueError):
            # Coordinator already gave up on this job (timeout)
            logger.debug("Result channel closed before %s reported", job.id)
    finally:
        conn.close()


class BaseExecutor:
    """Handle held by the pool for one admitted job."""

    kind = "base"

    def __init__(self, job: Job, timeout: float | None = None) -> None:
        self.job = job
        self.timeout = timeout
        self.started_at: float | None = None
        self.deadline: float | None = None
        self._reader: Connection | None = None

    def start(self, work_fn: WorkFunction) -> None:
        raise NotImplementedError

    def _mark_started(self) -> None:
        # The clock runs from the moment the worker exists, not from construction
        self.started_at = time.monotonic()
        if self.timeout is not None:
            self.deadline = self.started_at + self.timeout

    def wait_objects(self) -> list:
        """Objects the coordinator blocks on for this executor."""
        return [self._reader]

    def collect(self) -> Result:
        """Read the Result (or describe why there is none) and tear down."""
        raise NotImplementedError

    def kill(self, reason: str) -> Result:
        """Tear down an overdue executor and return its failed Result."""
        raise NotImplementedError

    def is_overdue(self, now: float) -> bool:
        return self.deadline is not None and now >= self.deadline

    def _read(self) -> Result | None:
        reader = self._reader
        if reader is None:
            return None
        try:
            if reader.poll():
                return reader.recv()
        except (EOFError, OSError):
            return None
        finally:
            reader.close()
            self._reader = None
        return None

    def _fault(self, reason: str) -> Result:
        fault = ExecutorFault(reason)
        logger.warning("Executor fault for %s: %s", self.job.id, fault)
        return Result.failed(self.job.id, str(fault))


class ProcessExecutor(BaseExecutor):
    """Runs one job in its own process."""

    kind = "process"

    def __init__(
        self,
        job: Job,
        timeout: float | None = None,
        context: mp.context.BaseContext | None = None,
    ) -> None:
        super().__init__(job, timeout)
        self._ctx = context or mp.get_context("spawn")
        self._process: mp.process.BaseProcess | None = None

    def start(self, work_fn: WorkFunction) -> None:
        reader, writer = self._ctx.Pipe(duplex=False)
        process = self._ctx.Process(
            target=_worker_main,
            args=(work_fn, self.job, writer),
            name=f"pyshrink-worker-{self.job.id}",
            daemon=True,
        )
        try:
            process.start()
        except Exception as exc:
            reader.close()
            writer.close()
            raise ExecutorFault(f"Failed to start worker process: {exc}") from exc
        finally:
            if process.pid is not None:
                # Only the child keeps the write end; its exit shows up as EOF
                writer.close()
        self._reader = reader
        self._process = process
        self._mark_started()
        logger.debug("Started worker pid=%s for %s", process.pid, self.job.id)

    def wait_objects(self) -> list:
        objects = super().wait_objects()
        if self._process is not None:
            objects.append(self._process.sentinel)
        return objects

    def collect(self) -> Result:
        result = self._read()
        exitcode = self._join()
        if result is not None:
            return result
        return self._fault(
            f"Worker process exited with code {exitcode} before reporting a result"
        )

    def kill(self, reason: str) -> Result:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        process = self._process
        if process is not None and process.is_alive():
            process.terminate()
        self._join()
        return self._fault(reason)

    def _join(self) -> int | None:
        process = self._process
        if process is None:
            return None
        process.join(JOIN_GRACE_SECONDS)
        if process.is_alive():
            logger.warning("Worker pid=%s did not exit, killing it", process.pid)
            process.kill()
            process.join()
        exitcode = process.exitcode
        process.close()
        self._process = None
        return exitcode


class ThreadExecutor(BaseExecutor):
    """Runs one job on a daemon thread.

    Threads cannot be killed, so a thread executor has no timeout: its slot
    is held until the work function returns.
    """

    kind = "thread"

    def __init__(self, job: Job) -> None:
        super().__init__(job)
        self._thread: threading.Thread | None = None

    def start(self, work_fn: WorkFunction) -> None:
        reader, writer = mp.Pipe(duplex=False)
        thread = threading.Thread(
            target=_worker_main,
            args=(work_fn, self.job, writer),
            name=f"pyshrink-worker-{self.job.id}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError as exc:
            reader.close()
            writer.close()
            raise ExecutorFault(f"Failed to start worker thread: {exc}") from exc
        self._reader = reader
        self._thread = thread
        self._mark_started()

    def collect(self) -> Result:
        result = self._read()
        thread = self._thread
        if thread is not None:
            thread.join(JOIN_GRACE_SECONDS)
            self._thread = None
        if result is not None:
            return result
        return self._fault("Worker thread ended before reporting a result")

    def kill(self, reason: str) -> Result:
        raise ExecutorFault("Worker threads cannot be killed")


def create_executor(
    kind: str,
    job: Job,
    timeout: float | None = None,
    context: mp.context.BaseContext | None = None,
) -> BaseExecutor:
    if kind == "process":
        return ProcessExecutor(job, timeout=timeout, context=context)
    if kind == "thread":
        if timeout is not None:
            raise ValueError("Thread executors do not support a job timeout")
        return ThreadExecutor(job)
    raise ValueError(f"Unknown executor kind: {kind}")


__all__ = [
    "EXECUTOR_KINDS",
    "WorkFunction",
    "BaseExecutor",
    "ProcessExecutor",
    "ThreadExecutor",
    "create_executor",
    "execute_job",
]
