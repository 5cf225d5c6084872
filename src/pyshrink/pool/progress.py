"""
Progress aggregation for a batch of jobs.

Results are handed to ``on_result`` from the pool's coordinator thread and
queued; a drainer thread owned by the aggregator applies them to the running
counters and writes progress lines to the sink, so a slow sink never holds up
admission.
"""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass

from pyshrink.types.job import Result, ResultStatus
from pyshrink.utils.formatting import format_bytes, format_reduction

logger = logging.getLogger(__name__)

Sink = Callable[[str], None]
UpdateHook = Callable[[int, int], None]


def _log_sink(line: str) -> None:
    logger.info(line)


@dataclass(slots=True)
class ProgressState:
    """Running counters for one batch."""

    total_count: int
    completed_count: int = 0
    succeeded_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    cumulative_original_bytes: int = 0
    cumulative_transformed_bytes: int = 0

    @property
    def is_complete(self) -> bool:
        return self.completed_count >= self.total_count

    @property
    def percentage(self) -> float:
        if self.total_count <= 0:
            return 100.0
        return self.completed_count / self.total_count * 100

    @property
    def reduction(self) -> str:
        return format_reduction(
            self.cumulative_original_bytes, self.cumulative_transformed_bytes
        )

    def apply(self, result: Result) -> None:
        self.completed_count += 1
        if result.status is ResultStatus.SUCCEEDED:
            self.succeeded_count += 1
            self.cumulative_original_bytes += int(result.original_size)
            self.cumulative_transformed_bytes += int(result.transformed_size)
        elif result.status is ResultStatus.SKIPPED:
            self.skipped_count += 1
        else:
            self.failed_count += 1

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = dataclasses.asdict(self)
        data["reduction"] = self.reduction
        return data


def format_result_line(result: Result, state: ProgressState) -> str:
    """One progress line for a completed job."""
    prefix = f"[{state.completed_count}/{state.total_count}]"
    if result.success:
        original = result.original_size
        transformed = result.transformed_size
        return (
            f"{prefix} OK {result.job_id} | Original: {format_bytes(original)} | "
            f"Transformed: {format_bytes(transformed)} | "
            f"Reduced: {format_reduction(original, transformed)}"
        )
    label = "SKIPPED" if result.status is ResultStatus.SKIPPED else "FAILED"
    return f"{prefix} {label} {result.job_id} | Reason: {result.failure_reason}"


def format_summary_lines(state: ProgressState, results: list[Result]) -> list[str]:
    """Final summary: problem jobs first, then the totals line."""
    lines = ["--- Batch Summary ---"]
    for result in results:
        if result.status is ResultStatus.SKIPPED:
            lines.append(f"Skipped: {result.job_id} | Reason: {result.failure_reason}")
        elif result.status is ResultStatus.FAILED:
            lines.append(f"Failed: {result.job_id} | Reason: {result.failure_reason}")
    lines.append(
        f"Completed {state.completed_count}/{state.total_count} jobs: "
        f"{state.succeeded_count} succeeded, {state.skipped_count} skipped, "
        f"{state.failed_count} failed | "
        f"Original: {format_bytes(state.cumulative_original_bytes)} | "
        f"Transformed: {format_bytes(state.cumulative_transformed_bytes)} | "
        f"Total Reduced: {state.reduction}"
    )
    return lines


class ProgressAggregator:
    """Single owner of the batch's ProgressState.

    Args:
        total: Number of results expected for the batch.
        sink: Line-based output; defaults to this module's logger.
        on_update: Optional ``(completed, total)`` hook, e.g. a progress bar.
    """

    def __init__(
        self,
        total: int,
        sink: Sink | None = None,
        *,
        on_update: UpdateHook | None = None,
    ) -> None:
        if total < 0:
            raise ValueError(f"total must be >= 0, got {total}")
        self._state = ProgressState(total_count=total)
        self._sink = sink or _log_sink
        self._on_update = on_update
        self._queue: queue.Queue[Result | None] = queue.Queue()
        self._results: list[Result] = []
        self._summary_emitted = False
        self._drainer: threading.Thread | None = None
        self._lock = threading.RLock()

    def start(self) -> "ProgressAggregator":
        if self._drainer is None:
            self._drainer = threading.Thread(
                target=self._drain_results,
                name="pyshrink-progress",
                daemon=True,
            )
            self._drainer.start()
        return self

    def on_result(self, result: Result) -> None:
        """Queue a completed job's Result; never blocks."""
        self._queue.put_nowait(result)

    def close(self, timeout: float | None = None) -> ProgressState:
        """Apply every queued Result, emit the summary and stop the drainer."""
        self.start()
        self._queue.put(None)
        drainer = self._drainer
        if drainer is not None:
            drainer.join(timeout)
            if drainer.is_alive():
                logger.warning("Progress drainer did not finish within %ss", timeout)
        with self._lock:
            if not self._summary_emitted:
                self._emit_summary()
        return self.state

    def __enter__(self) -> "ProgressAggregator":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def state(self) -> ProgressState:
        """Snapshot of the counters."""
        with self._lock:
            return dataclasses.replace(self._state)

    @property
    def results(self) -> list[Result]:
        """Results received so far, in completion order."""
        with self._lock:
            return list(self._results)

    def _drain_results(self) -> None:
        while True:
            result = self._queue.get()
            if result is None:
                break
            with self._lock:
                self._apply(result)

    def _apply(self, result: Result) -> None:
        self._state.apply(result)
        self._results.append(result)
        if self._state.completed_count > self._state.total_count:
            logger.warning(
                "Received %d results for a batch of %d",
                self._state.completed_count,
                self._state.total_count,
            )
        self._emit(format_result_line(result, self._state))
        if self._on_update is not None:
            try:
                self._on_update(self._state.completed_count, self._state.total_count)
            except Exception:
                logger.warning("Progress update hook failed", exc_info=True)
        if self._state.is_complete and not self._summary_emitted:
            self._emit_summary()

    def _emit_summary(self) -> None:
        self._summary_emitted = True
        for line in format_summary_lines(self._state, self._results):
            self._emit(line)

    def _emit(self, line: str) -> None:
        try:
            self._sink(line)
        except Exception:
            logger.warning("Progress sink failed", exc_info=True)


__all__ = [
    "ProgressAggregator",
    "ProgressState",
    "format_result_line",
    "format_summary_lines",
]
