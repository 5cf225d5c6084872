"""
Batch report YAML - writing and loading the outcome of one batch.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from pyshrink.pool.progress import ProgressState
from pyshrink.types.job import Result

logger = logging.getLogger(__name__)


def write_batch_report(
    path: Path,
    state: ProgressState,
    results: list[Result],
    extra: dict[str, Any] | None = None,
) -> Path:
    """Write the summary counters and every Result to ``path``."""
    document: dict[str, Any] = {}
    if extra:
        document.update(extra)
    document["summary"] = state.to_dict()
    document["results"] = [result.to_dict() for result in results]

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(
            document,
            f,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
    logger.info("Wrote batch report to %s", path)
    return path


def load_batch_report(path: Path) -> tuple[dict[str, Any], list[Result]]:
    """Read a report written by ``write_batch_report``.

    Returns the summary mapping and the Results in their recorded order.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to load batch report {path}: {e}")

    if not isinstance(document, dict) or "summary" not in document:
        raise ValueError("Batch report missing 'summary' section")

    results = [Result.from_dict(item) for item in document.get("results") or []]
    return document["summary"], results


__all__ = ["load_batch_report", "write_batch_report"]
