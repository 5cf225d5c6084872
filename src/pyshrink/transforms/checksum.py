"""Checksum mutation: append a few random bytes so the file's MD5 changes."""

from __future__ import annotations

import os
from pathlib import Path

from pyshrink.types.job import Job, Result

PADDING_BYTES = 8


def mutate_checksum(job: Job) -> Result:
    """Append ``PADDING_BYTES`` random bytes to the file at ``job.id``."""
    path = Path(job.id)
    original_size = path.stat().st_size
    with path.open("ab") as handle:
        handle.write(os.urandom(PADDING_BYTES))
    return Result.succeeded(
        job.id,
        original_size=original_size,
        transformed_size=path.stat().st_size,
    )


__all__ = ["PADDING_BYTES", "mutate_checksum"]
