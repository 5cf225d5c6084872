"""Image file discovery and job construction."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pyshrink.types.job import Job

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".webp")


def is_image_file(path: Path, extensions: Iterable[str] = IMAGE_EXTENSIONS) -> bool:
    """Case-insensitive extension check."""
    return path.suffix.lower() in {ext.lower() for ext in extensions}


def discover_image_files(
    root: Path,
    recursive: bool = True,
    extensions: Iterable[str] = IMAGE_EXTENSIONS,
) -> list[Path]:
    """Return image files under ``root``, sorted by path."""
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Directory does not exist: {root}")

    extensions = tuple(extensions)
    candidates = root.rglob("*") if recursive else root.iterdir()
    files = sorted(
        path
        for path in candidates
        if path.is_file() and is_image_file(path, extensions)
    )
    logger.debug("Found %d image files under %s", len(files), root)
    return files


def build_jobs(paths: Iterable[Path], **payload: Any) -> list[Job]:
    """One Job per path, all sharing the same payload."""
    return [Job(id=str(path), payload=payload) for path in paths]


__all__ = [
    "IMAGE_EXTENSIONS",
    "build_jobs",
    "discover_image_files",
    "is_image_file",
]
