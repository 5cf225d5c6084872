"""
IO utilities: image discovery and batch reports.
"""

from pyshrink.io.discovery import (
    IMAGE_EXTENSIONS,
    build_jobs,
    discover_image_files,
    is_image_file,
)
from pyshrink.io.report import load_batch_report, write_batch_report

__all__ = [
    "IMAGE_EXTENSIONS",
    "build_jobs",
    "discover_image_files",
    "is_image_file",
    "load_batch_report",
    "write_batch_report",
]
