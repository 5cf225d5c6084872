"""
In-place image recompression with Pillow.

PNG files are re-encoded with a zlib level derived from the quality setting,
JPEG files with the quality setting itself. The file is only replaced when the
new encoding is smaller. A compression type other than ``auto`` restricts the
batch to files of that format; an image is never rewritten in a format that
does not match its extension.
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from pyshrink.errors import JobFailure
from pyshrink.types.job import Job, Result

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 80

# Extension -> Pillow encoder name
ENCODERS = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
}

# Compression type -> Pillow encoder name; "auto" keeps each file's own format
COMPRESSION_TYPES = ("auto", "png", "jpg", "jpeg")
TYPE_ENCODERS = {
    "png": "PNG",
    "jpg": "JPEG",
    "jpeg": "JPEG",
}
DEFAULT_COMPRESSION_TYPE = "auto"

NO_REDUCTION_REASON = "No significant size reduction"
UNSUPPORTED_REASON = "Not supported format for compression"


def png_compress_level(quality: int) -> int:
    """Map a 1-100 quality to a zlib level: higher quality, lighter compression."""
    return max(0, 9 - quality // 10)


def validate_quality(quality: int) -> int:
    quality = int(quality)
    if not 1 <= quality <= 100:
        raise ValueError(f"quality must be between 1 and 100, got {quality}")
    return quality


def validate_compression_type(compression_type: str) -> str:
    value = str(compression_type).lower()
    if value not in COMPRESSION_TYPES:
        raise ValueError(f"Invalid compression type: {compression_type}")
    return value


def encode_image(image: Image.Image, encoder: str, quality: int) -> bytes:
    """Encode ``image``, keeping its colour profile and EXIF block."""
    metadata = {
        "icc_profile": image.info.get("icc_profile"),
        "exif": image.info.get("exif", b""),
    }
    buffer = io.BytesIO()
    if encoder == "PNG":
        image.save(
            buffer,
            format="PNG",
            compress_level=png_compress_level(quality),
            **metadata,
        )
    elif encoder == "JPEG":
        if image.mode not in ("RGB", "L", "CMYK"):
            image = image.convert("RGB")
        image.save(buffer, format="JPEG", quality=quality, **metadata)
    else:
        raise ValueError(f"Unsupported encoder: {encoder}")
    return buffer.getvalue()


def _temp_prefix(path: Path) -> str:
    return f".{path.name}."


def remove_stale_temp_files(path: Path) -> int:
    """Delete temp files left next to ``path`` by an interrupted write."""
    removed = 0
    for stale in path.parent.glob(f"{_temp_prefix(path)}*.tmp"):
        try:
            stale.unlink()
            removed += 1
        except FileNotFoundError:
            continue
    if removed:
        logger.debug("Removed %d stale temp files for %s", removed, path)
    return removed


def replace_file_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` next to ``path`` and move it into place."""
    remove_stale_temp_files(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=_temp_prefix(path), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def recompress_image(job: Job) -> Result:
    """Recompress the image at ``job.id`` in place.

    Payload keys:
        quality: 1-100, default 80.
        compression_type: ``auto`` (default), ``png``, ``jpg`` or ``jpeg``.
    """
    path = Path(job.id)
    try:
        quality = validate_quality(job.payload.get("quality", DEFAULT_QUALITY))
        compression_type = validate_compression_type(
            job.payload.get("compression_type", DEFAULT_COMPRESSION_TYPE)
        )
    except (TypeError, ValueError) as exc:
        raise JobFailure(str(exc)) from exc

    original_size = path.stat().st_size
    encoder = ENCODERS.get(path.suffix.lower())
    if encoder is None:
        return Result.skipped(
            job.id,
            UNSUPPORTED_REASON,
            original_size=original_size,
            transformed_size=original_size,
        )
    if compression_type != "auto" and TYPE_ENCODERS[compression_type] != encoder:
        return Result.skipped(
            job.id,
            f"Not selected compression type: {compression_type}",
            original_size=original_size,
            transformed_size=original_size,
        )

    try:
        with Image.open(path) as image:
            image.load()
            data = encode_image(image, encoder, quality)
    except (UnidentifiedImageError, OSError) as exc:
        return Result.failed(
            job.id,
            f"Cannot decode image, corrupted or unsupported format: {exc}",
            original_size=original_size,
        )

    if len(data) >= original_size:
        return Result.skipped(
            job.id,
            NO_REDUCTION_REASON,
            original_size=original_size,
            transformed_size=original_size,
        )

    replace_file_atomic(path, data)
    return Result.succeeded(
        job.id,
        original_size=original_size,
        transformed_size=path.stat().st_size,
    )


__all__ = [
    "COMPRESSION_TYPES",
    "DEFAULT_COMPRESSION_TYPE",
    "DEFAULT_QUALITY",
    "ENCODERS",
    "encode_image",
    "png_compress_level",
    "recompress_image",
    "remove_stale_temp_files",
    "replace_file_atomic",
    "validate_compression_type",
    "validate_quality",
]
