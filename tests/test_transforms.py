"""Tests for the built-in work functions."""

import numbers
from pathlib import Path

import pytest
from PIL import Image

from pyshrink.errors import JobFailure
from pyshrink.transforms import get_transform, list_transforms
from pyshrink.transforms.checksum import PADDING_BYTES, mutate_checksum
from pyshrink.transforms.recompress import (
    encode_image,
    png_compress_level,
    recompress_image,
    remove_stale_temp_files,
    replace_file_atomic,
)
from pyshrink.types.job import Job, ResultStatus


def _gradient(size=(64, 64)) -> Image.Image:
    image = Image.new("RGB", size)
    image.putdata(
        [((x * 4) % 256, (y * 4) % 256, (x + y) % 256) for y in range(size[1]) for x in range(size[0])]
    )
    return image


def _write_uncompressed_png(path: Path) -> Path:
    _gradient().save(path, format="PNG", compress_level=0)
    return path


def _write_large_jpeg(path: Path) -> Path:
    _gradient().save(path, format="JPEG", quality=100)
    return path


class TestRecompress:
    def test_png_gets_smaller(self, tmp_path):
        path = _write_uncompressed_png(tmp_path / "a.png")
        before = path.stat().st_size

        result = recompress_image(Job(str(path), {"quality": 10}))

        assert result.status is ResultStatus.SUCCEEDED
        assert result.original_size == before
        assert result.transformed_size == path.stat().st_size
        assert result.transformed_size < before
        with Image.open(path) as image:
            assert image.size == (64, 64)

    def test_jpeg_gets_smaller(self, tmp_path):
        path = _write_large_jpeg(tmp_path / "a.JPG")
        before = path.stat().st_size

        result = recompress_image(Job(str(path), {"quality": 20}))

        assert result.success
        assert result.transformed_size < before

    def test_no_reduction_is_skipped_and_file_untouched(self, tmp_path):
        path = tmp_path / "a.png"
        _gradient().save(path, format="PNG", compress_level=9, optimize=True)
        content = path.read_bytes()

        # Lowest compression level cannot beat an optimized encoding
        result = recompress_image(Job(str(path), {"quality": 100}))

        assert result.status is ResultStatus.SKIPPED
        assert result.failure_reason == "No significant size reduction"
        assert path.read_bytes() == content

    def test_unsupported_format_is_skipped(self, tmp_path):
        path = tmp_path / "a.gif"
        _gradient().save(path, format="GIF")

        result = recompress_image(Job(str(path)))

        assert result.status is ResultStatus.SKIPPED
        assert "Not supported format" in result.failure_reason

    def test_corrupted_file_fails(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"definitely not a png")

        result = recompress_image(Job(str(path)))

        assert result.status is ResultStatus.FAILED
        assert result.failure_reason.startswith("Cannot decode image")
        assert path.read_bytes() == b"definitely not a png"

    def test_invalid_quality_raises_job_failure(self, tmp_path):
        path = _write_uncompressed_png(tmp_path / "a.png")
        with pytest.raises(JobFailure, match="quality"):
            recompress_image(Job(str(path), {"quality": 0}))

    def test_jpeg_encoder_converts_alpha(self):
        image = Image.new("RGBA", (8, 8), (255, 0, 0, 128))
        data = encode_image(image, "JPEG", 80)
        assert data[:2] == b"\xff\xd8"

    @pytest.mark.parametrize(
        "quality,level", [(1, 9), (10, 8), (80, 1), (95, 0), (100, 0)]
    )
    def test_png_compress_level(self, quality, level):
        assert png_compress_level(quality) == level

    def test_replace_file_atomic_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "a.bin"
        path.write_bytes(b"old")
        replace_file_atomic(path, b"new")
        assert path.read_bytes() == b"new"
        assert [p.name for p in tmp_path.iterdir()] == ["a.bin"]

    def test_replace_file_atomic_removes_interrupted_writes(self, tmp_path):
        path = tmp_path / "a.png"
        path.write_bytes(b"old")
        (tmp_path / ".a.png.abc123.tmp").write_bytes(b"half written")
        (tmp_path / ".b.png.abc123.tmp").write_bytes(b"other file")

        replace_file_atomic(path, b"new")

        assert sorted(p.name for p in tmp_path.iterdir()) == [".b.png.abc123.tmp", "a.png"]
        assert remove_stale_temp_files(path) == 0

    def test_jpeg_keeps_exif_and_icc_profile(self, tmp_path):
        path = tmp_path / "photo.jpg"
        exif = Image.Exif()
        exif[0x0112] = 6  # orientation
        _gradient().save(
            path, format="JPEG", quality=100, exif=exif.tobytes(), icc_profile=b"test-icc"
        )

        result = recompress_image(Job(str(path), {"quality": 20}))

        assert result.success
        with Image.open(path) as image:
            assert image.getexif()[0x0112] == 6
            assert image.info.get("icc_profile") == b"test-icc"

    def test_compression_type_limits_formats(self, tmp_path):
        png = _write_uncompressed_png(tmp_path / "a.png")
        jpeg = _write_large_jpeg(tmp_path / "b.jpg")
        jpeg_bytes = jpeg.read_bytes()

        png_result = recompress_image(Job(str(png), {"compression_type": "png", "quality": 10}))
        jpeg_result = recompress_image(Job(str(jpeg), {"compression_type": "png", "quality": 10}))

        assert png_result.success
        assert jpeg_result.status is ResultStatus.SKIPPED
        assert jpeg_result.failure_reason == "Not selected compression type: png"
        assert jpeg.read_bytes() == jpeg_bytes

    @pytest.mark.parametrize("compression_type", ["jpg", "JPEG"])
    def test_jpeg_compression_type(self, tmp_path, compression_type):
        jpeg = _write_large_jpeg(tmp_path / "b.jpeg")
        result = recompress_image(Job(str(jpeg), {"compression_type": compression_type, "quality": 20}))
        assert result.success

    def test_invalid_compression_type_raises_job_failure(self, tmp_path):
        path = _write_uncompressed_png(tmp_path / "a.png")
        with pytest.raises(JobFailure, match="Invalid compression type: gif"):
            recompress_image(Job(str(path), {"compression_type": "gif"}))


class TestChecksum:
    def test_appends_padding(self, tmp_path):
        path = tmp_path / "a.png"
        path.write_bytes(b"x" * 100)

        result = mutate_checksum(Job(str(path)))

        assert result.success
        assert result.original_size == 100
        assert result.transformed_size == 100 + PADDING_BYTES
        assert path.read_bytes()[:100] == b"x" * 100
        assert isinstance(result.metrics["original_size"], numbers.Integral)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            mutate_checksum(Job(str(tmp_path / "missing.png")))


def test_registry():
    assert list_transforms() == ["compress", "md5"]
    assert get_transform("md5") is mutate_checksum
    with pytest.raises(KeyError):
        get_transform("resize")
