"""Batch configuration: defaults, YAML loading and validation."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from pyshrink.errors import ConfigError
from pyshrink.pool.executor import EXECUTOR_KINDS
from pyshrink.pool.run import DEFAULT_CAPACITY
from pyshrink.transforms.recompress import (
    COMPRESSION_TYPES,
    DEFAULT_COMPRESSION_TYPE,
    DEFAULT_QUALITY,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BatchConfig:
    capacity: int = DEFAULT_CAPACITY
    job_timeout: float | None = None
    executor: str = "process"
    quality: int = DEFAULT_QUALITY
    compression_type: str = DEFAULT_COMPRESSION_TYPE
    recursive: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
            raise ConfigError(f"capacity must be an integer, got {self.capacity!r}")
        if self.capacity < 1:
            raise ConfigError(f"capacity must be at least 1, got {self.capacity}")

        if self.job_timeout is not None:
            try:
                self.job_timeout = float(self.job_timeout)
            except (TypeError, ValueError) as exc:
                raise ConfigError(
                    f"job_timeout must be a number, got {self.job_timeout!r}"
                ) from exc
            if self.job_timeout <= 0:
                raise ConfigError(f"job_timeout must be positive, got {self.job_timeout}")

        if self.executor not in EXECUTOR_KINDS:
            raise ConfigError(
                f"executor must be one of {', '.join(EXECUTOR_KINDS)}, got {self.executor!r}"
            )

        if self.executor == "thread" and self.job_timeout is not None:
            raise ConfigError("job_timeout requires the process executor")

        if isinstance(self.quality, bool) or not isinstance(self.quality, int):
            raise ConfigError(f"quality must be an integer, got {self.quality!r}")
        if not 1 <= self.quality <= 100:
            raise ConfigError(f"quality must be between 1 and 100, got {self.quality}")

        if self.compression_type not in COMPRESSION_TYPES:
            raise ConfigError(
                f"compression_type must be one of {', '.join(COMPRESSION_TYPES)}, "
                f"got {self.compression_type!r}"
            )

        if not isinstance(self.recursive, bool):
            raise ConfigError(f"recursive must be true or false, got {self.recursive!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BatchConfig":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(data))

    def merged(self, **overrides: Any) -> "BatchConfig":
        """Copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return BatchConfig.from_mapping({**dataclasses.asdict(self), **values})


def load_config(path: Path | None = None) -> BatchConfig:
    """Load a YAML config file; ``None`` returns the defaults."""
    if path is None:
        return BatchConfig()

    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping")

    logger.debug("Loaded config from %s: %s", path, data)
    return BatchConfig.from_mapping(data)


__all__ = ["BatchConfig", "load_config"]
