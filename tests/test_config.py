"""Tests for BatchConfig validation and YAML loading."""

import pytest

from pyshrink.config import BatchConfig, load_config
from pyshrink.errors import ConfigError


def test_defaults():
    config = load_config(None)
    assert config == BatchConfig()
    assert config.capacity == 4
    assert config.job_timeout is None
    assert config.executor == "process"
    assert config.quality == 80
    assert config.recursive is True


@pytest.mark.parametrize(
    "values",
    [
        {"capacity": 0},
        {"capacity": -2},
        {"capacity": "four"},
        {"capacity": True},
        {"job_timeout": 0},
        {"job_timeout": "soon"},
        {"executor": "fiber"},
        {"quality": 101},
        {"quality": 0},
        {"recursive": "yes"},
    ],
)
def test_invalid_values(values):
    with pytest.raises(ConfigError):
        BatchConfig.from_mapping(values)


def test_unknown_keys_rejected():
    with pytest.raises(ConfigError, match="Unknown configuration keys: colour"):
        BatchConfig.from_mapping({"colour": "blue"})


def test_timeout_coerced_to_float():
    assert BatchConfig(job_timeout=5).job_timeout == 5.0


def test_merged_ignores_none():
    base = BatchConfig(capacity=2, quality=60)
    merged = base.merged(capacity=8, quality=None, executor=None)
    assert merged.capacity == 8
    assert merged.quality == 60
    assert base.capacity == 2


def test_merged_validates():
    with pytest.raises(ConfigError):
        BatchConfig().merged(capacity=0)


def test_load_yaml(tmp_path):
    path = tmp_path / "pyshrink.yaml"
    path.write_text("capacity: 2\njob_timeout: 30\nexecutor: thread\nrecursive: false\n")
    config = load_config(path)
    assert config.capacity == 2
    assert config.job_timeout == 30.0
    assert config.executor == "thread"
    assert config.recursive is False


def test_load_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "pyshrink.yaml"
    path.write_text("")
    assert load_config(path) == BatchConfig()


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.yaml")


def test_load_non_mapping(tmp_path):
    path = tmp_path / "pyshrink.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


def test_load_broken_yaml(tmp_path):
    path = tmp_path / "pyshrink.yaml"
    path.write_text("capacity: [1\n")
    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(path)


def test_thread_executor_rejects_timeout():
    with pytest.raises(ConfigError, match="job_timeout"):
        BatchConfig(executor="thread", job_timeout=10)
    # A timeout from the command line cannot sneak past a thread config file
    with pytest.raises(ConfigError):
        BatchConfig(executor="thread").merged(job_timeout=10)


def test_compression_type():
    assert BatchConfig().compression_type == "auto"
    assert BatchConfig.from_mapping({"compression_type": "jpeg"}).compression_type == "jpeg"
    with pytest.raises(ConfigError, match="compression_type"):
        BatchConfig.from_mapping({"compression_type": "webp"})
