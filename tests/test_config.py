"""Tests for ServiceConfig and the env helpers."""
from __future__ import annotations

import pytest

from reqscope.config import ConfigError, ServiceConfig, getenv_bool, getenv_float, getenv_int
from reqscope.domain.types import ResourceKind


def test_defaults_without_env():
    cfg = ServiceConfig.from_env({})
    assert cfg == ServiceConfig()
    assert cfg.port == 9000
    assert cfg.az is None
    assert cfg.validate() is cfg


def test_from_env():
    cfg = ServiceConfig.from_env({
        "REQSCOPE_HOST": "127.0.0.1",
        "REQSCOPE_PORT": "8080",
        "REQSCOPE_WORKERS": "4",
        "REQSCOPE_AZ": "ap-northeast-1a",
        "REQSCOPE_CPU_TARGET": "35.5",
        "REQSCOPE_MEMORY_TARGET": "20",
        "REQSCOPE_SAMPLE_INTERVAL": "1",
        "REQSCOPE_VALIDATE_FORWARDED": "yes",
        "REQSCOPE_LOG_LEVEL": "debug",
    })
    assert cfg == ServiceConfig(
        host="127.0.0.1",
        port=8080,
        workers=4,
        az="ap-northeast-1a",
        cpu_target=35.5,
        memory_target=20.0,
        sample_interval=1.0,
        validate_forwarded=True,
        log_level="DEBUG",
    )
    assert cfg.initial_targets() == {ResourceKind.CPU: 35.5, ResourceKind.MEMORY: 20.0}


def test_malformed_values_fall_back_to_defaults():
    env = {"P": "eighty", "F": "x", "B": "maybe", "E": "  "}
    assert getenv_int("P", 9000, env) == 9000
    assert getenv_float("F", 1.5, env) == 1.5
    assert getenv_bool("B", False, env) is False
    assert getenv_int("E", 3, env) == 3
    assert getenv_int("MISSING", 7, env) == 7


@pytest.mark.parametrize("raw, expected", [("1", True), ("TRUE", True), ("on", True), ("0", False), ("off", False)])
def test_getenv_bool(raw, expected):
    assert getenv_bool("X", not expected, {"X": raw}) is expected


def test_overrides_skip_none():
    cfg = ServiceConfig(port=8080).with_overrides(port=None, workers=2, az=None)
    assert cfg.port == 8080
    assert cfg.workers == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"port": 70000},
        {"port": -1},
        {"workers": 0},
        {"cpu_target": 101.0},
        {"memory_target": -5.0},
        {"cpu_target": float("nan")},
        {"sample_interval": -1.0},
        {"log_level": "VERBOSE"},
    ],
)
def test_validate_rejects(kwargs):
    with pytest.raises(ConfigError):
        ServiceConfig(**kwargs).validate()


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)
