"""Service configuration from REQSCOPE_* environment variables.

Unset or unparseable variables fall back to their defaults (a bad value
is logged, not fatal). Values that parse but make no sense, such as a
port above 65535, are rejected by ServiceConfig.validate().
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

from reqscope.domain.types import ResourceKind

log = logging.getLogger(__name__)

ENV_PREFIX = "REQSCOPE_"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when a configuration value is out of range."""


def getenv_int(name: str, default: int, env: Mapping[str, str] | None = None) -> int:
    env = os.environ if env is None else env
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring %s=%r: not an integer, using %d", name, raw, default)
        return default


def getenv_float(name: str, default: float, env: Mapping[str, str] | None = None) -> float:
    env = os.environ if env is None else env
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default


def getenv_bool(name: str, default: bool, env: Mapping[str, str] | None = None) -> bool:
    env = os.environ if env is None else env
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    log.warning("Ignoring %s=%r: not a boolean, using %s", name, raw, default)
    return default


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    host: str = "0.0.0.0"
    port: int = 9000
    workers: int = 16
    az: str | None = None
    cpu_target: float = 0.0
    memory_target: float = 0.0
    sample_interval: float = 0.0    # seconds; 0 disables the sampler
    validate_forwarded: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ServiceConfig:
        env = os.environ if env is None else env
        d = cls()
        return cls(
            host=env.get(ENV_PREFIX + "HOST") or d.host,
            port=getenv_int(ENV_PREFIX + "PORT", d.port, env),
            workers=getenv_int(ENV_PREFIX + "WORKERS", d.workers, env),
            az=env.get(ENV_PREFIX + "AZ") or None,
            cpu_target=getenv_float(ENV_PREFIX + "CPU_TARGET", d.cpu_target, env),
            memory_target=getenv_float(ENV_PREFIX + "MEMORY_TARGET", d.memory_target, env),
            sample_interval=getenv_float(ENV_PREFIX + "SAMPLE_INTERVAL", d.sample_interval, env),
            validate_forwarded=getenv_bool(ENV_PREFIX + "VALIDATE_FORWARDED", d.validate_forwarded, env),
            log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or d.log_level).upper(),
        )

    def with_overrides(self, **overrides: Any) -> ServiceConfig:
        """Copy with every non-None override applied (CLI flags win over env)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> ServiceConfig:
        """Return self, or raise ConfigError naming the first bad value."""
        if not 0 <= self.port <= 65535:
            raise ConfigError(f"port must be between 0 and 65535, got {self.port}")
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        for name, value in (("cpu_target", self.cpu_target), ("memory_target", self.memory_target)):
            if not 0.0 <= value <= 100.0:
                raise ConfigError(f"{name} must be a percentage (0-100), got {value}")
        if self.sample_interval < 0:
            raise ConfigError(f"sample_interval must not be negative, got {self.sample_interval}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")
        return self

    def initial_targets(self) -> dict[ResourceKind, float]:
        return {ResourceKind.CPU: self.cpu_target, ResourceKind.MEMORY: self.memory_target}
