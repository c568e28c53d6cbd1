"""Background sampler that feeds current CPU and memory readings.

Linux only: reads /proc/stat and /proc/meminfo. The registry's
set_current() is the sampler's whole contract with the rest of the
service, so anything else (cgroup stats, a test double) can replace it.

CPU utilization over one interval:
    usage = (1 - d_idle / d_total) * 100      idle includes iowait

Memory utilization, excluding reclaimable cache:
    usage = (MemTotal - MemAvailable) / MemTotal * 100
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from reqscope.domain.types import Percent, ResourceKind
from reqscope.resources.registry import ResourceRegistry

log = logging.getLogger(__name__)

PROC_STAT = "/proc/stat"
PROC_MEMINFO = "/proc/meminfo"


@dataclass(frozen=True, slots=True)
class CpuTimes:
    total: float
    idle: float


def read_cpu_times(path: str = PROC_STAT) -> CpuTimes:
    """Aggregate CPU jiffies from the first line of /proc/stat.

    Raises:
        OSError: if the file cannot be read.
        ValueError: if the first line is not the aggregate "cpu" line.
    """
    with open(path, "r") as f:
        line = f.readline()
    if not line.startswith("cpu "):
        raise ValueError(f"Unexpected {path} format")
    vals = [float(x) for x in line.split()[1:]]
    if len(vals) < 4:
        raise ValueError(f"Too few fields in {path}")
    idle = vals[3] + (vals[4] if len(vals) > 4 else 0.0)
    # guest time is already counted in user/nice
    total = sum(vals[:8])
    return CpuTimes(total=total, idle=idle)


def cpu_percent_between(prev: CpuTimes, cur: CpuTimes) -> Percent:
    totald = cur.total - prev.total
    idled = cur.idle - prev.idle
    if totald <= 0:
        return 0.0
    return _clamp(100.0 * (totald - idled) / totald)


def read_memory_percent(path: str = PROC_MEMINFO) -> Percent:
    """Used memory excluding cache, as a percentage of MemTotal.

    Raises:
        OSError: if the file cannot be read.
        ValueError: if MemTotal or MemAvailable is missing or zero.
    """
    m: dict[str, int] = {}
    with open(path) as f:
        for line in f:
            key, sep, rest = line.partition(":")
            parts = rest.split()
            if sep and parts and parts[0].isdigit():
                m[key] = int(parts[0])
    total = m.get("MemTotal", 0)
    if total <= 0:
        raise ValueError(f"MemTotal not found or zero in {path}")
    available = m.get("MemAvailable")
    if available is None:
        raise ValueError(f"MemAvailable not found in {path}")
    return _clamp(100.0 * (total - available) / total)


def _clamp(value: float) -> Percent:
    return max(0.0, min(100.0, value))


class ResourceSampler:
    """Periodically writes current CPU/memory usage into a registry.

    Args:
        registry: where readings are written.
        interval: seconds between samples.
        stat_path / meminfo_path: override for tests.
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        interval: float = 1.0,
        stat_path: str = PROC_STAT,
        meminfo_path: str = PROC_MEMINFO,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._registry = registry
        self._interval = interval
        self._stat_path = stat_path
        self._meminfo_path = meminfo_path
        self._prev: CpuTimes | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sample_once(self) -> bool:
        """Take one reading and write it to the registry.

        The first call only primes the CPU baseline; memory is written
        every time. Returns False if /proc could not be read.
        """
        try:
            cur = read_cpu_times(self._stat_path)
            mem = read_memory_percent(self._meminfo_path)
        except (OSError, ValueError) as exc:
            log.warning("Resource sampling unavailable: %s", exc)
            return False
        if self._prev is not None:
            self._registry.set_current(ResourceKind.CPU, cpu_percent_between(self._prev, cur))
        self._prev = cur
        self._registry.set_current(ResourceKind.MEMORY, mem)
        return True

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="resource-sampler", daemon=True)
        self._thread.start()
        log.info("Resource sampler started, interval=%.2fs", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            if not self.sample_once():
                log.warning("Resource sampler stopping")
                return
            self._stop.wait(self._interval)
