"""Shared resource state: the registry and the sampler that feeds it."""
from reqscope.resources.registry import (
    ResourceRegistry,
    ResourceSnapshot,
    ResourceUsage,
    UsageReading,
)
from reqscope.resources.sampler import (
    CpuTimes,
    ResourceSampler,
    cpu_percent_between,
    read_cpu_times,
    read_memory_percent,
)

__all__ = [
    "ResourceRegistry",
    "ResourceSnapshot",
    "ResourceUsage",
    "UsageReading",
    "CpuTimes",
    "ResourceSampler",
    "cpu_percent_between",
    "read_cpu_times",
    "read_memory_percent",
]
