"""Resource registry: target and current utilization per resource kind.

One ResourceUsage per kind (CPU, memory). Each usage holds two
independent SynchronizedCells, so:
  - reads of a field run concurrently with other reads of it
  - a write to a field excludes reads and writes of that field only
  - CPU and memory never contend with each other
  - reading target then current is two lock acquisitions; a writer may
    land in between, and callers must not assume the pair is consistent

Values are stored as given. Callers (config, the sampler) are
responsible for passing percentages in [0, 100].

The registry is constructed explicitly at startup and handed to the
responder and the sampler; there is no module-level instance.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from reqscope.concurrency.cell import SynchronizedCell
from reqscope.domain.types import Percent, ResourceKind


class ResourceUsage:
    """Target/current pair for one resource, each field separately locked."""

    __slots__ = ("_target", "_current")

    def __init__(self, target: Percent = 0.0, current: Percent = 0.0) -> None:
        self._target: SynchronizedCell[float] = SynchronizedCell(float(target))
        self._current: SynchronizedCell[float] = SynchronizedCell(float(current))

    def get_target(self) -> Percent:
        return self._target.get()

    def set_target(self, value: Percent) -> None:
        self._target.set(float(value))

    def get_current(self) -> Percent:
        return self._current.get()

    def set_current(self, value: Percent) -> None:
        self._current.set(float(value))


@dataclass(frozen=True, slots=True)
class UsageReading:
    target: Percent
    current: Percent

    def to_dict(self) -> dict[str, float]:
        return {"target": self.target, "current": self.current}


@dataclass(frozen=True, slots=True)
class ResourceSnapshot:
    """Point-in-time copy of every usage, for rendering."""
    readings: dict[ResourceKind, UsageReading]

    def __getitem__(self, kind: ResourceKind) -> UsageReading:
        return self.readings[kind]

    def to_dict(self) -> dict[str, Any]:
        return {kind.value: reading.to_dict() for kind, reading in self.readings.items()}


class ResourceRegistry:
    """Process-wide, in-memory resource state.

    Args:
        targets: optional initial target per kind (default 0.0).
    """

    def __init__(self, targets: dict[ResourceKind, Percent] | None = None) -> None:
        targets = targets or {}
        self._usages: dict[ResourceKind, ResourceUsage] = {
            kind: ResourceUsage(target=targets.get(kind, 0.0)) for kind in ResourceKind
        }

    def usage(self, kind: ResourceKind) -> ResourceUsage:
        """Raises KeyError for anything that is not a ResourceKind."""
        return self._usages[kind]

    def get_target(self, kind: ResourceKind) -> Percent:
        return self._usages[kind].get_target()

    def set_target(self, kind: ResourceKind, value: Percent) -> None:
        self._usages[kind].set_target(value)

    def get_current(self, kind: ResourceKind) -> Percent:
        return self._usages[kind].get_current()

    def set_current(self, kind: ResourceKind, value: Percent) -> None:
        self._usages[kind].set_current(value)

    def snapshot(self) -> ResourceSnapshot:
        return ResourceSnapshot(
            readings={
                kind: UsageReading(target=usage.get_target(), current=usage.get_current())
                for kind, usage in self._usages.items()
            }
        )
