"""Tests for ResourceRegistry.

Covers: defaults, per-field independence, per-kind independence,
snapshots, and set-then-get under concurrent readers.
"""
from __future__ import annotations

import threading

import pytest

from reqscope.domain.types import ResourceKind
from reqscope.resources.registry import ResourceRegistry, ResourceUsage


def test_defaults_are_zero():
    registry = ResourceRegistry()
    for kind in ResourceKind:
        assert registry.get_target(kind) == 0.0
        assert registry.get_current(kind) == 0.0


def test_initial_targets():
    registry = ResourceRegistry({ResourceKind.CPU: 30.0})
    assert registry.get_target(ResourceKind.CPU) == 30.0
    assert registry.get_target(ResourceKind.MEMORY) == 0.0


def test_target_and_current_are_independent():
    registry = ResourceRegistry()
    registry.set_target(ResourceKind.CPU, 40)
    registry.set_current(ResourceKind.CPU, 12.5)
    assert registry.get_target(ResourceKind.CPU) == 40.0
    assert registry.get_current(ResourceKind.CPU) == 12.5


def test_kinds_are_independent():
    registry = ResourceRegistry()
    registry.set_target(ResourceKind.MEMORY, 75.0)
    assert registry.get_target(ResourceKind.CPU) == 0.0
    assert registry.get_target(ResourceKind.MEMORY) == 75.0


def test_values_are_not_clamped():
    usage = ResourceUsage()
    usage.set_target(150)
    assert usage.get_target() == 150.0
    assert isinstance(usage.get_target(), float)


def test_unknown_kind_raises():
    registry = ResourceRegistry()
    with pytest.raises(KeyError):
        registry.get_target("cpu")  # type: ignore[arg-type]


def test_snapshot():
    registry = ResourceRegistry()
    registry.set_target(ResourceKind.CPU, 50)
    registry.set_current(ResourceKind.MEMORY, 33.3)
    snap = registry.snapshot()
    assert snap[ResourceKind.CPU].target == 50.0
    assert snap.to_dict() == {
        "cpu": {"target": 50.0, "current": 0.0},
        "memory": {"target": 0.0, "current": 33.3},
    }


def test_snapshot_is_a_copy():
    registry = ResourceRegistry()
    snap = registry.snapshot()
    registry.set_current(ResourceKind.CPU, 99.0)
    assert snap[ResourceKind.CPU].current == 0.0


def test_set_then_get_under_concurrent_reads_of_other_kind():
    """Writes to CPU are read back exactly while memory is hammered by readers."""
    registry = ResourceRegistry()
    stop = threading.Event()

    def memory_reader():
        while not stop.is_set():
            registry.get_target(ResourceKind.MEMORY)
            registry.get_current(ResourceKind.MEMORY)

    readers = [threading.Thread(target=memory_reader) for _ in range(8)]
    for t in readers:
        t.start()
    try:
        for value in range(101):
            registry.set_target(ResourceKind.CPU, value)
            assert registry.get_target(ResourceKind.CPU) == float(value)
    finally:
        stop.set()
        for t in readers:
            t.join(timeout=5.0)


def test_concurrent_writers_leave_a_valid_value():
    registry = ResourceRegistry()
    written = {float(v) for v in range(0, 101, 10)}

    def writer(value):
        for _ in range(200):
            registry.set_current(ResourceKind.CPU, value)

    threads = [threading.Thread(target=writer, args=(v,)) for v in written]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10.0)

    assert registry.get_current(ResourceKind.CPU) in written
