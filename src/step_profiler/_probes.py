"""Clock and memory probes.

A Session reads a Clock and a MemoryProbe at the start and end of every step.
Both are protocols so tests can substitute deterministic fakes; the defaults
use time.perf_counter() and psutil.
"""

import time
import tracemalloc
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import psutil
from beartype import beartype

from step_profiler._errors import ProbeError


@runtime_checkable
class Clock(Protocol):
    """Monotonic source of timestamps in seconds."""

    def now(self) -> float: ...


@runtime_checkable
class MemoryProbe(Protocol):
    """Source of process memory usage in bytes.

    A probe may return a single reading or a batch of readings (e.g. one per
    memory pool); batches are reduced by summation.
    """

    def memory_used(self) -> int | Sequence[int]: ...


class PerfCounterClock:
    """Clock backed by time.perf_counter() (monotonic, ~150ns overhead)."""

    def now(self) -> float:
        return time.perf_counter()


class PsutilMemoryProbe:
    """Resident set size of a process via psutil.

    Args:
        pid: Process to observe (default: the current process)
    """

    @beartype
    def __init__(self, pid: int | None = None) -> None:
        self._process = psutil.Process(pid)

    def memory_used(self) -> int:
        return int(self._process.memory_info().rss)


class TracemallocMemoryProbe:
    """Python heap bytes currently traced by tracemalloc.

    Starts tracing on construction if it is not already running. Far less
    noisy than RSS for small allocations, at a per-allocation overhead.
    """

    def __init__(self) -> None:
        if not tracemalloc.is_tracing():
            tracemalloc.start()

    def memory_used(self) -> tuple[int, ...]:
        current, _peak = tracemalloc.get_traced_memory()
        return (current,)


@beartype
def reduce_reading(reading: int | Sequence[int]) -> int:
    """Collapse a memory reading to a single byte count.

    Batch readings are summed, never averaged, so the delta of two readings
    accounts for every byte the probe measured.
    """
    if isinstance(reading, int):
        return reading
    return sum(int(part) for part in reading)


def read_clock(clock: Clock) -> float:
    """Read a clock, wrapping any failure in ProbeError."""
    try:
        return float(clock.now())
    except Exception as exc:
        raise ProbeError(f"Clock failed to return a reading: {exc}") from exc


def read_memory(probe: MemoryProbe) -> int:
    """Read a memory probe, wrapping any failure in ProbeError."""
    try:
        return reduce_reading(probe.memory_used())
    except Exception as exc:
        raise ProbeError(f"Memory probe failed to return a reading: {exc}") from exc
