"""Measurement session: step lifecycle, nesting, and the append-only step log.

Design by Contract:
- Step durations MUST be non-negative (crash if the clock went backwards)
- Step names MUST be non-empty
- A step name may be open at most once at a time
- Bracket mismatches are surfaced, never auto-corrected

All public entry points use beartype for runtime type enforcement.
"""

import threading
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, TypeVar

from beartype import beartype
from loguru import logger

from step_profiler._errors import DuplicateStepError, ProbeError, UnknownStepError
from step_profiler._format import format_bytes
from step_profiler._probes import (
    Clock,
    MemoryProbe,
    PerfCounterClock,
    PsutilMemoryProbe,
    read_clock,
    read_memory,
)

T = TypeVar("T")

MetadataScalar = str | int | float | bool
MetadataValue = MetadataScalar | list[MetadataScalar] | tuple[MetadataScalar, ...]


def freeze_metadata(
    metadata: Mapping[str, MetadataValue] | None,
) -> Mapping[str, MetadataValue]:
    """Return a read-only copy of a metadata mapping (lists become tuples)."""
    if not metadata:
        return MappingProxyType({})
    frozen = {
        key: tuple(value) if isinstance(value, list) else value
        for key, value in metadata.items()
    }
    return MappingProxyType(frozen)


@dataclass(frozen=True)
class StepRecord:
    """A completed step. Immutable once appended to a Session.

    start_time/end_time are Clock readings (seconds); memory_delta_bytes is
    None when the memory probe was unavailable at either end of the step.
    """

    name: str
    start_time: float
    end_time: float
    duration_seconds: float
    memory_delta_bytes: int | None
    memory_delta_human: str

    def __post_init__(self) -> None:
        assert self.duration_seconds >= 0, (
            f"Elapsed time cannot be negative: {self.duration_seconds:.6f}s. "
            f"System clock went backwards or timing bug."
        )
        assert self.end_time >= self.start_time, (
            f"Step {self.name!r} ends before it starts: "
            f"{self.end_time:.6f} < {self.start_time:.6f}"
        )

    def wall_times(
        self, origin_wall: datetime, origin_clock: float
    ) -> tuple[datetime, datetime]:
        """Convert start/end Clock readings to wall-clock datetimes."""
        return (
            origin_wall + timedelta(seconds=self.start_time - origin_clock),
            origin_wall + timedelta(seconds=self.end_time - origin_clock),
        )


class StepRecorder:
    """In-flight state of one named step.

    Created by Session.start_step, consumed by the matching Session.end_step.
    When used through Session.step(), ``record`` holds the finished
    StepRecord after the block exits.

    Attributes:
        name: Step identifier (MUST be non-empty)
        start_time: Clock reading at start
        memory_before: Memory reading at start (bytes)
        record: The completed StepRecord, once the step has ended
    """

    @beartype
    def __init__(self, name: str, start_time: float, memory_before: int | None) -> None:
        assert name, "Step name must be non-empty"
        self.name = name
        self.start_time = start_time
        self.memory_before = memory_before
        self.record: StepRecord | None = None

    @classmethod
    def start(cls, name: str, clock: Clock, probe: MemoryProbe) -> "StepRecorder":
        """Capture memory and start time. Raises ProbeError on probe failure."""
        memory_before = read_memory(probe)
        return cls(name, read_clock(clock), memory_before)

    def finish(self, end_time: float, memory_after: int | None) -> StepRecord:
        if memory_after is None or self.memory_before is None:
            memory_delta = None
        else:
            memory_delta = memory_after - self.memory_before
        return StepRecord(
            name=self.name,
            start_time=self.start_time,
            end_time=end_time,
            duration_seconds=end_time - self.start_time,
            memory_delta_bytes=memory_delta,
            memory_delta_human=format_bytes(memory_delta),
        )


class Session:
    """Collects step measurements for one profiling run.

    Thread-safe: starting, ending, and recording steps are serialized under a
    lock, and ``steps`` returns an immutable snapshot.

    Args:
        metadata: Run-level information (e.g. script_name, author). Read-only
            after construction.
        clock: Monotonic time source (default: PerfCounterClock). Construction
            never fails on a clock error; the overall timer then starts at the
            first successful reading.
        memory_probe: Memory source (default: PsutilMemoryProbe for this process)

    Example:
        session = Session({"script_name": "etl.py"})
        with session.step("load"):
            frame = load()
        session.bracket("transform", transform, frame)
        report = build_report(session)
    """

    @beartype
    def __init__(
        self,
        metadata: Mapping[str, MetadataValue] | None = None,
        *,
        clock: Clock | None = None,
        memory_probe: MemoryProbe | None = None,
    ) -> None:
        self._metadata = freeze_metadata(metadata)
        self._clock = clock if clock is not None else PerfCounterClock()
        self._memory_probe = (
            memory_probe if memory_probe is not None else PsutilMemoryProbe()
        )
        self._steps: list[StepRecord] = []
        self._open: dict[str, StepRecorder] = {}
        self._lock = threading.Lock()
        self._started_at = datetime.now().astimezone()
        self._started_clock: float | None = None
        try:
            self._anchor(read_clock(self._clock))
        except ProbeError as exc:
            logger.warning(f"Session clock unavailable at start, timing from first reading: {exc}")

    def _anchor(self, reading: float) -> None:
        """Fix the overall timer origin at the first successful clock reading."""
        with self._lock:
            if self._started_clock is None:
                self._started_at = datetime.now().astimezone()
                self._started_clock = reading

    @property
    def metadata(self) -> Mapping[str, MetadataValue]:
        return self._metadata

    @property
    def started_at(self) -> datetime:
        """Wall-clock time at the overall timer origin."""
        return self._started_at

    @property
    def started_clock(self) -> float | None:
        """Clock reading at the overall timer origin (None until the clock first answers)."""
        return self._started_clock

    @property
    def steps(self) -> tuple[StepRecord, ...]:
        """Completed steps in completion order (snapshot)."""
        with self._lock:
            return tuple(self._steps)

    @property
    def clock(self) -> Clock:
        return self._clock

    def pending_steps(self) -> frozenset[str]:
        """Names of steps started but not yet ended."""
        with self._lock:
            return frozenset(self._open)

    def elapsed(self, now: float | None = None) -> float:
        """Seconds since the session started, by the session clock."""
        if now is None:
            now = read_clock(self._clock)
        self._anchor(now)
        return now - self._started_clock

    def _open_step(self, name: str) -> StepRecorder:
        with self._lock:
            if name in self._open:
                raise DuplicateStepError(name)

        recorder = StepRecorder.start(name, self._clock, self._memory_probe)
        self._anchor(recorder.start_time)

        with self._lock:
            if name in self._open:
                raise DuplicateStepError(name)
            self._open[name] = recorder

        logger.debug(f"Started profiling step {name!r}")
        return recorder

    @beartype
    def start_step(self, name: str) -> None:
        """Open a step.

        Raises:
            DuplicateStepError: ``name`` is already open
            ProbeError: clock or memory probe failed (nothing is opened)
        """
        self._open_step(name)

    @beartype
    def end_step(self, name: str) -> StepRecord:
        """Close an open step, append its record, and return it.

        Raises:
            UnknownStepError: ``name`` is not open
            ProbeError: clock failure (the step stays open), or memory
                failure (the step is recorded with an unavailable memory
                delta, available as ``error.record``)
        """
        with self._lock:
            recorder = self._open.get(name)
        if recorder is None:
            raise UnknownStepError(name)

        end_time = read_clock(self._clock)
        memory_error: ProbeError | None = None
        try:
            memory_after: int | None = read_memory(self._memory_probe)
        except ProbeError as exc:
            memory_after = None
            memory_error = exc

        record = recorder.finish(end_time, memory_after)

        with self._lock:
            if self._open.get(name) is not recorder:
                raise UnknownStepError(name)
            del self._open[name]
            self._steps.append(record)
        recorder.record = record

        logger.debug(
            f"Ended profiling step {name!r}: {record.duration_seconds:.4f}s, "
            f"memory {record.memory_delta_human}"
        )

        if memory_error is not None:
            memory_error.record = record
            raise memory_error
        return record

    @beartype
    def record(
        self,
        name: str,
        elapsed: float,
        memory_delta_bytes: int | None = None,
    ) -> StepRecord:
        """Append a step that was timed outside the session (thread-safe).

        The step is taken to end at the current clock reading.

        Args:
            name: Step name (MUST NOT be currently open)
            elapsed: Duration in seconds (MUST be >= 0)
            memory_delta_bytes: Change in memory, or None if unknown
        """
        assert name, "Step name must be non-empty"
        assert elapsed >= 0, f"Elapsed time must be non-negative: {elapsed}"

        end_time = read_clock(self._clock)
        self._anchor(end_time - elapsed)
        record = StepRecord(
            name=name,
            start_time=end_time - elapsed,
            end_time=end_time,
            duration_seconds=elapsed,
            memory_delta_bytes=memory_delta_bytes,
            memory_delta_human=format_bytes(memory_delta_bytes),
        )

        with self._lock:
            if name in self._open:
                raise DuplicateStepError(name)
            self._steps.append(record)
        return record

    def _close(self, recorder: StepRecorder, failed: bool) -> None:
        try:
            self.end_step(recorder.name)
        except ProbeError as exc:
            if not failed:
                raise
            logger.warning(
                f"Probe failed while closing step {recorder.name!r} "
                f"after an exception: {exc}"
            )

    @beartype
    @contextmanager
    def step(self, name: str) -> Generator[StepRecorder, None, None]:
        """Measure the enclosed block as step ``name``.

        The step is always ended, whether the block returns or raises, so the
        log never loses an entry to an exception. Blocks for different names
        may nest.

        Yields:
            StepRecorder whose ``record`` is set once the block exits
        """
        recorder = self._open_step(name)
        try:
            yield recorder
        except BaseException:
            self._close(recorder, failed=True)
            raise
        self._close(recorder, failed=False)

    def bracket(self, name: str, fn: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        """Call ``fn(*args, **kwargs)`` as step ``name`` and return its result.

        Exceptions from ``fn`` propagate after the step has been recorded.
        """
        with self.step(name):
            return fn(*args, **kwargs)

    @beartype
    def log_checkpoint(self, checkpoint_name: str) -> None:
        """Log condensed profiling snapshot via loguru.

        Useful for long-running programs where you want incremental
        visibility without waiting for the full report.

        Args:
            checkpoint_name: Name for this checkpoint (e.g., "After Loading")
        """
        steps = self.steps
        if not steps:
            logger.info(f"[CHECKPOINT: {checkpoint_name}] No profiling data yet")
            return

        step_time = sum(step.duration_seconds for step in steps)
        logger.info(
            f"[CHECKPOINT: {checkpoint_name}] {len(steps)} steps, "
            f"step time: {step_time:.2f}s, elapsed: {self.elapsed():.2f}s"
        )

        for step in steps:
            line = f"  {step.name}: {step.duration_seconds:.2f}s"
            delta = step.memory_delta_bytes
            if delta is not None:
                sign = "+" if delta >= 0 else ""
                line += f", Δ={sign}{step.memory_delta_human}"
            logger.info(line)

        pending = self.pending_steps()
        if pending:
            logger.info(f"  open: {', '.join(sorted(pending))}")

    def close(self) -> frozenset[str]:
        """Tear down the session, flagging any steps left open.

        Open steps are reported, never closed on the caller's behalf.

        Returns:
            Names of steps that were still open
        """
        pending = self.pending_steps()
        if pending:
            logger.warning(
                f"Profiling session closed with open steps: {', '.join(sorted(pending))}"
            )
        return pending

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


@beartype
@contextmanager
def profile_step(
    name: str,
    session: Session | None,
) -> Generator[StepRecorder | None, None, None]:
    """Context manager for profiling a block into an optional session.

    When session is None, the wrapped code still executes but nothing is
    measured and None is yielded. This eliminates the need for ``if session:``
    / ``else:`` branching at call sites.

    Args:
        name: Step name
        session: Session to record into, or None for no-op

    Yields:
        StepRecorder for the running step, or None
    """
    if session is None:
        yield None
        return
    with session.step(name) as recorder:
        yield recorder
