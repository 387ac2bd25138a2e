"""Property-based tests for step_profiler using Hypothesis.

These tests verify invariants that handwritten cases miss: arbitrary nesting
orders, float edge cases in aggregation, and unit selection across the whole
byte range. Function-scoped fixtures do not mix with @given, so probes are
built inline here.
"""

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from step_profiler import (
    DuplicateStepError,
    NoDataError,
    Session,
    StepRecord,
    UnknownStepError,
    build_report,
    format_bytes,
    summarize,
)


class SteppingClock:
    def __init__(self) -> None:
        self.time = 0.0

    def now(self) -> float:
        return self.time


class CountingMemoryProbe:
    def __init__(self) -> None:
        self.value = 0

    def memory_used(self) -> int:
        return self.value


def new_session() -> tuple[Session, SteppingClock, CountingMemoryProbe]:
    clock = SteppingClock()
    memory = CountingMemoryProbe()
    return Session(clock=clock, memory_probe=memory), clock, memory


def make_step(name: str, duration: float, memory: int | None) -> StepRecord:
    return StepRecord(
        name=name,
        start_time=0.0,
        end_time=duration,
        duration_seconds=duration,
        memory_delta_bytes=memory,
        memory_delta_human=format_bytes(memory),
    )


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

# Valid durations: non-negative finite floats
valid_duration = st.floats(min_value=0.0, max_value=1e9, allow_nan=False, allow_infinity=False)

# Step advances: small positive increments of the manual clock
clock_advance = st.floats(min_value=0.0, max_value=1e3, allow_nan=False, allow_infinity=False)

# Memory deltas: can be negative (memory released)
memory_delta = st.integers(min_value=-(2**40), max_value=2**40)

# Step names: non-empty strings
step_name = st.text(min_size=1, max_size=30)


# ---------------------------------------------------------------------------
# Session: start/end pairing
# ---------------------------------------------------------------------------

class TestPairingProperties:
    @given(
        plan=st.lists(st.tuples(step_name, clock_advance, memory_delta), min_size=1, max_size=30)
    )
    def test_sequential_pairs_each_produce_one_record(self, plan):
        """len(steps) == completed pairs; every duration is non-negative."""
        session, clock, memory = new_session()
        for name, seconds, delta in plan:
            session.start_step(name)
            clock.time += seconds
            memory.value += delta
            record = session.end_step(name)
            assert record.memory_delta_bytes == delta

        assert len(session.steps) == len(plan)
        assert all(step.duration_seconds >= 0 for step in session.steps)
        assert session.pending_steps() == frozenset()

    @given(data=st.data())
    def test_any_nesting_order_closes_every_step(self, data):
        """Open N distinct steps, close them in any order: N records in close order."""
        names = data.draw(st.lists(step_name, min_size=1, max_size=10, unique=True))
        close_order = data.draw(st.permutations(names))
        session, clock, _memory = new_session()

        for name in names:
            session.start_step(name)
            clock.time += 1.0
        for name in close_order:
            session.end_step(name)
            clock.time += 0.5

        assert [step.name for step in session.steps] == list(close_order)
        assert all(step.duration_seconds >= 0 for step in session.steps)
        assert session.pending_steps() == frozenset()

    @given(name=step_name)
    def test_duplicate_start_always_raises(self, name):
        session, _clock, _memory = new_session()
        session.start_step(name)
        with pytest.raises(DuplicateStepError):
            session.start_step(name)

    @given(name=step_name)
    def test_end_without_start_always_raises(self, name):
        session, _clock, _memory = new_session()
        with pytest.raises(UnknownStepError):
            session.end_step(name)

    @given(name=step_name, seconds=clock_advance)
    @settings(max_examples=50)
    def test_bracket_records_even_when_failing(self, name, seconds):
        session, clock, _memory = new_session()

        def fail():
            clock.time += seconds
            raise KeyError(name)

        with pytest.raises(KeyError):
            session.bracket(name, fail)
        assert [step.name for step in session.steps] == [name]


# ---------------------------------------------------------------------------
# summarize
# ---------------------------------------------------------------------------

class TestSummaryProperties:
    @given(
        data=st.lists(st.tuples(valid_duration, memory_delta), min_size=1, max_size=40)
    )
    def test_totals_and_extrema(self, data):
        steps = [make_step(f"s{i}", d, m) for i, (d, m) in enumerate(data)]
        summary = summarize(steps)
        durations = [d for d, _ in data]

        assert summary.step_count == len(data)
        assert summary.total_duration_seconds == pytest.approx(math.fsum(durations), rel=1e-9)
        assert summary.average_duration_seconds == pytest.approx(
            math.fsum(durations) / len(durations), rel=1e-9
        )
        assert summary.max_duration_seconds == max(durations)
        assert summary.max_duration_step_name == f"s{durations.index(max(durations))}"
        assert summary.peak_memory_bytes == max(m for _, m in data)

    @given(durations=st.lists(valid_duration, min_size=1, max_size=40))
    def test_average_bounded_by_extrema(self, durations):
        summary = summarize([make_step("s", d, None) for d in durations])
        tolerance = 1e-9 * max(durations) + 1e-12
        assert min(durations) - tolerance <= summary.average_duration_seconds
        assert summary.average_duration_seconds <= summary.max_duration_seconds + tolerance
        assert summary.peak_memory_bytes is None

    def test_empty_always_raises(self):
        with pytest.raises(NoDataError):
            summarize(())


# ---------------------------------------------------------------------------
# build_report
# ---------------------------------------------------------------------------

class TestReportProperties:
    @given(plan=st.lists(st.tuples(step_name, clock_advance), min_size=1, max_size=20))
    @settings(max_examples=50)
    def test_rows_mirror_steps_and_report_is_repeatable(self, plan):
        session, clock, _memory = new_session()
        for name, seconds in plan:
            session.start_step(name)
            clock.time += seconds
            session.end_step(name)

        first = build_report(session)
        second = build_report(session)

        assert first == second
        assert [row.step for row in first.rows] == [name for name, _ in plan]
        assert first.total_elapsed_seconds >= first.summary.total_duration_seconds - 1e-6


# ---------------------------------------------------------------------------
# format_bytes
# ---------------------------------------------------------------------------

class TestFormatBytesProperties:
    @given(num_bytes=st.integers(min_value=-(2**50), max_value=2**50))
    def test_sign_and_unit(self, num_bytes):
        text = format_bytes(num_bytes)
        assert text.startswith("-") == (num_bytes < 0)

        magnitude = abs(num_bytes)
        if magnitude < 1024:
            assert text == f"{num_bytes} bytes"
        else:
            value, unit = text.lstrip("-").split()
            assert unit in ("KB", "MB", "GB")
            if unit != "GB":
                assert float(value) < 1024.0

    @given(num_bytes=st.integers(min_value=1024, max_value=2**50))
    def test_scaled_value_is_at_least_one(self, num_bytes):
        value = float(format_bytes(num_bytes).split()[0])
        assert value >= 1.0
