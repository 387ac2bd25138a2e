"""Summary statistics over completed steps."""

from collections.abc import Sequence
from dataclasses import dataclass

from beartype import beartype

from step_profiler._core import StepRecord
from step_profiler._errors import NoDataError


@dataclass(frozen=True)
class SummaryStats:
    """Aggregate metrics for a step log.

    peak_memory_bytes is the largest per-step memory delta (not cumulative
    memory), or None when no step has a memory measurement.
    """

    total_duration_seconds: float
    average_duration_seconds: float
    max_duration_seconds: float
    max_duration_step_name: str
    peak_memory_bytes: int | None
    step_count: int


@beartype
def summarize(steps: Sequence[StepRecord]) -> SummaryStats:
    """Compute summary statistics for a sequence of completed steps.

    Pure: no I/O, no mutation. Ties for the longest step go to the first such
    step in log order.

    Raises:
        NoDataError: ``steps`` is empty
    """
    if not steps:
        raise NoDataError("No completed profiling steps to summarize")

    total = sum(step.duration_seconds for step in steps)

    longest = steps[0]
    for step in steps[1:]:
        if step.duration_seconds > longest.duration_seconds:
            longest = step

    deltas = [step.memory_delta_bytes for step in steps if step.memory_delta_bytes is not None]

    return SummaryStats(
        total_duration_seconds=total,
        average_duration_seconds=total / len(steps),
        max_duration_seconds=longest.duration_seconds,
        max_duration_step_name=longest.name,
        peak_memory_bytes=max(deltas) if deltas else None,
        step_count=len(steps),
    )
