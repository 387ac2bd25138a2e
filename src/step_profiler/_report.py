"""Renderer-agnostic report data built from a Session."""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType

from beartype import beartype

from step_profiler._core import MetadataValue, Session, StepRecord
from step_profiler._errors import NoDataError
from step_profiler._format import format_bytes, format_seconds
from step_profiler._probes import read_clock
from step_profiler._summary import SummaryStats, summarize


@dataclass(frozen=True)
class SummaryRow:
    metric: str
    value: str


@dataclass(frozen=True)
class ReportRow:
    """One completed step, formatted for display."""

    step: str
    start_time: datetime
    end_time: datetime
    duration_seconds: float
    duration: str
    memory_delta_bytes: int | None
    memory: str


@dataclass(frozen=True)
class ReportData:
    """Immutable snapshot handed to a renderer.

    total_elapsed_seconds is measured by the session's overall timer, so it
    includes un-bracketed code between steps and can exceed the sum of step
    durations.
    """

    generated_at: datetime
    metadata_items: tuple[tuple[str, MetadataValue], ...]
    summary: SummaryStats
    summary_table: tuple[SummaryRow, ...]
    rows: tuple[ReportRow, ...]
    total_elapsed_seconds: float

    @property
    def metadata(self) -> Mapping[str, MetadataValue]:
        """Run metadata as a read-only mapping."""
        return MappingProxyType(dict(self.metadata_items))


def summary_table(summary: SummaryStats) -> tuple[SummaryRow, ...]:
    return (
        SummaryRow("Total Execution Time (s)", format_seconds(summary.total_duration_seconds)),
        SummaryRow("Average Step Time (s)", format_seconds(summary.average_duration_seconds)),
        SummaryRow("Longest Step (s)", format_seconds(summary.max_duration_seconds)),
        SummaryRow("Peak Memory Usage", format_bytes(summary.peak_memory_bytes)),
        SummaryRow("Number of Steps", str(summary.step_count)),
    )


def _row(step: StepRecord, session: Session) -> ReportRow:
    start, end = step.wall_times(session.started_at, session.started_clock)
    return ReportRow(
        step=step.name,
        start_time=start,
        end_time=end,
        duration_seconds=step.duration_seconds,
        duration=format_seconds(step.duration_seconds),
        memory_delta_bytes=step.memory_delta_bytes,
        memory=step.memory_delta_human,
    )


@beartype
def build_report(
    session: Session,
    aggregator: Callable[[Sequence[StepRecord]], SummaryStats] = summarize,
    now: float | None = None,
) -> ReportData:
    """Assemble summary, per-step rows, and metadata into a ReportData.

    Never mutates the session. Two calls with the same ``now`` on an
    unchanged session produce equal reports.

    Args:
        session: Session to report on
        aggregator: Summary function (default: summarize)
        now: Session clock reading to report at (default: read the clock)

    Raises:
        NoDataError: the session has no completed steps
    """
    steps = session.steps
    if not steps:
        raise NoDataError("No profiling data available to generate report")

    if now is None:
        now = read_clock(session.clock)
    elapsed = session.elapsed(now)
    summary = aggregator(steps)

    return ReportData(
        generated_at=session.started_at + timedelta(seconds=elapsed),
        metadata_items=tuple(session.metadata.items()),
        summary=summary,
        summary_table=summary_table(summary),
        rows=tuple(_row(step, session) for step in steps),
        total_elapsed_seconds=elapsed,
    )
