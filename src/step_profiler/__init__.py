"""step-profiler: Named-step timing and memory profiling with renderable reports.

Provides:
- Session: Thread-safe log of named, possibly nested, measured steps
- profile_step: Convenience context manager recording into an optional session
- summarize: Summary statistics over completed steps
- build_report: Renderer-agnostic ReportData snapshot of a session
- JsonRenderer / HtmlRenderer / log_report: Report presentation
- FileWriter / generate_report: Render and persist a report in one call

Usage:
    from step_profiler import HtmlRenderer, Session, generate_report

    session = Session({"script_name": "pipeline.py", "author": "Data Team"})

    with session.step("Data Loading"):
        frame = load()
    result = session.bracket("Transform", transform, frame)

    generate_report(session, HtmlRenderer(), output_dir="profiling_reports")
"""

from step_profiler._core import (
    Session,
    StepRecord,
    StepRecorder,
    profile_step,
)
from step_profiler._errors import (
    DuplicateStepError,
    NoDataError,
    ProbeError,
    ProfilingError,
    ReportWriteError,
    UnknownStepError,
)
from step_profiler._format import format_bytes, format_seconds
from step_profiler._probes import (
    Clock,
    MemoryProbe,
    PerfCounterClock,
    PsutilMemoryProbe,
    TracemallocMemoryProbe,
)
from step_profiler._render import HtmlRenderer, JsonRenderer, Renderer, log_report
from step_profiler._report import ReportData, ReportRow, SummaryRow, build_report
from step_profiler._summary import SummaryStats, summarize
from step_profiler._writer import FileWriter, Writer, default_file_name, generate_report

__all__ = [
    "Clock",
    "DuplicateStepError",
    "FileWriter",
    "HtmlRenderer",
    "JsonRenderer",
    "MemoryProbe",
    "NoDataError",
    "PerfCounterClock",
    "ProbeError",
    "ProfilingError",
    "PsutilMemoryProbe",
    "Renderer",
    "ReportData",
    "ReportRow",
    "ReportWriteError",
    "Session",
    "StepRecord",
    "StepRecorder",
    "SummaryRow",
    "SummaryStats",
    "TracemallocMemoryProbe",
    "UnknownStepError",
    "Writer",
    "build_report",
    "default_file_name",
    "format_bytes",
    "format_seconds",
    "generate_report",
    "log_report",
    "profile_step",
    "summarize",
]

__version__ = "0.1.0"
