"""Persisting rendered reports."""

from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from beartype import beartype
from loguru import logger

from step_profiler._core import Session
from step_profiler._errors import ReportWriteError
from step_profiler._render import Renderer
from step_profiler._report import build_report


@runtime_checkable
class Writer(Protocol):
    """Persists presentation text to a destination and returns where it went."""

    def write(self, content: str, destination: Path) -> Path: ...


class FileWriter:
    """Write reports to the local filesystem, creating parent directories.

    Args:
        encoding: Text encoding (default: utf-8)
    """

    @beartype
    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    @beartype
    def write(self, content: str, destination: Path) -> Path:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(content, encoding=self.encoding)
        except OSError as exc:
            logger.error(f"Failed to write profiling report to {destination}: {exc}")
            raise ReportWriteError(f"Failed to write profiling report to {destination}") from exc
        return destination


@beartype
def default_file_name(generated_at: datetime, extension: str) -> str:
    """profiling_report_YYYYmmdd_HHMMSS.<extension>"""
    return f"profiling_report_{generated_at:%Y%m%d_%H%M%S}.{extension}"


@beartype
def generate_report(
    session: Session,
    renderer: Renderer,
    *,
    writer: Writer | None = None,
    output_dir: str | Path = "profiling_reports",
    file_name: str | None = None,
    save_report: bool = True,
) -> str:
    """Build, render, and optionally save a report for a session.

    Args:
        session: Session to report on
        renderer: Presentation format (e.g. HtmlRenderer, JsonRenderer)
        writer: Destination writer (default: FileWriter)
        output_dir: Directory to save into (default: "profiling_reports")
        file_name: Output file name; the renderer's extension is appended when
            missing. Default: timestamp-based name.
        save_report: If False, only render and return the content

    Returns:
        The rendered content

    Raises:
        NoDataError: the session has no completed steps (nothing is written)
        ReportWriteError: the writer failed to persist the content
    """
    report = build_report(session)
    content = renderer.render(report)

    if not save_report:
        return content

    extension = renderer.file_extension
    if file_name is None:
        file_name = default_file_name(report.generated_at, extension)
    elif not file_name.lower().endswith(f".{extension}"):
        file_name = f"{file_name}.{extension}"

    writer = writer if writer is not None else FileWriter()
    path = writer.write(content, Path(output_dir) / file_name)
    logger.info(f"Profiling report saved to: {path.resolve()}")
    return content
