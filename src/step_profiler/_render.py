"""Renderers turning ReportData into presentation text."""

import json
from dataclasses import asdict
from html import escape
from typing import Any, Protocol, runtime_checkable

from beartype import beartype
from loguru import logger

from step_profiler._format import format_metadata_key, format_metadata_value
from step_profiler._report import ReportData


@runtime_checkable
class Renderer(Protocol):
    """Produces a presentation artifact from a report."""

    file_extension: str

    def render(self, report: ReportData) -> str: ...


def report_to_dict(report: ReportData) -> dict[str, Any]:
    """Plain-JSON-compatible view of a report."""
    return {
        "generated_at": report.generated_at.isoformat(),
        "metadata": {
            key: list(value) if isinstance(value, tuple) else value
            for key, value in report.metadata.items()
        },
        "summary": asdict(report.summary),
        "summary_table": [asdict(row) for row in report.summary_table],
        "rows": [
            {
                **asdict(row),
                "start_time": row.start_time.isoformat(),
                "end_time": row.end_time.isoformat(),
            }
            for row in report.rows
        ],
        "total_elapsed_seconds": report.total_elapsed_seconds,
    }


class JsonRenderer:
    """Render a report as a JSON document.

    Args:
        indent: JSON indentation (default: 2)
    """

    file_extension = "json"

    @beartype
    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    @beartype
    def render(self, report: ReportData) -> str:
        return json.dumps(report_to_dict(report), indent=self.indent, default=str)


_STYLE = """
    body { font-family: "Segoe UI", Tahoma, Geneva, Verdana, sans-serif; line-height: 1.5; color: #333; margin: 0 2rem; }
    .header { background-color: #2c3e50; color: white; padding: 1.5rem 0; margin: 1.5rem 0; border-radius: 5px; text-align: center; }
    .card { margin-bottom: 1.5rem; border: 1px solid #eee; border-radius: 5px; }
    .card-header { background-color: #f8f9fa; font-weight: 600; padding: 0.75rem 1.25rem; }
    .card-body { padding: 1rem; }
    .summary { display: flex; gap: 1rem; flex-wrap: wrap; }
    .summary-card { flex: 1; background-color: #f8f9fa; border-left: 4px solid #007bff; padding: 1rem; text-align: center; }
    .summary-card .metric { color: #6c757d; font-size: 0.85rem; }
    .summary-card .value { font-size: 1.5rem; font-weight: bold; }
    table { width: 100%; border-collapse: collapse; font-size: 0.9rem; }
    th { background-color: #2c3e50; color: white; text-align: left; padding: 0.5rem; }
    td { padding: 0.5rem; border-bottom: 1px solid #eee; }
    tr:nth-child(even) td { background-color: #f8f9fa; }
    .footer { margin-top: 2rem; padding: 1rem 0; border-top: 1px solid #eee; color: #6c757d; font-size: 0.85em; text-align: center; }
"""


class HtmlRenderer:
    """Render a report as a self-contained HTML page.

    Sections: header, script information (metadata), performance summary
    cards, detailed step table, footer. No external assets or charts.

    Args:
        title: Page heading (default: "Profiling Report")
    """

    file_extension = "html"

    @beartype
    def __init__(self, title: str = "Profiling Report") -> None:
        self.title = title

    def _metadata_section(self, report: ReportData) -> list[str]:
        if not report.metadata:
            return []
        lines = [
            '<div class="card">',
            '  <div class="card-header">Script Information</div>',
            '  <div class="card-body"><dl>',
        ]
        for key, value in report.metadata.items():
            lines.append(
                f"    <dt>{escape(format_metadata_key(key))}</dt>"
                f"<dd>{escape(format_metadata_value(value))}</dd>"
            )
        lines.append("  </dl></div>")
        lines.append("</div>")
        return lines

    def _summary_section(self, report: ReportData) -> list[str]:
        lines = [
            '<div class="card">',
            '  <div class="card-header">Performance Summary</div>',
            '  <div class="card-body summary">',
        ]
        for row in report.summary_table:
            lines.append(
                f'    <div class="summary-card"><div class="metric">{escape(row.metric)}</div>'
                f'<div class="value">{escape(row.value)}</div></div>'
            )
        lines.append("  </div>")
        lines.append("</div>")
        return lines

    def _table_section(self, report: ReportData) -> list[str]:
        lines = [
            '<div class="card">',
            '  <div class="card-header">Detailed Profiling Data</div>',
            '  <div class="card-body">',
            "    <table>",
            "      <thead><tr><th>Step</th><th>Start Time</th>"
            "<th>Duration (s)</th><th>Memory Used</th></tr></thead>",
            "      <tbody>",
        ]
        for row in report.rows:
            started = row.start_time.strftime("%H:%M:%S.%f")[:-3]
            lines.append(
                f"        <tr><td>{escape(row.step)}</td><td>{started}</td>"
                f"<td>{row.duration}</td><td>{escape(row.memory)}</td></tr>"
            )
        lines.extend(["      </tbody>", "    </table>", "  </div>", "</div>"])
        return lines

    @beartype
    def render(self, report: ReportData) -> str:
        timestamp = report.generated_at.strftime("%Y-%m-%d %H:%M:%S")
        title = escape(self.title)
        lines = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="UTF-8">',
            f"<title>{title} - {timestamp}</title>",
            f"<style>{_STYLE}</style>",
            "</head>",
            "<body>",
            f'<div class="header"><h1>{title}</h1><p>{timestamp}</p></div>',
            *self._metadata_section(report),
            *self._summary_section(report),
            *self._table_section(report),
            f'<div class="footer"><p>Report generated on {timestamp}, '
            f"total elapsed {report.total_elapsed_seconds:.2f}s</p></div>",
            "</body>",
            "</html>",
        ]
        return "\n".join(lines) + "\n"


@beartype
def log_report(report: ReportData, title: str = "PROFILING RESULTS") -> None:
    """Log formatted summary and step table via loguru.

    Args:
        report: Report to display
        title: Header title for the table
    """
    width = 90

    logger.info("")
    logger.info("=" * width)
    logger.info(f"{title:^{width}}")
    logger.info("=" * width)

    for key, value in report.metadata.items():
        label = f"{format_metadata_key(key)}:"
        logger.info(f"{label:<28} {format_metadata_value(value)}")
    if report.metadata:
        logger.info("-" * width)

    for row in report.summary_table:
        logger.info(f"{row.metric:<28} {row.value:>15}")

    logger.info("-" * width)
    logger.info(f"{'Step':<50} {'Time':>15} {'Mem Δ':>22}")
    logger.info("-" * width)

    for row in report.rows:
        logger.info(f"{row.step:<50} {row.duration:>14}s {row.memory:>22}")

    logger.info("=" * width)
    logger.info(f"{'TOTAL ELAPSED':<50} {report.total_elapsed_seconds:>14.2f}s")
    logger.info("=" * width)
    logger.info("")
