"""Error taxonomy for step profiling.

Every error derives from ProfilingError and is raised to the immediate caller
of the operation that detected it. Contract violations (negative elapsed time,
empty step names) remain AssertionErrors.
"""

from typing import Any


class ProfilingError(Exception):
    """Base class for all step-profiling errors."""


class DuplicateStepError(ProfilingError, ValueError):
    """Raised when a step is started while a step of the same name is open."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Profiling step already open: {name!r}")
        self.name = name


class UnknownStepError(ProfilingError, LookupError):
    """Raised when ending a step that was never started or was already ended."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Profiling step not found: {name!r}")
        self.name = name


class NoDataError(ProfilingError, ValueError):
    """Raised when a summary or report is requested with zero completed steps."""


class ProbeError(ProfilingError, RuntimeError):
    """Raised when the clock or memory probe fails to return a reading.

    When the memory probe fails at the end of a step, the step is still
    recorded (with an unavailable memory delta) and attached as ``record``.
    """

    def __init__(self, message: str, record: Any = None) -> None:
        super().__init__(message)
        self.record = record


class ReportWriteError(ProfilingError, OSError):
    """Raised when a rendered report cannot be persisted."""


__all__ = [
    "ProfilingError",
    "DuplicateStepError",
    "UnknownStepError",
    "NoDataError",
    "ProbeError",
    "ReportWriteError",
]
