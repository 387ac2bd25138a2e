"""Human-readable formatting for durations, byte counts, and metadata."""

from beartype import beartype

_UNITS = ("KB", "MB", "GB")

UNAVAILABLE = "N/A"


@beartype
def format_bytes(num_bytes: int | None) -> str:
    """Format a (possibly negative) byte count using base-1024 units.

    The unit is the largest of bytes/KB/MB/GB whose value is >= 1; anything
    under 1024 stays in bytes. A value that would round up to 1024.0 moves
    to the next unit. The sign is kept, the unit is chosen on the
    magnitude.

    Example:
        format_bytes(512) -> "512 bytes"
        format_bytes(1536) -> "1.5 KB"
        format_bytes(-3 * 1024**2) -> "-3.0 MB"
    """
    if num_bytes is None:
        return UNAVAILABLE

    magnitude = abs(num_bytes)
    if magnitude < 1024:
        return f"{num_bytes} bytes"

    value = float(magnitude)
    unit = "bytes"
    for candidate in _UNITS:
        if round(value, 1) < 1024:
            break
        value /= 1024
        unit = candidate

    sign = "-" if num_bytes < 0 else ""
    return f"{sign}{value:.1f} {unit}"


@beartype
def format_seconds(seconds: float) -> str:
    return f"{seconds:.2f}"


@beartype
def format_metadata_key(key: str) -> str:
    """script_name -> Script Name"""
    return key.replace("_", " ").title()


def format_metadata_value(value: object) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(part) for part in value)
    return str(value)
