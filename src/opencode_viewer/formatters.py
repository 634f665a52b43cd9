"""Human-readable formatting of costs, token counts, durations and dates."""

from datetime import datetime
from typing import Optional

from .core import SessionSummary


def format_cost(cost: float) -> str:
    """Format a dollar cost: ``$0.00``, ``$0.0034``, ``$1.50``."""
    if cost == 0:
        return "$0.00"
    if cost < 0.01:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


def format_tokens(tokens: int) -> str:
    """Format a token count with a k/M suffix: ``500``, ``1.5k``, ``1.5M``."""
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.1f}M"
    if tokens >= 1_000:
        return f"{tokens / 1_000:.1f}k"
    return str(tokens)


def format_duration(duration_ms: int) -> str:
    """Format a duration as ``1d 1h 1m``, ``2h 0m`` or ``59m 59s``."""
    if duration_ms < 0:
        return "0s"

    total_seconds = duration_ms // 1000
    seconds = total_seconds % 60
    minutes = (total_seconds // 60) % 60
    hours = (total_seconds // 3600) % 24
    days = total_seconds // 86400

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours or days:
        parts.append(f"{hours}h")
    if minutes or hours or days:
        parts.append(f"{minutes}m")
    if not parts or (days == 0 and hours == 0):
        parts.append(f"{seconds}s")
    return " ".join(parts)


def format_duration_compact(duration_ms: int) -> str:
    """Format a short duration as ``500ms``, ``5s``, ``1m`` or ``1m 5s``."""
    if duration_ms < 1000:
        return f"{max(duration_ms, 0)}ms"

    seconds = (duration_ms // 1000) % 60
    minutes = duration_ms // 60000
    if minutes == 0:
        return f"{seconds}s"
    if seconds == 0:
        return f"{minutes}m"
    return f"{minutes}m {seconds}s"


def _local(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo else value


def format_time(value: Optional[datetime]) -> str:
    """Clock time in local time, e.g. ``14:05``."""
    if value is None:
        return ""
    return _local(value).strftime("%H:%M")


def format_date(value: Optional[datetime]) -> str:
    """Date and time in local time, e.g. ``Jan 3 2025 14:05``."""
    if value is None:
        return ""
    local = _local(value)
    return f"{local.strftime('%b')} {local.day} {local.year} {local.strftime('%H:%M')}"


def format_day(value: datetime) -> str:
    """Weekday and date, e.g. ``Fri, Jan 3, 2025``."""
    local = _local(value)
    return f"{local.strftime('%a, %b')} {local.day}, {local.year}"


def format_file_changes(summary: SessionSummary) -> str:
    """``+10 -5 (3 files)``"""
    changes = []
    if summary.additions > 0:
        changes.append(f"+{summary.additions}")
    if summary.deletions > 0:
        changes.append(f"-{summary.deletions}")

    files = "1 file" if summary.files == 1 else f"{summary.files} files"
    if changes:
        return f"{' '.join(changes)} ({files})"
    return files


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
