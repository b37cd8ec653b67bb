"""Output formatting utilities for the academic portal.

Provides reusable functions for:
- Status labels and badge classes (AC/IN, student, document states)
- Date and datetime display
- Counts, percentages and grades
- User initials for the header avatar

All of them are registered as Jinja2 filters by the app factory.
"""

from datetime import datetime
from typing import Optional, Any

from utils.config import KnownValues


def estado_label(estado: Optional[str]) -> str:
    """Display label for an AC/IN flag.

    Examples:
        estado_label("AC") -> "Activo"
        estado_label("IN") -> "Inactivo"
        estado_label(None) -> "-"
    """
    if not estado:
        return "-"
    return KnownValues.ESTADOS.get(estado, estado)


def estado_badge(estado: Optional[str]) -> str:
    """Bootstrap badge class for an AC/IN flag."""
    return "bg-success" if estado == "AC" else "bg-secondary"


def student_state_label(estado: Optional[str]) -> str:
    if not estado:
        return "-"
    return KnownValues.STUDENT_STATES.get(estado, estado)


def student_state_badge(estado: Optional[str]) -> str:
    return KnownValues.STUDENT_STATE_BADGES.get(estado or "", "bg-secondary")


def document_type_label(tipo: Optional[str]) -> str:
    if not tipo:
        return "-"
    return KnownValues.DOCUMENT_TYPES.get(tipo, tipo)


def document_state_label(estado: Optional[str]) -> str:
    if not estado:
        return "-"
    return KnownValues.DOCUMENT_STATES.get(estado, estado)


def document_state_badge(estado: Optional[str]) -> str:
    return KnownValues.DOCUMENT_STATE_BADGES.get(estado or "", "bg-secondary")


def enrollment_state_label(estado: Optional[str]) -> str:
    if not estado:
        return "-"
    return KnownValues.ENROLLMENT_STATES.get(estado, estado)


def _parse_datetime(value: str) -> Optional[datetime]:
    text = value.strip().replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_datetime(value: Optional[str], with_time: bool = True) -> str:
    """Format an ISO timestamp from the API for display.

    Args:
        value: ISO-8601 string (``2025-03-01T10:30:00``)
        with_time: Include hours and minutes (default: True)

    Returns:
        ``01/03/2025 10:30`` (or ``01/03/2025``); unparseable input is
        returned unchanged and ``None`` becomes ``-``.
    """
    if not value:
        return "-"
    parsed = _parse_datetime(str(value))
    if parsed is None:
        return str(value)
    return parsed.strftime("%d/%m/%Y %H:%M" if with_time else "%d/%m/%Y")


def format_date(value: Optional[str]) -> str:
    return format_datetime(value, with_time=False)


def to_datetime_local(value: Optional[str]) -> str:
    """Trim an API timestamp to the value an <input type=datetime-local> expects."""
    if not value:
        return ""
    return str(value)[:16]


def format_percent(value: Optional[float], precision: int = 1) -> str:
    """Format a percentage for display.

    Examples:
        format_percent(42.5) -> "42.5%"
        format_percent(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:.{precision}f}%"


def format_count(value: Optional[int]) -> str:
    """Format a count with thousands separator.

    Examples:
        format_count(1234) -> "1,234"
        format_count(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:,}"


def format_grade(value: Optional[float]) -> str:
    """Grades print without decimals when they are whole numbers."""
    if value is None:
        return "-"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def initials(name: Optional[str]) -> str:
    """Up to two upper-case initials of *name*.

    Examples:
        initials("Ana María Pérez") -> "AM"
        initials("") -> "U"
    """
    words = (name or "").split()
    if not words:
        return "U"
    return "".join(w[0] for w in words).upper()[:2]


def truncate(text: Any, length: int = 80) -> str:
    """Shorten long descriptions for table cells."""
    if not text:
        return ""
    text = str(text)
    return text if len(text) <= length else text[: length - 1].rstrip() + "…"
