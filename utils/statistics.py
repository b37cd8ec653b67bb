"""Client-side aggregation for the dashboard counters and chart bars.

The backend exposes no statistics endpoints; every figure shown on the
dashboard and the charts page is computed here from full entity lists.

Functions accept any objects exposing the attributes used by the portal
models (``estado``, ``available_copies``, ``publisher``, ``category``), so
they can be exercised with lightweight stand-ins in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

ACTIVE = "AC"
NO_PUBLISHER = "Sin Editorial"
NO_CATEGORY = "Sin Categoría"
NOT_AVAILABLE = "N/A"
MIN_BAR_WIDTH = 2.0

# Bar colors, assigned cyclically in group order
PALETTE = (
    "#1e3a8a", "#3b82f6", "#0ea5e9", "#06b6d4", "#10b981",
    "#059669", "#d97706", "#f59e0b", "#dc2626", "#ef4444",
)


@dataclass
class DashboardStats:
    total_books: int = 0
    available_books: int = 0
    total_events: int = 0
    total_categories: int = 0
    total_publishers: int = 0
    total_programs: int = 0
    total_subjects: int = 0
    total_students: int = 0
    total_quarters: int = 0


@dataclass
class StudentStateStats:
    registered: int = 0
    pending_document: int = 0
    accepted: int = 0
    rejected: int = 0
    graduated: int = 0

    def as_pairs(self) -> list[tuple[str, int]]:
        """Label/value pairs in display order."""
        return [
            ("Registrados", self.registered),
            ("Pendiente Documento", self.pending_document),
            ("Aceptados", self.accepted),
            ("Rechazados", self.rejected),
            ("Graduados", self.graduated),
        ]

    @property
    def total(self) -> int:
        return sum(v for _, v in self.as_pairs())

    @property
    def active(self) -> int:
        """Students still in the system: accepted plus registered."""
        return self.accepted + self.registered


@dataclass
class PublisherBookStats:
    publisher: str
    count: int = 0
    available: int = 0


@dataclass
class CategoryEventStats:
    category: str
    count: int = 0


@dataclass
class ChartSummary:
    """Figures for the executive summary panel of the charts page."""
    total_students: int = 0
    total_books: int = 0
    available_copies: int = 0
    total_events: int = 0
    active_students: int = 0
    leading_publisher: str = NOT_AVAILABLE
    popular_category: str = NOT_AVAILABLE


@dataclass
class Bar:
    """One horizontal bar of a chart."""
    label: str
    value: float
    width: float
    percent: float
    color: str
    extra: dict[str, Any] = field(default_factory=dict)


def _is_active(item: Any) -> bool:
    return getattr(item, "estado", None) == ACTIVE


def count_active(items: Iterable[Any]) -> int:
    """Number of items whose ``estado`` is AC."""
    return sum(1 for item in items if _is_active(item))


def dashboard_stats(
    books: Sequence[Any] = (),
    events: Sequence[Any] = (),
    categories: Sequence[Any] = (),
    publishers: Sequence[Any] = (),
    programs: Sequence[Any] = (),
    subjects: Sequence[Any] = (),
    students: Sequence[Any] = (),
    quarters: Sequence[Any] = (),
) -> DashboardStats:
    """Compute the dashboard counters.

    Only active records are counted, except students which are counted
    regardless of their admission state.  ``available_books`` is the sum
    of available copies across active books.
    """
    active_books = [b for b in books if _is_active(b)]
    return DashboardStats(
        total_books=len(active_books),
        available_books=sum(getattr(b, "available_copies", None) or 0
                            for b in active_books),
        total_events=count_active(events),
        total_categories=count_active(categories),
        total_publishers=count_active(publishers),
        total_programs=count_active(programs),
        total_subjects=count_active(subjects),
        total_students=len(students),
        total_quarters=count_active(quarters),
    )


def student_state_stats(students: Iterable[Any]) -> StudentStateStats:
    """Count students per admission state shown on the charts page."""
    stats = StudentStateStats()
    attr_by_state = {
        "REGISTRADO": "registered",
        "PENDIENTE_DOCUMENTO": "pending_document",
        "ACEPTADO": "accepted",
        "RECHAZADO": "rejected",
        "GRADUADO": "graduated",
    }
    for student in students:
        attr = attr_by_state.get(getattr(student, "estado", None))
        if attr:
            setattr(stats, attr, getattr(stats, attr) + 1)
    return stats


def books_by_publisher(books: Iterable[Any]) -> list[PublisherBookStats]:
    """Group books by publisher name, summing copies available.

    Groups appear in first-seen order.
    """
    groups: dict[str, PublisherBookStats] = {}
    for book in books:
        publisher = getattr(book, "publisher", None)
        name = getattr(publisher, "name", None) or NO_PUBLISHER
        group = groups.setdefault(name, PublisherBookStats(publisher=name))
        group.count += 1
        group.available += getattr(book, "available_copies", None) or 0
    return list(groups.values())


def events_by_category(events: Iterable[Any]) -> list[CategoryEventStats]:
    """Group events by category name, in first-seen order."""
    groups: dict[str, CategoryEventStats] = {}
    for event in events:
        category = getattr(event, "category", None)
        name = getattr(category, "name", None) or NO_CATEGORY
        group = groups.setdefault(name, CategoryEventStats(category=name))
        group.count += 1
    return list(groups.values())


def max_value(values: Iterable[float]) -> float:
    """Largest value, never below 1 so it is safe as a divisor."""
    return max([*values, 1])


def bar_width(value: float, maximum: float) -> float:
    """Bar width in percent of *maximum*, floored at MIN_BAR_WIDTH."""
    return max(value / maximum * 100, MIN_BAR_WIDTH)


def percentage(value: float, total: float) -> float:
    """Share of *total* in percent; 0 when the total is 0."""
    if not total:
        return 0.0
    return value / total * 100


def build_bars(pairs: Sequence[tuple[str, float]]) -> list[Bar]:
    """Turn (label, value) pairs into chart bars.

    Widths are relative to the largest value, percentages relative to the
    sum of all values.
    """
    values = [v for _, v in pairs]
    top = max_value(values)
    total = sum(values)
    return [
        Bar(
            label=label,
            value=value,
            width=round(bar_width(value, top), 2),
            percent=round(percentage(value, total), 1),
            color=PALETTE[i % len(PALETTE)],
        )
        for i, (label, value) in enumerate(pairs)
    ]


def publisher_bars(groups: Sequence[PublisherBookStats]) -> list[Bar]:
    """Bars for books per publisher; ``extra`` carries available copies."""
    bars = build_bars([(g.publisher, g.count) for g in groups])
    for bar, group in zip(bars, groups):
        bar.extra["available"] = group.available
    return bars


def category_bars(groups: Sequence[CategoryEventStats]) -> list[Bar]:
    return build_bars([(g.category, g.count) for g in groups])


def leading_group(groups: Sequence[Any], label_attr: str) -> str:
    """Label of the group with the highest ``count``.

    On a tie the later group wins.  Returns NOT_AVAILABLE for no groups.
    """
    leader = None
    for group in groups:
        if leader is None or group.count >= leader.count:
            leader = group
    if leader is None:
        return NOT_AVAILABLE
    return getattr(leader, label_attr)


def chart_summary(
    students: StudentStateStats,
    publishers: Sequence[PublisherBookStats],
    categories: Sequence[CategoryEventStats],
) -> ChartSummary:
    return ChartSummary(
        total_students=students.total,
        total_books=sum(g.count for g in publishers),
        available_copies=sum(g.available for g in publishers),
        total_events=sum(g.count for g in categories),
        active_students=students.active,
        leading_publisher=leading_group(publishers, "publisher"),
        popular_category=leading_group(categories, "category"),
    )
