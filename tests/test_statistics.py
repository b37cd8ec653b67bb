"""
Tests for utils/statistics.py

Dashboard counters and chart bars are computed client-side from full
entity lists; these tests use the pydantic models and SimpleNamespace
stand-ins.
"""
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from portal.models import Book, Event, Student
from utils.statistics import (
    MIN_BAR_WIDTH,
    NO_CATEGORY,
    NO_PUBLISHER,
    NOT_AVAILABLE,
    PALETTE,
    CategoryEventStats,
    PublisherBookStats,
    StudentStateStats,
    bar_width,
    books_by_publisher,
    build_bars,
    category_bars,
    chart_summary,
    count_active,
    dashboard_stats,
    events_by_category,
    leading_group,
    max_value,
    percentage,
    publisher_bars,
    student_state_stats,
)


def _book(book_id, estado="AC", copies=1, publisher=None):
    data = {"libroId": book_id, "titulo": f"Libro {book_id}", "estado": estado,
            "cantidadDisponible": copies}
    if publisher:
        data["editorial"] = {"editorialId": 1, "nombre": publisher}
    return Book.model_validate(data)


def _student(student_id, estado):
    return Student.model_validate({"estudianteId": student_id, "nombres": "X",
                                   "estado": estado})


class TestDashboardStats:
    def test_empty(self):
        stats = dashboard_stats()
        assert stats.total_books == 0
        assert stats.available_books == 0
        assert stats.total_students == 0

    def test_only_active_records_counted(self):
        books = [_book(1, copies=3), _book(2, copies=2), _book(3, "IN", copies=9)]
        programs = [SimpleNamespace(estado="AC"), SimpleNamespace(estado="IN")]
        stats = dashboard_stats(books=books, programs=programs)
        assert stats.total_books == 2
        assert stats.available_books == 5
        assert stats.total_programs == 1

    def test_students_counted_regardless_of_state(self):
        students = [_student(1, "REGISTRADO"), _student(2, "RECHAZADO"),
                    _student(3, "GRADUADO")]
        assert dashboard_stats(students=students).total_students == 3

    def test_missing_copies_count_as_zero(self):
        book = Book.model_validate({"libroId": 1, "titulo": "Sin copias"})
        assert dashboard_stats(books=[book]).available_books == 0

    def test_count_active(self):
        items = [SimpleNamespace(estado="AC"), SimpleNamespace(estado="AC"),
                 SimpleNamespace(estado="IN"), SimpleNamespace()]
        assert count_active(items) == 2


class TestStudentStateStats:
    def test_counts_per_state(self):
        students = [_student(i, s) for i, s in enumerate([
            "REGISTRADO", "REGISTRADO", "PENDIENTE_DOCUMENTO", "ACEPTADO",
            "RECHAZADO", "GRADUADO", "ACTIVO",
        ])]
        stats = student_state_stats(students)
        assert stats.registered == 2
        assert stats.pending_document == 1
        assert stats.accepted == 1
        assert stats.rejected == 1
        assert stats.graduated == 1
        # ACTIVO is not one of the charted states
        assert stats.total == 6
        assert stats.active == 3

    def test_pairs_order(self):
        labels = [label for label, _ in student_state_stats([]).as_pairs()]
        assert labels == ["Registrados", "Pendiente Documento", "Aceptados",
                          "Rechazados", "Graduados"]


class TestGrouping:
    def test_books_by_publisher_first_seen_order(self):
        books = [_book(1, copies=2, publisher="Norma"),
                 _book(2, copies=1, publisher="Santillana"),
                 _book(3, copies=4, publisher="Norma"),
                 _book(4, copies=1)]
        groups = books_by_publisher(books)
        assert [g.publisher for g in groups] == ["Norma", "Santillana", NO_PUBLISHER]
        assert groups[0].count == 2
        assert groups[0].available == 6

    def test_events_by_category(self):
        events = [
            Event.model_validate({"eventoId": 1, "nombre": "Hackathon",
                                  "categoriaEvento": {"nombre": "Tecnología"}}),
            Event.model_validate({"eventoId": 2, "nombre": "Feria",
                                  "categoriaEvento": {"nombre": "Tecnología"}}),
            Event.model_validate({"eventoId": 3, "nombre": "Charla"}),
        ]
        groups = events_by_category(events)
        assert [(g.category, g.count) for g in groups] == [
            ("Tecnología", 2), (NO_CATEGORY, 1)]


class TestBars:
    def test_max_value_never_below_one(self):
        assert max_value([]) == 1
        assert max_value([0, 0]) == 1
        assert max_value([3, 7]) == 7

    def test_bar_width_floor(self):
        assert bar_width(0, 10) == MIN_BAR_WIDTH
        assert bar_width(5, 10) == 50

    def test_percentage_zero_total(self):
        assert percentage(3, 0) == 0.0
        assert percentage(1, 4) == 25.0

    def test_build_bars(self):
        bars = build_bars([("A", 4), ("B", 2), ("C", 2)])
        assert [b.width for b in bars] == [100.0, 50.0, 50.0]
        assert [b.percent for b in bars] == [50.0, 25.0, 25.0]
        assert bars[0].color == PALETTE[0]
        assert bars[2].color == PALETTE[2]

    def test_colors_cycle(self):
        bars = build_bars([(str(i), 1) for i in range(len(PALETTE) + 1)])
        assert bars[-1].color == PALETTE[0]

    def test_all_zero_values(self):
        bars = build_bars([("A", 0), ("B", 0)])
        assert all(b.width == MIN_BAR_WIDTH for b in bars)
        assert all(b.percent == 0.0 for b in bars)

    def test_publisher_bars_carry_available(self):
        groups = books_by_publisher([_book(1, copies=3, publisher="Norma")])
        bars = publisher_bars(groups)
        assert bars[0].label == "Norma"
        assert bars[0].extra["available"] == 3

    def test_category_bars(self):
        events = [SimpleNamespace(category=SimpleNamespace(name="Cultura"))]
        bars = category_bars(events_by_category(events))
        assert bars[0].label == "Cultura"
        assert bars[0].width == pytest.approx(100.0)


class TestChartSummary:
    def test_leading_group(self):
        groups = [PublisherBookStats("Norma", count=2), PublisherBookStats("Santillana", count=5),
                  PublisherBookStats("SM", count=1)]
        assert leading_group(groups, "publisher") == "Santillana"

    def test_leading_group_tie_goes_to_later(self):
        groups = [CategoryEventStats("Cultura", count=3), CategoryEventStats("Deporte", count=3)]
        assert leading_group(groups, "category") == "Deporte"

    def test_leading_group_empty(self):
        assert leading_group([], "publisher") == NOT_AVAILABLE

    def test_summary_totals(self):
        students = StudentStateStats(registered=2, pending_document=1, accepted=4,
                                     rejected=1, graduated=3)
        publishers = [PublisherBookStats("Norma", count=2, available=5),
                      PublisherBookStats("SM", count=1, available=7)]
        categories = [CategoryEventStats("Cultura", count=4)]
        summary = chart_summary(students, publishers, categories)
        assert summary.total_students == 11
        assert summary.active_students == 6
        assert summary.total_books == 3
        assert summary.available_copies == 12
        assert summary.total_events == 4
        assert summary.leading_publisher == "Norma"
        assert summary.popular_category == "Cultura"

    def test_summary_without_data(self):
        summary = chart_summary(StudentStateStats(), [], [])
        assert summary.total_students == 0
        assert summary.leading_publisher == NOT_AVAILABLE
        assert summary.popular_category == NOT_AVAILABLE
