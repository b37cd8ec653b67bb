"""
Tests for utils/formatting.py

Status labels, badge classes, date/number formatting and initials used by
the Jinja2 templates.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from utils.formatting import (
    document_state_badge,
    document_state_label,
    document_type_label,
    enrollment_state_label,
    estado_badge,
    estado_label,
    format_count,
    format_date,
    format_datetime,
    format_grade,
    format_percent,
    initials,
    student_state_badge,
    student_state_label,
    to_datetime_local,
    truncate,
)


class TestStateLabels:
    def test_estado(self):
        assert estado_label("AC") == "Activo"
        assert estado_label("IN") == "Inactivo"
        assert estado_label(None) == "-"
        assert estado_label("XX") == "XX"

    def test_estado_badge(self):
        assert estado_badge("AC") == "bg-success"
        assert estado_badge("IN") == "bg-secondary"

    @pytest.mark.parametrize("state,label,badge", [
        ("REGISTRADO", "Registrado", "bg-primary"),
        ("PENDIENTE_DOCUMENTO", "Pendiente Documento", "bg-warning"),
        ("ACEPTADO", "Aceptado", "bg-success"),
        ("RECHAZADO", "Rechazado", "bg-danger"),
        ("GRADUADO", "Graduado", "bg-info"),
    ])
    def test_student_states(self, state, label, badge):
        assert student_state_label(state) == label
        assert student_state_badge(state) == badge

    def test_unknown_student_state(self):
        assert student_state_label("SUSPENDIDO") == "SUSPENDIDO"
        assert student_state_badge("SUSPENDIDO") == "bg-secondary"
        assert student_state_badge(None) == "bg-secondary"

    def test_documents(self):
        assert document_type_label("ACTA_NACIMIENTO") == "Acta de Nacimiento"
        assert document_state_label("VALIDO") == "Aprobado"
        assert document_state_badge("RECHAZADO") == "bg-danger"
        assert document_type_label(None) == "-"

    def test_enrollment(self):
        assert enrollment_state_label("RETIRADA") == "Retirada"
        assert enrollment_state_label("") == "-"


class TestDates:
    def test_datetime(self):
        assert format_datetime("2025-03-01T10:30:00") == "01/03/2025 10:30"

    def test_datetime_with_zulu(self):
        assert format_datetime("2025-03-01T10:30:00Z") == "01/03/2025 10:30"

    def test_date_only(self):
        assert format_date("2025-03-01T10:30:00") == "01/03/2025"

    def test_unparseable_returned_as_is(self):
        assert format_datetime("mañana") == "mañana"

    def test_none(self):
        assert format_datetime(None) == "-"

    def test_datetime_local(self):
        assert to_datetime_local("2025-03-01T10:30:00") == "2025-03-01T10:30"
        assert to_datetime_local(None) == ""


class TestNumbers:
    def test_percent(self):
        assert format_percent(42.5) == "42.5%"
        assert format_percent(33.333, precision=0) == "33%"
        assert format_percent(None) == "-"

    def test_count(self):
        assert format_count(1234) == "1,234"
        assert format_count(0) == "0"
        assert format_count(None) == "-"

    def test_grade(self):
        assert format_grade(90.0) == "90"
        assert format_grade(87.5) == "87.5"
        assert format_grade(None) == "-"


class TestText:
    def test_initials(self):
        assert initials("Ana María Pérez") == "AM"
        assert initials("juan") == "J"
        assert initials("") == "U"
        assert initials(None) == "U"

    def test_truncate(self):
        assert truncate("corto") == "corto"
        long = "x" * 100
        result = truncate(long, 20)
        assert len(result) == 20
        assert result.endswith("…")
        assert truncate(None) == ""
