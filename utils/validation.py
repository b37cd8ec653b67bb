"""Form validation utilities for the academic portal.

Each ``validate_*`` function takes the submitted form (any mapping with
``get``; Starlette's FormData also offers ``getlist``), checks it against
the rules the backend expects and returns a ValidationResult.  When the
result is ok, ``result.payload`` holds the normalized body to send to the
API.
"""

import os
import re
from typing import List, Dict, Any, Mapping, Optional

from utils.config import KnownValues

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ACADEMIC_PERIOD_RE = re.compile(r"^\d{4}-\d{4}$")
MIN_CEDULA_LENGTH = 11


class ValidationIssue:
    """A single problem with one form field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}

    def __repr__(self) -> str:
        return f"ValidationIssue(field={self.field}, message={self.message!r})"


class ValidationResult:
    """Collects issues for a submitted form plus the normalized payload."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []
        self.payload: Dict[str, Any] = {}

    def add_issue(self, field: str, message: str) -> None:
        self.issues.append(ValidationIssue(field, message))

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def messages(self) -> List[str]:
        return [issue.message for issue in self.issues]

    def for_field(self, field: str) -> Optional[str]:
        """First message reported for *field*, if any."""
        for issue in self.issues:
            if issue.field == field:
                return issue.message
        return None

    def __repr__(self) -> str:
        return f"ValidationResult(ok={self.ok}, issues={self.issues})"


# ── Field helpers ─────────────────────────────────────────────────────────────

def _text(form: Mapping, name: str) -> str:
    value = form.get(name)
    if value is None or not isinstance(value, str):
        return ""
    return value.strip()


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _float_or_none(value: Any) -> Optional[float]:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None


def _int_list(form: Mapping, name: str) -> List[int]:
    raw = form.getlist(name) if hasattr(form, "getlist") else form.get(name) or []
    if isinstance(raw, (str, int)):
        raw = [raw]
    ids = (_int_or_none(v) for v in raw)
    return [i for i in ids if i is not None]


def _estado(form: Mapping, default: str = "AC") -> str:
    estado = _text(form, "estado") or default
    return estado if KnownValues.is_valid_estado(estado) else default


def has_file(upload: Any) -> bool:
    """True when *upload* is an actual file part (browsers send an empty one)."""
    return upload is not None and bool(getattr(upload, "filename", ""))


def upload_size(upload: Any) -> int:
    """Size in bytes of an uploaded file, measured without consuming it."""
    size = getattr(upload, "size", None)
    if size is not None:
        return size
    fh = upload.file
    pos = fh.tell()
    fh.seek(0, os.SEEK_END)
    size = fh.tell()
    fh.seek(pos)
    return size


def to_api_datetime(value: str) -> str:
    """Convert an HTML datetime-local value (YYYY-MM-DDTHH:MM) to the API format."""
    return value + ":00" if len(value) == 16 else value


# ── Auth ──────────────────────────────────────────────────────────────────────

def validate_register_form(form: Mapping) -> ValidationResult:
    result = ValidationResult()
    nombre, correo, clave = _text(form, "nombre"), _text(form, "correo"), _text(form, "clave")
    if not nombre or not correo or not clave:
        result.add_issue("nombre", "Nombre, correo y clave son requeridos")
    elif not EMAIL_RE.match(correo):
        result.add_issue("correo", "El formato del correo electrónico no es válido")
    rol_id = _int_or_none(form.get("rolId")) or KnownValues.ADMIN_ROLE_ID
    result.payload = {"nombre": nombre, "correo": correo, "clave": clave, "rolId": rol_id}
    return result


# ── Academics ─────────────────────────────────────────────────────────────────

def validate_student_form(form: Mapping) -> ValidationResult:
    """Rules for creating or editing a student."""
    result = ValidationResult()
    nombres = _text(form, "nombres")
    apellidos = _text(form, "apellidos")
    correo = _text(form, "correo").lower()
    cedula = _text(form, "cedula")
    program_id = _int_or_none(form.get("programaAcademicoId"))
    estado = _text(form, "estado") or "REGISTRADO"

    if not nombres or not apellidos or not correo:
        result.add_issue("nombres", "Todos los campos obligatorios deben ser completados")
    if not program_id:
        result.add_issue("programaAcademicoId", "Debe seleccionar un programa académico")
    if correo and not EMAIL_RE.match(correo):
        result.add_issue("correo", "El formato del correo electrónico no es válido")
    if len(cedula) < MIN_CEDULA_LENGTH:
        result.add_issue("cedula", "La cédula debe tener al menos 11 caracteres")
    if estado not in KnownValues.STUDENT_STATES:
        result.add_issue("estado", "Estado de estudiante no válido")

    result.payload = {
        "nombres": nombres,
        "apellidos": apellidos,
        "correo": correo,
        "telefono": _text(form, "telefono"),
        "cedula": cedula,
        "matricula": _text(form, "matricula"),
        "programaAcademicoId": program_id,
        "estado": estado,
    }
    return result


def validate_program_form(form: Mapping) -> ValidationResult:
    result = ValidationResult()
    nombre = _text(form, "nombre")
    periodo = _text(form, "periodoAcademico")
    if not nombre:
        result.add_issue("nombre", "El nombre es requerido")
    if not periodo:
        result.add_issue("periodoAcademico", "El período académico es requerido")
    elif not ACADEMIC_PERIOD_RE.match(periodo):
        result.add_issue(
            "periodoAcademico",
            "El período académico debe tener el formato YYYY-YYYY (ej: 2025-2026)",
        )
    result.payload = {"nombre": nombre, "periodoAcademico": periodo, "estado": _estado(form)}
    return result


def validate_subject_form(form: Mapping) -> ValidationResult:
    result = ValidationResult()
    nombre = _text(form, "nombre")
    codigo = _text(form, "codigo").upper()
    credito = _int_or_none(form.get("credito"))
    if not nombre or not codigo:
        result.add_issue("nombre", "El nombre y código son requeridos")
    if credito is None or credito < 1 or credito > 10:
        result.add_issue("credito", "Los créditos deben estar entre 1 y 10")
    result.payload = {
        "nombre": nombre,
        "codigo": codigo,
        "credito": credito,
        "estado": _estado(form),
        "programasAcademicosIds": _int_list(form, "programasAcademicosIds"),
    }
    return result


def validate_quarter_form(form: Mapping) -> ValidationResult:
    result = ValidationResult()
    periodo = _text(form, "periodo")
    anio = _int_or_none(form.get("anio"))
    if periodo not in KnownValues.QUARTER_PERIODS:
        result.add_issue("periodo", "El periodo es requerido (C1, C2 o C3)")
    if anio is None:
        result.add_issue("anio", "El año es requerido y debe ser un número")
    elif anio < 2000 or anio > 2099:
        result.add_issue("anio", "El año debe estar entre 2000 y 2099")
    result.payload = {"periodo": periodo, "anio": anio, "estado": _estado(form)}
    return result


def validate_enrollment_form(form: Mapping) -> ValidationResult:
    """Rules for a student's subject result.

    A grade between 0 and 100 is required unless the subject was dropped
    (RETIRADA), in which case the grade is sent as null.
    """
    result = ValidationResult()
    student_id = _int_or_none(form.get("estudianteId"))
    subject_id = _int_or_none(form.get("materiaId"))
    quarter_id = _int_or_none(form.get("cuatrimestreId"))
    estado = _text(form, "estado") or "APROBADA"

    if not student_id or not subject_id or not quarter_id:
        result.add_issue("estudianteId", "Debes seleccionar estudiante, materia y cuatrimestre")
    if estado not in KnownValues.ENROLLMENT_STATES:
        result.add_issue("estado", "Estado de inscripción no válido")

    calificacion: Optional[float] = None
    if estado != "RETIRADA":
        raw = _text(form, "calificacion")
        if raw == "":
            result.add_issue(
                "calificacion",
                "Ingresa la calificación (0–100) o cambia el estado a Retirada",
            )
        else:
            calificacion = _float_or_none(raw)
            if calificacion is None or calificacion < 0 or calificacion > 100:
                result.add_issue("calificacion", "La calificación debe estar entre 0 y 100")

    result.payload = {
        "estudianteId": student_id,
        "materiaId": subject_id,
        "cuatrimestreId": quarter_id,
        "estado": estado,
        "calificacion": calificacion,
    }
    return result


def validate_document_upload(form: Mapping) -> ValidationResult:
    result = ValidationResult()
    tipo = _text(form, "tipoDocumento")
    upload = form.get("file")
    if tipo not in KnownValues.DOCUMENT_TYPES or not has_file(upload):
        result.add_issue("tipoDocumento", "Debe seleccionar el tipo de documento y el archivo")
    elif upload_size(upload) > KnownValues.MAX_DOCUMENT_BYTES:
        result.add_issue("file", "El archivo no puede ser mayor a 10MB")
    elif upload.content_type not in KnownValues.DOCUMENT_CONTENT_TYPES:
        result.add_issue("file", "Solo se permiten archivos PDF, JPG, JPEG y PNG")
    result.payload = {"tipoDocumento": tipo}
    return result


def validate_document_review(form: Mapping) -> ValidationResult:
    result = ValidationResult()
    estado = _text(form, "estado")
    if estado not in KnownValues.DOCUMENT_STATES:
        result.add_issue("estado", "Estado de documento no válido")
    result.payload = {"estado": estado}
    comentarios = _text(form, "comentarios")
    if comentarios:
        result.payload["comentarios"] = comentarios
    return result


# ── Events ────────────────────────────────────────────────────────────────────

def validate_name_form(form: Mapping) -> ValidationResult:
    """Shared rule for entities that only carry a name (categories, publishers)."""
    result = ValidationResult()
    nombre = _text(form, "nombre")
    if not nombre:
        result.add_issue("nombre", "El nombre es requerido")
    result.payload = {"nombre": nombre, "estado": _estado(form)}
    return result


def validate_event_form(form: Mapping) -> ValidationResult:
    result = ValidationResult()
    nombre = _text(form, "nombre")
    category_id = _int_or_none(form.get("categoriaEventoId"))
    inicio = _text(form, "fechaInicio")
    fin = _text(form, "fechaFin")
    if not nombre:
        result.add_issue("nombre", "El nombre es requerido")
    if not category_id:
        result.add_issue("categoriaEventoId", "La categoría es requerida")
    if not inicio or not fin:
        result.add_issue("fechaInicio", "Las fechas de inicio y fin son requeridas")
    result.payload = {
        "nombre": nombre,
        "descripcion": _text(form, "descripcion"),
        "categoriaEventoId": category_id,
        "fechaInicio": to_api_datetime(inicio) if inicio else "",
        "fechaFin": to_api_datetime(fin) if fin else "",
        "estado": _estado(form),
    }
    return result


# ── Library ───────────────────────────────────────────────────────────────────

def validate_book_form(form: Mapping, creating: bool) -> ValidationResult:
    """Rules for a library book; the file is only mandatory on creation."""
    result = ValidationResult()
    titulo = _text(form, "titulo")
    editorial_id = _int_or_none(form.get("editorialId"))
    cantidad = _int_or_none(form.get("cantidadDisponible"))
    year_raw = _text(form, "yearPublicacion")
    year = _int_or_none(year_raw) if year_raw else None
    upload = form.get("file")

    if not titulo:
        result.add_issue("titulo", "El título es requerido")
    if not editorial_id:
        result.add_issue("editorialId", "La editorial es requerida")
    if cantidad is None or cantidad < 0:
        result.add_issue("cantidadDisponible", "La cantidad disponible debe ser un número positivo")
    if year_raw and year is None:
        result.add_issue("yearPublicacion", "El año de publicación debe ser un número")
    if creating and not has_file(upload):
        result.add_issue("file", "El archivo es requerido para crear un nuevo libro")
    elif has_file(upload) and upload_size(upload) > KnownValues.MAX_BOOK_BYTES:
        result.add_issue("file", "El archivo no puede ser mayor a 20MB")

    payload: Dict[str, Any] = {
        "titulo": titulo,
        "editorialId": editorial_id,
        "cantidadDisponible": cantidad,
        "estado": _estado(form),
    }
    # Optional fields are only sent when filled in
    sipnosis = _text(form, "sipnosis")
    if sipnosis:
        payload["sipnosis"] = sipnosis
    if year is not None:
        payload["yearPublicacion"] = year
    for name in ("archivoUrl", "imagenUrl"):
        value = _text(form, name)
        if value:
            payload[name] = value
    result.payload = payload
    return result


def creation_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Payload for a ``/registrar`` call: new records always start active."""
    return {k: v for k, v in payload.items() if k != "estado"}
