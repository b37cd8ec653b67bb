"""
Pydantic models for the academic REST API payloads.

The backend speaks Spanish camelCase JSON (``estudianteId``,
``fechaCreacion``...).  Every model maps those keys through field aliases
so the rest of the portal works with plain snake_case attributes, and
``extra="ignore"`` keeps parsing tolerant of fields added server-side.

Optional fields default to None so that partial nested objects (the API
embeds trimmed copies of related records) still validate.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    """Base model: populate by alias or by name, ignore unknown keys."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ── Embedded references ───────────────────────────────────────────────────────

class UserRef(ApiModel):
    """Audit user attached to created/updated records."""
    user_id: int | None = Field(None, alias="usuarioId")
    name: str | None = Field(None, alias="nombre")


class CategoryRef(ApiModel):
    category_id: int | None = Field(None, alias="categoriaEventoId")
    name: str | None = Field(None, alias="nombre")


class PublisherRef(ApiModel):
    publisher_id: int | None = Field(None, alias="editorialId")
    name: str | None = Field(None, alias="nombre")
    estado: str | None = None


class StudentRef(ApiModel):
    student_id: int | None = Field(None, alias="estudianteId")
    first_names: str | None = Field(None, alias="nombres")
    last_names: str | None = Field(None, alias="apellidos")
    matricula: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_names, self.last_names) if p)


class SubjectRef(ApiModel):
    subject_id: int | None = Field(None, alias="materiaId")
    name: str | None = Field(None, alias="nombre")
    code: str | None = Field(None, alias="codigo")


class QuarterRef(ApiModel):
    quarter_id: int | None = Field(None, alias="cuatrimestreId")
    period: str | None = Field(None, alias="periodo")
    year: int | None = Field(None, alias="anio")

    @property
    def label(self) -> str:
        return " ".join(str(p) for p in (self.period, self.year) if p)


class InstitutionRef(ApiModel):
    name: str | None = Field(None, alias="nombre")


# ── Library ───────────────────────────────────────────────────────────────────

class Publisher(ApiModel):
    """Editorial (book publisher)."""
    publisher_id: int = Field(..., alias="editorialId")
    name: str = Field(..., alias="nombre")
    estado: str = "AC"
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")


class Book(ApiModel):
    """Library book. ``synopsis`` keeps the backend's ``sipnosis`` spelling on the wire."""
    book_id: int = Field(..., alias="libroId")
    title: str = Field(..., alias="titulo")
    synopsis: str | None = Field(None, alias="sipnosis")
    year: int | None = Field(None, alias="yearPublicacion")
    file_url: str | None = Field(None, alias="archivoUrl")
    image_url: str | None = Field(None, alias="imagenUrl")
    estado: str = "AC"
    available_copies: int | None = Field(None, alias="cantidadDisponible")
    publisher: PublisherRef | None = Field(None, alias="editorial")
    created_by: UserRef | None = Field(None, alias="usuarioCreacion")
    updated_by: UserRef | None = Field(None, alias="usuarioActualizacion")
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")


# ── Events ────────────────────────────────────────────────────────────────────

class EventCategory(ApiModel):
    category_id: int = Field(..., alias="categoriaEventoId")
    name: str = Field(..., alias="nombre")
    estado: str = "AC"
    created_by: UserRef | None = Field(None, alias="usuario")
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")


class Event(ApiModel):
    event_id: int = Field(..., alias="eventoId")
    name: str = Field(..., alias="nombre")
    description: str | None = Field(None, alias="descripcion")
    estado: str = "AC"
    starts_at: str | None = Field(None, alias="fechaInicio")
    ends_at: str | None = Field(None, alias="fechaFin")
    category_id: int | None = Field(None, alias="categoriaEventoId")
    category: CategoryRef | None = Field(None, alias="categoriaEvento")
    created_by: UserRef | None = Field(None, alias="usuario")
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")


# ── Academics ─────────────────────────────────────────────────────────────────

class Program(ApiModel):
    """Programa académico."""
    program_id: int = Field(..., alias="programaAcademicoId")
    name: str = Field(..., alias="nombre")
    academic_period: str | None = Field(None, alias="periodoAcademico")
    estado: str = "AC"
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")


class Subject(ApiModel):
    """Materia, linked to any number of programs."""
    subject_id: int = Field(..., alias="materiaId")
    name: str = Field(..., alias="nombre")
    code: str | None = Field(None, alias="codigo")
    credits: int | None = Field(None, alias="credito")
    estado: str = "AC"
    programs: list[Program] = Field(default_factory=list, alias="programasAcademicos")
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")


class Quarter(ApiModel):
    """Cuatrimestre: a period (C1/C2/C3) within a year."""
    quarter_id: int = Field(..., alias="cuatrimestreId")
    period: str | None = Field(None, alias="periodo")
    year: int | None = Field(None, alias="anio")
    estado: str = "AC"
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")

    @property
    def label(self) -> str:
        return " ".join(str(p) for p in (self.period, self.year) if p)


class Student(ApiModel):
    student_id: int = Field(..., alias="estudianteId")
    first_names: str = Field(..., alias="nombres")
    last_names: str = Field("", alias="apellidos")
    email: str | None = Field(None, alias="correo")
    phone: str | None = Field(None, alias="telefono")
    cedula: str | None = None
    matricula: str | None = None
    estado: str = "REGISTRADO"
    program: Program | None = Field(None, alias="programaAcademico")
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")

    @property
    def full_name(self) -> str:
        return f"{self.first_names} {self.last_names}".strip()


class StudentDocument(ApiModel):
    document_id: int = Field(..., alias="estudianteDocumentoId")
    student_id: int | None = Field(None, alias="estudianteId")
    document_type: str = Field(..., alias="tipoDocumento")
    estado: str = "PENDIENTE"
    comments: str | None = Field(None, alias="comentarios")
    reviewed_by: UserRef | None = Field(None, alias="usuarioRevision")
    created_at: str | None = Field(None, alias="fechaCreacion")
    updated_at: str | None = Field(None, alias="fechaActualizacion")


class Enrollment(ApiModel):
    """Estudiante-materia: a student's result in a subject for a quarter."""
    enrollment_id: int = Field(..., alias="estudianteMateriaId")
    student_id: int | None = Field(None, alias="estudianteId")
    subject_id: int | None = Field(None, alias="materiaId")
    quarter_id: int | None = Field(None, alias="cuatrimestreId")
    estado: str = "APROBADA"
    grade: float | None = Field(None, alias="calificacion")
    student: StudentRef | None = Field(None, alias="estudiante")
    subject: SubjectRef | None = Field(None, alias="materia")
    quarter: QuarterRef | None = Field(None, alias="cuatrimestre")


# ── UNICDA integration ────────────────────────────────────────────────────────

class UnicdaEvent(ApiModel):
    id: int
    title: str = Field("", alias="titulo")
    description: str | None = Field(None, alias="descripcion")
    date: str | None = Field(None, alias="fecha")
    category: CategoryRef | None = Field(None, alias="categoriaEvento")


class UnicdaBook(ApiModel):
    id: int
    title: str = Field("", alias="titulo")
    synopsis: str | None = Field(None, alias="sinopsis")
    year: int | None = Field(None, alias="anoPublicacion")
    file_url: str | None = Field(None, alias="archivoURL")
    image_url: str | None = Field(None, alias="imagenURL")
    publisher: PublisherRef | None = Field(None, alias="editorial")


class UnicdaStudent(ApiModel):
    id: int
    first_name: str = Field("", alias="nombre")
    last_name: str = Field("", alias="apellido")
    cedula: str = ""
    validated: bool = Field(False, alias="convalidado")
    matricula: str = ""
    institution: InstitutionRef | None = Field(None, alias="institucionExterna")


# ── List wrapper ──────────────────────────────────────────────────────────────

T = TypeVar("T")


class Page(ApiModel, Generic[T]):
    """List response: ``{"data": [...]}`` plus optional pagination fields."""
    items: list[T] = Field(default_factory=list, alias="data")
    total: int | None = None
    page: int | None = Field(None, alias="pagina")
    limit: int | None = Field(None, alias="limite")
    total_pages: int | None = Field(None, alias="totalPaginas")

    @property
    def page_count(self) -> int:
        """Number of pages, derived from total/limit when not sent."""
        if self.total_pages is not None:
            return self.total_pages
        if self.total is not None and self.limit:
            return max(1, (self.total + self.limit - 1) // self.limit)
        return 1
