"""
REST service layer for the academic API.

One small service per backend resource.  They all follow the backend's
conventions:

    GET   /<resource>              list, ``{"data": [...]}`` (+ pagination)
    GET   /<resource>/{id}         single record, ``{"data": {...}}``
    POST  /<resource>/registrar    create
    PATCH /<resource>/actualizar   update, entity id inside the JSON body

and return the pydantic models from portal/models.py.

PortalServices bundles every service with a TTL cache for the option
lists that feed form selects, plus the concurrent fetch behind the
dashboard counters.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Generic, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from portal.models import (
    Book, Enrollment, Event, EventCategory, Page, Program, Publisher, Quarter,
    Student, StudentDocument, Subject, UnicdaBook, UnicdaEvent, UnicdaStudent,
)
from utils.cache import TTLCache
from utils.http import ApiClient, ApiError, Download
from utils.statistics import DashboardStats, dashboard_stats

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Students are paged server-side; aggregate views ask for everything
ALL_STUDENTS_LIMIT = 1000


def _data(body: Any) -> Any:
    """Unwrap the ``data`` envelope every endpoint uses."""
    if isinstance(body, dict):
        return body.get("data")
    return None


class ResourceService(Generic[M]):
    """CRUD endpoints for one backend resource."""

    path: str = ""
    id_field: str = ""
    model: type[M]

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def list(self, token: str | None, **params: Any) -> Page[M]:
        body = self.client.get(self.path, token=token, params=params or None)
        return Page[self.model].model_validate(body or {})

    def get(self, token: str, entity_id: int) -> M:
        body = self.client.get(f"{self.path}/{entity_id}", token=token)
        record = _data(body)
        if record is None:
            raise ApiError("Recurso no encontrado.", 404)
        return self.model.model_validate(record)

    def create(self, token: str, payload: dict[str, Any]) -> Any:
        return self.client.post(f"{self.path}/registrar", token=token, json=payload)

    def update(self, token: str, entity_id: int, payload: dict[str, Any]) -> Any:
        body = {self.id_field: entity_id, **payload}
        return self.client.patch(f"{self.path}/actualizar", token=token, json=body)


class AuthService:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def login(self, correo: str, clave: str) -> Any:
        return self.client.post("/auth/login", json={"correo": correo, "clave": clave})

    def register(self, nombre: str, correo: str, clave: str, rol_id: int) -> Any:
        return self.client.post(
            "/auth/registrar",
            json={"nombre": nombre, "correo": correo, "clave": clave, "rolId": rol_id},
        )


class StudentService(ResourceService[Student]):
    path = "/estudiante"
    id_field = "estudianteId"
    model = Student

    def list(self, token: str | None, estado: str | None = None,
             page: int | None = None, limit: int | None = None) -> Page[Student]:
        return super().list(token, estado=estado, numeroPagina=page, limite=limit)

    def get_by_email(self, token: str, correo: str) -> Student:
        body = self.client.get(f"{self.path}/correo/{quote(correo)}", token=token)
        return Student.model_validate(_data(body) or {})


class StudentDocumentService:
    path = "/estudiante-documento"

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def list_for_student(self, token: str, student_id: int,
                         estado: str | None = None) -> list[StudentDocument]:
        body = self.client.get(f"{self.path}/estudiante/{student_id}", token=token,
                               params={"estado": estado})
        return [StudentDocument.model_validate(d) for d in _data(body) or []]

    def upload(self, token: str, student_id: int, tipo: str, filename: str,
               content: Any, content_type: str) -> Any:
        """Multipart upload; field names are the ones the API expects."""
        return self.client.post(
            f"{self.path}/subir", token=token,
            data={"estudianteId": str(student_id), "tipoDocumento": tipo},
            files={"file": (filename, content, content_type)},
        )

    def update_status(self, token: str, student_id: int, document_id: int,
                      payload: dict[str, Any]) -> Any:
        body = {"estudianteId": student_id, "documentoId": document_id, **payload}
        return self.client.patch(f"{self.path}/actualizar-estado", token=token, json=body)

    def download(self, token: str, document_id: int) -> Download:
        return self.client.download(f"{self.path}/{document_id}/descargar", token=token,
                                    error_message="Error al descargar documento")

    def download_all(self, token: str, matricula: str) -> Download:
        """ZIP bundle with every document of the student."""
        return self.client.download(
            f"{self.path}/estudiante/{quote(matricula)}/descargar", token=token,
            error_message="Error al descargar documentos",
        )


class EnrollmentService(ResourceService[Enrollment]):
    path = "/estudiante-materia"
    id_field = "estudianteMateriaId"
    model = Enrollment

    def history(self, token: str, matricula: str) -> list[Enrollment]:
        body = self.client.get(f"{self.path}/estudiante/{quote(matricula)}/historial",
                               token=token)
        return [Enrollment.model_validate(e) for e in _data(body) or []]


class QuarterService(ResourceService[Quarter]):
    path = "/cuatrimestre"
    id_field = "cuatrimestreId"
    model = Quarter

    def list(self, token: str | None, periodo: str | None = None,
             anio: int | None = None, estado: str | None = None,
             page: int | None = None, limit: int | None = None) -> Page[Quarter]:
        return super().list(token, periodo=periodo, anio=anio, estado=estado,
                            numeroPagina=page, limite=limit)


class EventService(ResourceService[Event]):
    path = "/evento"
    id_field = "eventoId"
    model = Event

    def list(self, token: str | None, page: int | None = None,
             limit: int | None = None) -> Page[Event]:
        return super().list(token, numeroPagina=page, limite=limit)


class _StatusFilteredService(ResourceService[M]):
    """Resources whose list endpoint only filters by ``estado``."""

    def list(self, token: str | None, estado: str | None = None) -> Page[M]:
        return super().list(token, estado=estado)


class BookService(_StatusFilteredService[Book]):
    path = "/libro"
    id_field = "libroId"
    model = Book

    def create(self, token: str, payload: dict[str, Any],
               file: tuple[str, Any, str] | None = None) -> Any:
        """Books are created with a multipart body carrying the PDF."""
        fields = {k: str(v) for k, v in payload.items()
                  if v is not None and k != "estado"}
        return self.client.post(f"{self.path}/registrar", token=token, data=fields,
                                files={"file": file} if file else {})

    def download(self, token: str, book_id: int) -> Download:
        return self.client.download(f"{self.path}/{book_id}/descargar", token=token,
                                    error_message="Error al descargar libro")


class PublisherService(_StatusFilteredService[Publisher]):
    path = "/editorial"
    id_field = "editorialId"
    model = Publisher


class ProgramService(_StatusFilteredService[Program]):
    path = "/programa-academico"
    id_field = "programaAcademicoId"
    model = Program


class SubjectService(_StatusFilteredService[Subject]):
    path = "/materia"
    id_field = "materiaId"
    model = Subject

    def programs(self, token: str, subject_id: int) -> list[Program]:
        body = self.client.get(f"{self.path}/{subject_id}/programas-academicos", token=token)
        return [Program.model_validate(p) for p in _data(body) or []]


class EventCategoryService(_StatusFilteredService[EventCategory]):
    path = "/categoria-evento"
    id_field = "categoriaEventoId"
    model = EventCategory


class UnicdaService:
    """Read-only integration with the UNICDA partner institution."""
    path = "/unicda"

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def generate_token(self, token: str) -> Any:
        return self.client.post(f"{self.path}/generar-token", token=token)

    def events(self, token: str) -> list[UnicdaEvent]:
        body = self.client.get(f"{self.path}/eventos", token=token)
        return [UnicdaEvent.model_validate(e) for e in _data(body) or []]

    def books(self, token: str) -> list[UnicdaBook]:
        body = self.client.get(f"{self.path}/libros", token=token)
        return [UnicdaBook.model_validate(b) for b in _data(body) or []]

    def students(self, token: str) -> list[UnicdaStudent]:
        body = self.client.get(f"{self.path}/estudiantes", token=token)
        return [UnicdaStudent.model_validate(s) for s in _data(body) or []]

    def pdf(self, token: str, file_url: str) -> Download:
        name = file_url.removeprefix("api/media/")
        return self.client.download(f"{self.path}/pdf/{quote(name, safe='')}",
                                    token=token, error_message="Error al cargar el PDF")


class PortalServices:
    """Every API service used by the portal, sharing one ApiClient."""

    def __init__(self, client: ApiClient, options_ttl: float = 60.0) -> None:
        self.client = client
        self.auth = AuthService(client)
        self.students = StudentService(client)
        self.documents = StudentDocumentService(client)
        self.enrollments = EnrollmentService(client)
        self.quarters = QuarterService(client)
        self.events = EventService(client)
        self.books = BookService(client)
        self.publishers = PublisherService(client)
        self.programs = ProgramService(client)
        self.subjects = SubjectService(client)
        self.categories = EventCategoryService(client)
        self.unicda = UnicdaService(client)
        self.options_cache = TTLCache(maxsize=256, ttl_seconds=options_ttl)

    # ── Select options (cached per token) ─────────────────────────────────────

    def _options(self, token: str, kind: str, loader: Callable[[], list]) -> list:
        return self.options_cache.get_or_load((token, kind), loader)

    def active_programs(self, token: str) -> list[Program]:
        return self._options(token, "programs",
                             lambda: self.programs.list(token, estado="AC").items)

    def active_publishers(self, token: str) -> list[Publisher]:
        return self._options(token, "publishers",
                             lambda: self.publishers.list(token, estado="AC").items)

    def active_categories(self, token: str) -> list[EventCategory]:
        return self._options(token, "categories",
                             lambda: self.categories.list(token, estado="AC").items)

    def active_subjects(self, token: str) -> list[Subject]:
        return self._options(token, "subjects",
                             lambda: self.subjects.list(token, estado="AC").items)

    def active_quarters(self, token: str) -> list[Quarter]:
        return self._options(token, "quarters",
                             lambda: self.quarters.list(token, estado="AC").items)

    def invalidate_options(self, kind: str) -> None:
        """Forget cached options of *kind* for every session."""
        removed = self.options_cache.invalidate(lambda key: key[1] == kind)
        logger.debug("options_invalidated kind=%s removed=%d", kind, removed)

    # ── Aggregate views ───────────────────────────────────────────────────────

    def all_students(self, token: str) -> list[Student]:
        return self.students.list(token, limit=ALL_STUDENTS_LIMIT).items

    def fetch_lists(self, token: str,
                    loaders: dict[str, Callable[[], list]]) -> dict[str, list]:
        """Run list loaders concurrently; a failing loader yields an empty list.

        Backend errors and records that fail model validation both count as
        failures.  Anything else is a bug and propagates.
        """
        results: dict[str, list] = {}
        with ThreadPoolExecutor(max_workers=max(1, len(loaders))) as pool:
            futures = {name: pool.submit(fn) for name, fn in loaders.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except ApiError as exc:
                    logger.warning("list_fetch_failed name=%s status=%d message=%s",
                                   name, exc.status, exc.message)
                    results[name] = []
                except ValidationError as exc:
                    logger.warning("list_fetch_failed name=%s status=%d message=%s",
                                   name, 0, f"invalid records: {exc.error_count()} errors")
                    results[name] = []
        return results

    def fetch_all(self, loaders: dict[str, Callable[[], list]]) -> dict[str, list]:
        """Run list loaders concurrently, all or nothing.

        Waits for every loader, then re-raises the first failure in
        *loaders* order.
        """
        with ThreadPoolExecutor(max_workers=max(1, len(loaders))) as pool:
            futures = {name: pool.submit(fn) for name, fn in loaders.items()}
        return {name: future.result() for name, future in futures.items()}

    def collect_dashboard(self, token: str) -> DashboardStats:
        lists = self.fetch_lists(token, {
            "books": lambda: self.books.list(token).items,
            "events": lambda: self.events.list(token).items,
            "categories": lambda: self.categories.list(token).items,
            "publishers": lambda: self.publishers.list(token).items,
            "programs": lambda: self.programs.list(token).items,
            "subjects": lambda: self.subjects.list(token).items,
            "students": lambda: self.all_students(token),
            "quarters": lambda: self.quarters.list(token).items,
        })
        return dashboard_stats(**lists)

    def close(self) -> None:
        self.client.close()
