"""
UNICDA partner institution integration (read-only).

Routes (any logged-in user):
    GET /unicda                → unicda.html (?tab=eventos|libros|estudiantes&q=)
    GET /unicda/pdf/{file}     → PDF bytes proxied from the integration API

The search box filters only the active tab, case-insensitively.
"""

import logging
from typing import Iterable, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, Response

from portal.auth import SessionUser, current_token, current_user, get_services
from portal.models import UnicdaBook, UnicdaEvent, UnicdaStudent
from portal.services import PortalServices
from portal.views import download_response, render
from utils.http import ApiError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["unicda"])

TABS = ("eventos", "libros", "estudiantes")


def _matches(query: str, fields: Iterable[Optional[str]]) -> bool:
    return any(query in (value or "").lower() for value in fields)


def filter_events(events: list[UnicdaEvent], query: str) -> list[UnicdaEvent]:
    q = query.strip().lower()
    if not q:
        return events
    return [e for e in events if _matches(q, (
        e.title, e.description, e.category.name if e.category else None))]


def filter_books(books: list[UnicdaBook], query: str) -> list[UnicdaBook]:
    q = query.strip().lower()
    if not q:
        return books
    return [b for b in books if _matches(q, (
        b.title, b.synopsis, b.publisher.name if b.publisher else None))]


def filter_students(students: list[UnicdaStudent], query: str) -> list[UnicdaStudent]:
    q = query.strip().lower()
    if not q:
        return students
    return [s for s in students if _matches(q, (
        s.first_name, s.last_name, s.matricula, s.cedula))]


@router.get("/unicda", response_class=HTMLResponse, include_in_schema=False)
def unicda_page(
    request: Request,
    tab: str = Query("eventos"),
    q: str = Query(""),
    user: SessionUser = Depends(current_user),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    if tab not in TABS:
        tab = "eventos"
    events: list[UnicdaEvent] = []
    books: list[UnicdaBook] = []
    students: list[UnicdaStudent] = []
    error = None
    try:
        lists = services.fetch_all({
            "events": lambda: services.unicda.events(token),
            "books": lambda: services.unicda.books(token),
            "students": lambda: services.unicda.students(token),
        })
        events, books, students = lists["events"], lists["books"], lists["students"]
    except ApiError as exc:
        if exc.status == 401:
            raise
        logger.warning("unicda_fetch_failed status=%d message=%s", exc.status, exc.message)
        error = exc.message or "Error desconocido al cargar los datos"

    # Only the active tab is filtered; the pills keep showing full counts
    filtered = {
        "eventos": lambda: filter_events(events, q),
        "libros": lambda: filter_books(books, q),
        "estudiantes": lambda: filter_students(students, q),
    }[tab]()
    return render(request, "unicda.html", {
        "tab": tab,
        "q": q,
        "error": error,
        "counts": {"eventos": len(events), "libros": len(books),
                   "estudiantes": len(students)},
        "items": filtered,
    })


@router.get("/unicda/pdf/{file_path:path}", include_in_schema=False)
def unicda_pdf(
    file_path: str,
    user: SessionUser = Depends(current_user),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    download = services.unicda.pdf(token, file_path)
    name = file_path.rsplit("/", 1)[-1] or "documento.pdf"
    return download_response(download, name, inline=True)
