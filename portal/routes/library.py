"""
Library: publishers and books.

Routes (admin only):
    GET  /editoriales                 → publishers/list.html (?estado=AC|IN)
    GET  /editoriales/nuevo, /editoriales/{id}/editar
    POST /editoriales, /editoriales/{id}
    GET  /libros                      → books/list.html (?estado=AC|IN)
    GET  /libros/nuevo, /libros/{id}/editar
    POST /libros                      → multipart create (PDF required)
    POST /libros/{id}                 → JSON update (file not replaced)
    GET  /libros/{id}                 → books/view.html (PDF viewer)
    GET  /libros/{id}/descargar       → PDF bytes proxied from the API
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, Response
from starlette.datastructures import FormData

from portal.auth import current_token, get_services, require_admin
from portal.models import Book, Publisher
from portal.services import PortalServices
from portal.views import download_response, form_data, render, submit_form
from utils.http import ApiError
from utils.validation import creation_payload, validate_book_form, validate_name_form

router = APIRouter(tags=["library"], dependencies=[Depends(require_admin)])


# ── Publishers ────────────────────────────────────────────────────────────────

def _publisher_form(publisher: Publisher) -> dict[str, Any]:
    return {"nombre": publisher.name, "estado": publisher.estado}


@router.get("/editoriales", response_class=HTMLResponse, include_in_schema=False)
def publishers_list(
    request: Request,
    estado: Optional[str] = Query(None),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    page = services.publishers.list(token, estado=estado if estado in ("AC", "IN") else None)
    return render(request, "publishers/list.html",
                  {"publishers": page.items, "estado": estado or ""})


@router.get("/editoriales/nuevo", response_class=HTMLResponse, include_in_schema=False)
def publisher_new(request: Request) -> HTMLResponse:
    return render(request, "publishers/form.html", {"form": {"estado": "AC"}, "editing": None})


@router.post("/editoriales", include_in_schema=False)
def publisher_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_name_form(form)

    def action():
        services.publishers.create(token, creation_payload(result.payload))
        services.invalidate_options("publishers")

    return submit_form(request, "publishers/form.html",
                       {"form": result.payload, "editing": None}, result, action,
                       "/editoriales", "Editorial creada exitosamente")


@router.get("/editoriales/{publisher_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def publisher_edit(
    request: Request,
    publisher_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    publisher = services.publishers.get(token, publisher_id)
    return render(request, "publishers/form.html",
                  {"form": _publisher_form(publisher), "editing": publisher_id})


@router.post("/editoriales/{publisher_id}", include_in_schema=False)
def publisher_update(
    request: Request,
    publisher_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_name_form(form)

    def action():
        services.publishers.update(token, publisher_id, result.payload)
        services.invalidate_options("publishers")

    return submit_form(request, "publishers/form.html",
                       {"form": result.payload, "editing": publisher_id}, result, action,
                       "/editoriales", "Editorial actualizada exitosamente")


# ── Books ─────────────────────────────────────────────────────────────────────

def _find_book(token: str, services: PortalServices, book_id: int) -> Book:
    """Books have no single-record endpoint; look the id up in the full list."""
    for book in services.books.list(token).items:
        if book.book_id == book_id:
            return book
    raise ApiError("Libro no encontrado", 404)


def _book_form(book: Book) -> dict[str, Any]:
    return {
        "titulo": book.title,
        "editorialId": book.publisher.publisher_id if book.publisher else None,
        "cantidadDisponible": book.available_copies or 0,
        "sipnosis": book.synopsis or "",
        "yearPublicacion": book.year,
        "archivoUrl": book.file_url or "",
        "imagenUrl": book.image_url or "",
        "estado": book.estado,
    }


def _book_context(token: str, services: PortalServices, form: dict,
                  editing: Optional[int]) -> dict[str, Any]:
    return {"form": form, "editing": editing,
            "publishers": services.active_publishers(token)}


def book_viewer_url(book: Book) -> str:
    """Where the viewer loads the PDF from: the stored URL, else the proxy."""
    return book.file_url or f"/libros/{book.book_id}/descargar?inline=1"


@router.get("/libros", response_class=HTMLResponse, include_in_schema=False)
def books_list(
    request: Request,
    estado: Optional[str] = Query(None),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    page = services.books.list(token, estado=estado if estado in ("AC", "IN") else None)
    return render(request, "books/list.html", {"books": page.items, "estado": estado or ""})


@router.get("/libros/nuevo", response_class=HTMLResponse, include_in_schema=False)
def book_new(
    request: Request,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    form = {"estado": "AC", "cantidadDisponible": 0}
    return render(request, "books/form.html", _book_context(token, services, form, None))


@router.post("/libros", include_in_schema=False)
def book_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_book_form(form, creating=True)

    def action():
        upload = form.get("file")
        upload.file.seek(0)
        services.books.create(
            token, creation_payload(result.payload),
            file=(upload.filename, upload.file, upload.content_type or "application/pdf"),
        )

    return submit_form(request, "books/form.html",
                       _book_context(token, services, result.payload, None),
                       result, action, "/libros", "Libro creado exitosamente")


@router.get("/libros/{book_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def book_edit(
    request: Request,
    book_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    book = _find_book(token, services, book_id)
    return render(request, "books/form.html",
                  _book_context(token, services, _book_form(book), book_id))


@router.post("/libros/{book_id}", include_in_schema=False)
def book_update(
    request: Request,
    book_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_book_form(form, creating=False)
    return submit_form(
        request, "books/form.html",
        _book_context(token, services, result.payload, book_id), result,
        lambda: services.books.update(token, book_id, result.payload),
        "/libros", "Libro actualizado exitosamente",
    )


@router.get("/libros/{book_id}", response_class=HTMLResponse, include_in_schema=False)
def book_view(
    request: Request,
    book_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    book = _find_book(token, services, book_id)
    return render(request, "books/view.html",
                  {"book": book, "viewer_url": book_viewer_url(book)})


@router.get("/libros/{book_id}/descargar", include_in_schema=False)
def book_download(
    book_id: int,
    inline: bool = Query(False),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    download = services.books.download(token, book_id)
    return download_response(download, f"libro-{book_id}.pdf", inline=inline)
