"""
Event categories and events.

Routes (admin only):
    GET  /categorias                  → categories/list.html (?estado=AC|IN)
    GET  /categorias/nuevo, /categorias/{id}/editar
    POST /categorias, /categorias/{id}
    GET  /eventos                     → events/list.html (?page=N)
    GET  /eventos/nuevo, /eventos/{id}/editar
    POST /eventos, /eventos/{id}
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, Response
from starlette.datastructures import FormData

from portal.auth import current_token, get_services, require_admin
from portal.models import Event, EventCategory
from portal.services import PortalServices
from portal.views import form_data, render, submit_form
from utils.validation import creation_payload, validate_event_form, validate_name_form

router = APIRouter(tags=["events"], dependencies=[Depends(require_admin)])


# ── Categories ────────────────────────────────────────────────────────────────

def _category_form(category: EventCategory) -> dict[str, Any]:
    return {"nombre": category.name, "estado": category.estado}


@router.get("/categorias", response_class=HTMLResponse, include_in_schema=False)
def categories_list(
    request: Request,
    estado: Optional[str] = Query(None),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    page = services.categories.list(token, estado=estado if estado in ("AC", "IN") else None)
    return render(request, "categories/list.html",
                  {"categories": page.items, "estado": estado or ""})


@router.get("/categorias/nuevo", response_class=HTMLResponse, include_in_schema=False)
def category_new(request: Request) -> HTMLResponse:
    return render(request, "categories/form.html", {"form": {"estado": "AC"}, "editing": None})


@router.post("/categorias", include_in_schema=False)
def category_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_name_form(form)

    def action():
        services.categories.create(token, creation_payload(result.payload))
        services.invalidate_options("categories")

    return submit_form(request, "categories/form.html",
                       {"form": result.payload, "editing": None}, result, action,
                       "/categorias", "Categoría creada exitosamente")


@router.get("/categorias/{category_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def category_edit(
    request: Request,
    category_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    category = services.categories.get(token, category_id)
    return render(request, "categories/form.html",
                  {"form": _category_form(category), "editing": category_id})


@router.post("/categorias/{category_id}", include_in_schema=False)
def category_update(
    request: Request,
    category_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_name_form(form)

    def action():
        services.categories.update(token, category_id, result.payload)
        services.invalidate_options("categories")

    return submit_form(request, "categories/form.html",
                       {"form": result.payload, "editing": category_id}, result, action,
                       "/categorias", "Categoría actualizada exitosamente")


# ── Events ────────────────────────────────────────────────────────────────────

def _event_form(event: Event) -> dict[str, Any]:
    category_id = event.category_id
    if category_id is None and event.category is not None:
        category_id = event.category.category_id
    return {
        "nombre": event.name,
        "descripcion": event.description or "",
        "categoriaEventoId": category_id,
        "fechaInicio": event.starts_at or "",
        "fechaFin": event.ends_at or "",
        "estado": event.estado,
    }


def _event_context(token: str, services: PortalServices, form: dict,
                   editing: Optional[int]) -> dict[str, Any]:
    return {"form": form, "editing": editing,
            "categories": services.active_categories(token)}


@router.get("/eventos", response_class=HTMLResponse, include_in_schema=False)
def events_list(
    request: Request,
    page: int = Query(1, ge=1),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    result = services.events.list(token, page=page,
                                  limit=request.app.state.config.page_size)
    return render(request, "events/list.html", {
        "events": result.items,
        "page": page,
        "page_count": result.page_count,
    })


@router.get("/eventos/nuevo", response_class=HTMLResponse, include_in_schema=False)
def event_new(
    request: Request,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    return render(request, "events/form.html",
                  _event_context(token, services, {"estado": "AC"}, None))


@router.post("/eventos", include_in_schema=False)
def event_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_event_form(form)
    return submit_form(
        request, "events/form.html",
        _event_context(token, services, result.payload, None), result,
        lambda: services.events.create(token, creation_payload(result.payload)),
        "/eventos", "Evento creado exitosamente",
    )


@router.get("/eventos/{event_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def event_edit(
    request: Request,
    event_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    event = services.events.get(token, event_id)
    return render(request, "events/form.html",
                  _event_context(token, services, _event_form(event), event_id))


@router.post("/eventos/{event_id}", include_in_schema=False)
def event_update(
    request: Request,
    event_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_event_form(form)
    return submit_form(
        request, "events/form.html",
        _event_context(token, services, result.payload, event_id), result,
        lambda: services.events.update(token, event_id, result.payload),
        "/eventos", "Evento actualizado exitosamente",
    )
