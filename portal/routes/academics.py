"""
Academic catalog management: programs, subjects and quarters.

Routes (admin only):
    GET  /programas                   → programs/list.html (?estado=AC|IN)
    GET  /programas/nuevo             → programs/form.html
    POST /programas                   → create, redirect to list
    GET  /programas/{id}/editar       → programs/form.html
    POST /programas/{id}              → update, redirect to list

and the same five routes under /materias and /cuatrimestres.  Quarters
are also filtered by período/año and paginated.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, Response
from starlette.datastructures import FormData

from portal.auth import SessionUser, current_token, get_services, require_admin
from portal.models import Program, Quarter, Subject
from portal.services import PortalServices
from portal.views import form_data, render, submit_form
from utils.validation import (
    creation_payload,
    validate_program_form,
    validate_quarter_form,
    validate_subject_form,
)

router = APIRouter(tags=["academics"], dependencies=[Depends(require_admin)])


def _estado_filter(estado: Optional[str]) -> Optional[str]:
    return estado if estado in ("AC", "IN") else None


# ── Programs ──────────────────────────────────────────────────────────────────

def _program_form(program: Program) -> dict[str, Any]:
    return {
        "nombre": program.name,
        "periodoAcademico": program.academic_period or "",
        "estado": program.estado,
    }


@router.get("/programas", response_class=HTMLResponse, include_in_schema=False)
def programs_list(
    request: Request,
    estado: Optional[str] = Query(None),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    page = services.programs.list(token, estado=_estado_filter(estado))
    return render(request, "programs/list.html",
                  {"programs": page.items, "estado": estado or ""})


@router.get("/programas/nuevo", response_class=HTMLResponse, include_in_schema=False)
def program_new(request: Request) -> HTMLResponse:
    return render(request, "programs/form.html", {"form": {"estado": "AC"}, "editing": None})


@router.post("/programas", include_in_schema=False)
def program_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_program_form(form)

    def action():
        services.programs.create(token, creation_payload(result.payload))
        services.invalidate_options("programs")

    return submit_form(request, "programs/form.html",
                       {"form": result.payload, "editing": None}, result, action,
                       "/programas", "Programa académico creado exitosamente")


@router.get("/programas/{program_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def program_edit(
    request: Request,
    program_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    program = services.programs.get(token, program_id)
    return render(request, "programs/form.html",
                  {"form": _program_form(program), "editing": program_id})


@router.post("/programas/{program_id}", include_in_schema=False)
def program_update(
    request: Request,
    program_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_program_form(form)

    def action():
        services.programs.update(token, program_id, result.payload)
        services.invalidate_options("programs")

    return submit_form(request, "programs/form.html",
                       {"form": result.payload, "editing": program_id}, result, action,
                       "/programas", "Programa académico actualizado exitosamente")


# ── Subjects ──────────────────────────────────────────────────────────────────

def _subject_form(subject: Subject, programs: list[Program]) -> dict[str, Any]:
    return {
        "nombre": subject.name,
        "codigo": subject.code or "",
        "credito": subject.credits,
        "estado": subject.estado,
        "programasAcademicosIds": [p.program_id for p in programs],
    }


def _subject_context(token: str, services: PortalServices, form: dict,
                     editing: Optional[int]) -> dict[str, Any]:
    return {"form": form, "editing": editing,
            "programs": services.active_programs(token)}


@router.get("/materias", response_class=HTMLResponse, include_in_schema=False)
def subjects_list(
    request: Request,
    estado: Optional[str] = Query(None),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    page = services.subjects.list(token, estado=_estado_filter(estado))
    return render(request, "subjects/list.html",
                  {"subjects": page.items, "estado": estado or ""})


@router.get("/materias/nuevo", response_class=HTMLResponse, include_in_schema=False)
def subject_new(
    request: Request,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    form = {"estado": "AC", "credito": 1, "programasAcademicosIds": []}
    return render(request, "subjects/form.html",
                  _subject_context(token, services, form, None))


@router.post("/materias", include_in_schema=False)
def subject_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_subject_form(form)

    def action():
        services.subjects.create(token, creation_payload(result.payload))
        services.invalidate_options("subjects")

    return submit_form(request, "subjects/form.html",
                       _subject_context(token, services, result.payload, None),
                       result, action, "/materias", "Materia creada exitosamente")


@router.get("/materias/{subject_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def subject_edit(
    request: Request,
    subject_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    subject = services.subjects.get(token, subject_id)
    programs = subject.programs or services.subjects.programs(token, subject_id)
    return render(request, "subjects/form.html",
                  _subject_context(token, services, _subject_form(subject, programs),
                                   subject_id))


@router.post("/materias/{subject_id}", include_in_schema=False)
def subject_update(
    request: Request,
    subject_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_subject_form(form)

    def action():
        services.subjects.update(token, subject_id, result.payload)
        services.invalidate_options("subjects")

    return submit_form(request, "subjects/form.html",
                       _subject_context(token, services, result.payload, subject_id),
                       result, action, "/materias", "Materia actualizada exitosamente")


# ── Quarters ──────────────────────────────────────────────────────────────────

def _quarter_form(quarter: Quarter) -> dict[str, Any]:
    return {"periodo": quarter.period or "", "anio": quarter.year, "estado": quarter.estado}


@router.get("/cuatrimestres", response_class=HTMLResponse, include_in_schema=False)
def quarters_list(
    request: Request,
    estado: Optional[str] = Query(None),
    periodo: Optional[str] = Query(None),
    anio: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    page_size = request.app.state.config.page_size
    year = int(anio) if anio and anio.isdigit() else None
    result = services.quarters.list(
        token,
        periodo=periodo if periodo in ("C1", "C2", "C3") else None,
        anio=year,
        estado=_estado_filter(estado),
        page=page,
        limit=page_size,
    )
    return render(request, "quarters/list.html", {
        "quarters": result.items,
        "estado": estado or "",
        "periodo": periodo or "",
        "anio": anio or "",
        "page": page,
        "page_count": result.page_count,
        "total": result.total if result.total is not None else len(result.items),
    })


@router.get("/cuatrimestres/nuevo", response_class=HTMLResponse, include_in_schema=False)
def quarter_new(request: Request) -> HTMLResponse:
    return render(request, "quarters/form.html",
                  {"form": {"estado": "AC", "periodo": "C1"}, "editing": None})


@router.post("/cuatrimestres", include_in_schema=False)
def quarter_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_quarter_form(form)

    def action():
        services.quarters.create(token, creation_payload(result.payload))
        services.invalidate_options("quarters")

    return submit_form(request, "quarters/form.html",
                       {"form": result.payload, "editing": None}, result, action,
                       "/cuatrimestres", "Cuatrimestre creado exitosamente")


@router.get("/cuatrimestres/{quarter_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def quarter_edit(
    request: Request,
    quarter_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    quarter = services.quarters.get(token, quarter_id)
    return render(request, "quarters/form.html",
                  {"form": _quarter_form(quarter), "editing": quarter_id})


@router.post("/cuatrimestres/{quarter_id}", include_in_schema=False)
def quarter_update(
    request: Request,
    quarter_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_quarter_form(form)

    def action():
        services.quarters.update(token, quarter_id, result.payload)
        services.invalidate_options("quarters")

    return submit_form(request, "quarters/form.html",
                       {"form": result.payload, "editing": quarter_id}, result, action,
                       "/cuatrimestres", "Cuatrimestre actualizado exitosamente")
