"""
Students, their admission documents and their subject results.

Routes (admin only):
    GET  /estudiantes                              → students/list.html
                                                     (?estado=&page=N)
    GET  /estudiantes/nuevo, /estudiantes/{id}/editar
    POST /estudiantes, /estudiantes/{id}
    GET  /estudiantes/{id}                         → students/detail.html
    GET  /estudiantes/{id}/documentos              → students/documents.html
    POST /estudiantes/{id}/documentos              → multipart upload
    POST /estudiantes/{id}/documentos/{doc}/estado → review
    GET  /estudiantes/{id}/documentos/{doc}/descargar
    GET  /estudiantes/{id}/documentos/zip          → every document as ZIP
    GET  /inscripciones                            → enrollments/list.html
    GET  /inscripciones/historial                  → enrollments/history.html
                                                     (?matricula=)
    GET  /inscripciones/nuevo, /inscripciones/{id}/editar
    POST /inscripciones, /inscripciones/{id}
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, Response
from starlette.datastructures import FormData

from portal.auth import current_token, get_services, require_admin
from portal.models import Enrollment, Student
from portal.services import PortalServices
from portal.views import (
    download_response, flash, form_data, redirect, render, submit_form,
)
from utils.config import KnownValues
from utils.validation import (
    creation_payload,
    validate_document_review,
    validate_document_upload,
    validate_enrollment_form,
    validate_student_form,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["students"], dependencies=[Depends(require_admin)])


# ── Students ──────────────────────────────────────────────────────────────────

def _student_form(student: Student) -> dict[str, Any]:
    return {
        "nombres": student.first_names,
        "apellidos": student.last_names,
        "correo": student.email or "",
        "telefono": student.phone or "",
        "cedula": student.cedula or "",
        "matricula": student.matricula or "",
        "programaAcademicoId": student.program.program_id if student.program else None,
        "estado": student.estado,
    }


def _student_context(token: str, services: PortalServices, form: dict,
                     editing: Optional[int]) -> dict[str, Any]:
    return {"form": form, "editing": editing,
            "programs": services.active_programs(token)}


@router.get("/estudiantes", response_class=HTMLResponse, include_in_schema=False)
def students_list(
    request: Request,
    estado: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    state = estado if estado in KnownValues.STUDENT_STATES else None
    result = services.students.list(token, estado=state, page=page,
                                    limit=request.app.state.config.page_size)
    return render(request, "students/list.html", {
        "students": result.items,
        "estado": estado or "",
        "page": page,
        "page_count": result.page_count,
        "total": result.total if result.total is not None else len(result.items),
    })


@router.get("/estudiantes/nuevo", response_class=HTMLResponse, include_in_schema=False)
def student_new(
    request: Request,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    return render(request, "students/form.html",
                  _student_context(token, services, {"estado": "REGISTRADO"}, None))


@router.post("/estudiantes", include_in_schema=False)
def student_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_student_form(form)
    return submit_form(
        request, "students/form.html",
        _student_context(token, services, result.payload, None), result,
        lambda: services.students.create(token, creation_payload(result.payload)),
        "/estudiantes", "El estudiante se ha registrado exitosamente",
    )


@router.get("/estudiantes/{student_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def student_edit(
    request: Request,
    student_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    student = services.students.get(token, student_id)
    return render(request, "students/form.html",
                  _student_context(token, services, _student_form(student), student_id))


@router.post("/estudiantes/{student_id}", include_in_schema=False)
def student_update(
    request: Request,
    student_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_student_form(form)
    return submit_form(
        request, "students/form.html",
        _student_context(token, services, result.payload, student_id), result,
        lambda: services.students.update(token, student_id, result.payload),
        "/estudiantes", "El estudiante se ha actualizado exitosamente",
    )


@router.get("/estudiantes/{student_id}", response_class=HTMLResponse,
            include_in_schema=False)
def student_detail(
    request: Request,
    student_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    student = services.students.get(token, student_id)
    return render(request, "students/detail.html", {"student": student})


# ── Documents ─────────────────────────────────────────────────────────────────

def _documents_context(token: str, services: PortalServices, student: Student,
                       estado: Optional[str] = None, **extra: Any) -> dict[str, Any]:
    documents = services.documents.list_for_student(token, student.student_id, estado)
    ctx = {"student": student, "documents": documents, "estado": estado or "",
           "form": {}}
    ctx.update(extra)
    return ctx


@router.get("/estudiantes/{student_id}/documentos", response_class=HTMLResponse,
            include_in_schema=False)
def documents_page(
    request: Request,
    student_id: int,
    estado: Optional[str] = Query(None),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    student = services.students.get(token, student_id)
    state = estado if estado in KnownValues.DOCUMENT_STATES else None
    return render(request, "students/documents.html",
                  _documents_context(token, services, student, state))


@router.post("/estudiantes/{student_id}/documentos", include_in_schema=False)
def document_upload(
    request: Request,
    student_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    student = services.students.get(token, student_id)
    result = validate_document_upload(form)

    def action():
        upload = form.get("file")
        upload.file.seek(0)
        services.documents.upload(token, student_id, result.payload["tipoDocumento"],
                                  upload.filename, upload.file, upload.content_type)

    return submit_form(
        request, "students/documents.html",
        _documents_context(token, services, student, form=result.payload),
        result, action, f"/estudiantes/{student_id}/documentos",
        "El documento se ha subido exitosamente",
    )


@router.post("/estudiantes/{student_id}/documentos/{document_id}/estado",
             include_in_schema=False)
def document_review(
    request: Request,
    student_id: int,
    document_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    student = services.students.get(token, student_id)
    result = validate_document_review(form)
    return submit_form(
        request, "students/documents.html",
        _documents_context(token, services, student, reviewing=document_id),
        result,
        lambda: services.documents.update_status(token, student_id, document_id,
                                                 result.payload),
        f"/estudiantes/{student_id}/documentos",
        "El estado del documento se ha actualizado exitosamente",
    )


@router.get("/estudiantes/{student_id}/documentos/zip", include_in_schema=False)
def documents_zip(
    request: Request,
    student_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    student = services.students.get(token, student_id)
    if not student.matricula:
        flash(request, "No se puede descargar todos los documentos sin matrícula", "warning")
        return redirect(f"/estudiantes/{student_id}/documentos")
    download = services.documents.download_all(token, student.matricula)
    return download_response(download, f"documentos_{student.matricula}.zip")


@router.get("/estudiantes/{student_id}/documentos/{document_id}/descargar",
            include_in_schema=False)
def document_download(
    student_id: int,
    document_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    download = services.documents.download(token, document_id)
    return download_response(download, f"documento_{document_id}")


# ── Enrollments ───────────────────────────────────────────────────────────────

def _enrollment_form(enrollment: Enrollment) -> dict[str, Any]:
    return {
        "estudianteId": enrollment.student_id or (
            enrollment.student.student_id if enrollment.student else None),
        "materiaId": enrollment.subject_id or (
            enrollment.subject.subject_id if enrollment.subject else None),
        "cuatrimestreId": enrollment.quarter_id or (
            enrollment.quarter.quarter_id if enrollment.quarter else None),
        "estado": enrollment.estado,
        "calificacion": enrollment.grade,
    }


def _enrollment_context(token: str, services: PortalServices, form: dict,
                        editing: Optional[int]) -> dict[str, Any]:
    lists = services.fetch_lists(token, {
        "students": lambda: services.all_students(token),
        "subjects": lambda: services.active_subjects(token),
        "quarters": lambda: services.active_quarters(token),
    })
    return {"form": form, "editing": editing, **lists}


@router.get("/inscripciones", response_class=HTMLResponse, include_in_schema=False)
def enrollments_list(
    request: Request,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    page = services.enrollments.list(token)
    return render(request, "enrollments/list.html", {"enrollments": page.items})


@router.get("/inscripciones/historial", response_class=HTMLResponse,
            include_in_schema=False)
def enrollment_history(
    request: Request,
    matricula: str = Query(""),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    matricula = matricula.strip()
    history = services.enrollments.history(token, matricula) if matricula else []
    return render(request, "enrollments/history.html",
                  {"matricula": matricula, "history": history})


@router.get("/inscripciones/nuevo", response_class=HTMLResponse, include_in_schema=False)
def enrollment_new(
    request: Request,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    return render(request, "enrollments/form.html",
                  _enrollment_context(token, services, {"estado": "APROBADA"}, None))


@router.post("/inscripciones", include_in_schema=False)
def enrollment_create(
    request: Request,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_enrollment_form(form)
    # Enrollments are created with an explicit result state
    return submit_form(
        request, "enrollments/form.html",
        _enrollment_context(token, services, result.payload, None), result,
        lambda: services.enrollments.create(token, result.payload),
        "/inscripciones", "Inscripción creada exitosamente",
    )


@router.get("/inscripciones/{enrollment_id}/editar", response_class=HTMLResponse,
            include_in_schema=False)
def enrollment_edit(
    request: Request,
    enrollment_id: int,
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> HTMLResponse:
    enrollment = services.enrollments.get(token, enrollment_id)
    return render(request, "enrollments/form.html",
                  _enrollment_context(token, services, _enrollment_form(enrollment),
                                      enrollment_id))


@router.post("/inscripciones/{enrollment_id}", include_in_schema=False)
def enrollment_update(
    request: Request,
    enrollment_id: int,
    form: FormData = Depends(form_data),
    token: str = Depends(current_token),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_enrollment_form(form)
    return submit_form(
        request, "enrollments/form.html",
        _enrollment_context(token, services, result.payload, enrollment_id), result,
        lambda: services.enrollments.update(token, enrollment_id, result.payload),
        "/inscripciones", "Inscripción actualizada exitosamente",
    )
