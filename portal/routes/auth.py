"""
Login, registration and logout.

Routes:
    GET  /login       → login.html
    POST /login       → store token in session, redirect to /
    GET  /register    → register.html
    POST /register    → create the account, redirect to /login
    GET  /logout      → clear session, redirect to /login
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, Response
from starlette.datastructures import FormData

from portal.auth import get_services, login_user, logout_user, register_user, session_user
from portal.services import PortalServices
from portal.views import flash, form_data, redirect, render, render_form
from utils.validation import validate_register_form

router = APIRouter(tags=["auth"])

ROLE_CHOICES = [(1, "Administrador"), (2, "Usuario"), (3, "Cliente")]


@router.get("/login", response_class=HTMLResponse, include_in_schema=False)
def login_page(request: Request) -> Response:
    if session_user(request) is not None:
        return redirect("/")
    return render(request, "login.html", {"form": {}})


@router.post("/login", include_in_schema=False)
def login_submit(
    request: Request,
    form: FormData = Depends(form_data),
    services: PortalServices = Depends(get_services),
) -> Response:
    correo = str(form.get("correo") or "").strip()
    clave = str(form.get("clave") or "")
    if login_user(request, services, correo, clave):
        return redirect("/")
    return render(request, "login.html",
                  {"form": {"correo": correo}, "error": "Credenciales incorrectas"},
                  status_code=400)


@router.get("/register", response_class=HTMLResponse, include_in_schema=False)
def register_page(request: Request) -> Response:
    return render(request, "register.html", {"form": {}, "roles": ROLE_CHOICES})


@router.post("/register", include_in_schema=False)
def register_submit(
    request: Request,
    form: FormData = Depends(form_data),
    services: PortalServices = Depends(get_services),
) -> Response:
    result = validate_register_form(form)
    context = {"form": {**result.payload, "clave": ""}, "roles": ROLE_CHOICES}
    if not result.ok:
        return render_form(request, "register.html", context, result=result)
    p = result.payload
    if not register_user(services, p["nombre"], p["correo"], p["clave"], p["rolId"]):
        return render_form(request, "register.html", context,
                           error="Error al registrar usuario")
    flash(request, "Usuario registrado exitosamente. Ahora puedes iniciar sesión.")
    return redirect("/login")


@router.get("/logout", include_in_schema=False)
def logout(request: Request) -> Response:
    logout_user(request)
    flash(request, "Sesión cerrada correctamente.", "info")
    return redirect("/login")
