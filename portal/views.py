"""
Template rendering helpers shared by the HTML routes.

The Jinja2Templates instance is created by create_app() and injected with
set_templates(); routes render through render() so every page gets the
logged-in user and the pending flash notifications.
"""

from __future__ import annotations

import logging
from typing import Any, Callable
from urllib.parse import quote

from fastapi import Request
from starlette.datastructures import FormData
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from portal.auth import session_user
from utils.http import ApiError, Download, describe_api_error
from utils.validation import ValidationResult

logger = logging.getLogger(__name__)

FLASH_KEY = "_flashes"
FLASH_CATEGORIES = ("success", "error", "warning", "info")

# Templates instance is set by create_app() after mounting.
_templates: Jinja2Templates | None = None


def set_templates(t: Jinja2Templates) -> None:
    global _templates
    _templates = t


def _tmpl() -> Jinja2Templates:
    if _templates is None:
        raise RuntimeError("Templates not initialised, call set_templates() first")
    return _templates


def flash(request: Request, message: str, category: str = "success") -> None:
    """Queue a one-time notification for the next rendered page."""
    if category not in FLASH_CATEGORIES:
        category = "info"
    flashes = list(request.session.get(FLASH_KEY, []))
    flashes.append({"category": category, "message": message})
    request.session[FLASH_KEY] = flashes


def pop_flashes(request: Request) -> list[dict[str, str]]:
    return request.session.pop(FLASH_KEY, [])


def render(request: Request, name: str, context: dict[str, Any] | None = None,
           status_code: int = 200) -> HTMLResponse:
    ctx = {
        "user": session_user(request),
        "flashes": pop_flashes(request),
        "active_path": request.url.path,
    }
    ctx.update(context or {})
    return _tmpl().TemplateResponse(request, name, ctx, status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    """303 so the browser follows a POST with a GET."""
    return RedirectResponse(url, status_code=303)


def render_form(request: Request, name: str, context: dict[str, Any],
                result: ValidationResult | None = None,
                error: str | None = None) -> HTMLResponse:
    """Re-render a form after a failed submission.

    Validation problems answer 422, backend rejections 400.
    """
    ctx = dict(context)
    ctx["errors"] = result.messages if result is not None else []
    ctx["error"] = error
    return render(request, name, ctx, status_code=422 if result is not None else 400)


async def form_data(request: Request) -> FormData:
    """Parsed request body; lets sync routes receive the form."""
    return await request.form()


def submit_form(request: Request, template: str, context: dict[str, Any],
                result: ValidationResult, action: Callable[[], Any],
                success_url: str, success_message: str) -> Response:
    """Validate-call-redirect flow shared by every create/update form.

    A 401 from the backend propagates so the app-level handler can end
    the session.
    """
    if not result.ok:
        return render_form(request, template, context, result=result)
    try:
        action()
    except ApiError as exc:
        if exc.status == 401:
            raise
        logger.info("form_rejected template=%s status=%d message=%s",
                    template, exc.status, exc.message)
        return render_form(request, template, context, error=describe_api_error(exc))
    flash(request, success_message, "success")
    return redirect(success_url)


def download_response(download: Download, fallback_name: str,
                      inline: bool = False) -> Response:
    """Stream bytes fetched from the API back to the browser."""
    filename = download.filename or fallback_name
    disposition = "inline" if inline else "attachment"
    return Response(
        content=download.content,
        media_type=download.content_type,
        headers={"Content-Disposition": f"{disposition}; filename*=UTF-8''{quote(filename)}"},
    )
