"""
FastAPI application factory for the academic portal.

Usage:
    python -m portal.app                   # Dev server on port 3000
    PORTAL_API_BASE_URL=http://api:8000/internal python -m portal.app

The portal renders Jinja2 pages on the server and talks to the academic
REST API through portal.services; the bearer token never leaves the
signed session cookie.

Structured JSON logging is enabled with APP_LOG_FORMAT=json.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from portal import views
from portal.auth import AdminRequired, LoginRequired, logout_user
from portal.routes import academics, auth, dashboard, events, library, students, unicda
from portal.services import PortalServices
from utils import formatting
from utils.config import AppConfig, KnownValues
from utils.http import ApiClient, ApiError, describe_api_error

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("academic_portal")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)

SLOW_REQUEST_MS = 1000

_here = Path(__file__).parent.parent  # project root

_FILTERS = {
    "estado_label": formatting.estado_label,
    "estado_badge": formatting.estado_badge,
    "student_state_label": formatting.student_state_label,
    "student_state_badge": formatting.student_state_badge,
    "document_type_label": formatting.document_type_label,
    "document_state_label": formatting.document_state_label,
    "document_state_badge": formatting.document_state_badge,
    "enrollment_state_label": formatting.enrollment_state_label,
    "datetime": formatting.format_datetime,
    "date": formatting.format_date,
    "datetime_local": formatting.to_datetime_local,
    "percent": formatting.format_percent,
    "count": formatting.format_count,
    "grade": formatting.format_grade,
    "initials": formatting.initials,
    "truncate_text": formatting.truncate,
}


def _build_templates(templates_dir: Path) -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(templates_dir))
    templates.env.filters.update(_FILTERS)
    templates.env.globals["known"] = KnownValues
    return templates


def create_app(config: AppConfig | None = None,
               services: PortalServices | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings to use instead of the environment (tests).
        services: Pre-built service layer, e.g. one over a fake ApiClient.

    Returns:
        Configured FastAPI application instance.
    """
    cfg = config or _cfg
    if services is None:
        client = ApiClient(cfg.api_base_url, timeout=cfg.api_timeout)
        services = PortalServices(client, options_ttl=cfg.options_ttl)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _logger.info("startup config=%s", cfg.to_dict())
        yield
        app.state.services.close()

    app = FastAPI(
        title="Sistema Académico ITLA",
        summary="Portal web de gestión académica sobre la API REST institucional.",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = cfg
    app.state.services = services

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with a short request id for tracing."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, path, response.status_code, duration_ms, request_id,
            )
        if duration_ms > SLOW_REQUEST_MS:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Content Security Policy + security headers ────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Add Content-Security-Policy, X-Content-Type-Options, and X-Frame-Options."""
        response = await call_next(request)
        # Book covers and UNICDA images are hotlinked from external hosts.
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: https: http:; "
            "font-src 'self'; "
            "frame-src 'self'; "
            "connect-src 'self';"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Same-origin framing is needed by the PDF viewer
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        return response

    app.add_middleware(
        SessionMiddleware,
        secret_key=cfg.session_secret,
        session_cookie="portal_session",
        same_site="lax",
    )

    # ── Static files + Jinja2 templates ───────────────────────────────────────

    static_dir = _here / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    templates = _build_templates(_here / "templates")
    views.set_templates(templates)

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        return RedirectResponse("/login", status_code=303)

    @app.exception_handler(AdminRequired)
    async def admin_required_handler(request: Request, exc: AdminRequired):
        return views.render(request, "restricted.html",
                            {"role_label": exc.user.role_label}, status_code=403)

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        """401 ends the session; anything else becomes an error page."""
        if exc.status == 401:
            _logger.info("session_expired path=%s", request.url.path)
            logout_user(request)
            views.flash(request, describe_api_error(exc), "warning")
            return RedirectResponse("/login", status_code=303)
        status = exc.status if 400 <= exc.status < 600 else 502
        return views.render(
            request, "error.html",
            {"status_code": status, "message": describe_api_error(exc)},
            status_code=status,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = "Página no encontrada." if exc.status_code == 404 else str(exc.detail)
        return views.render(
            request, "error.html",
            {"status_code": exc.status_code, "message": message},
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Unhandled errors; runs outside the session middleware."""
        _logger.exception("unhandled_error path=%s", request.url.path)
        return templates.TemplateResponse(
            request, "error.html",
            {"status_code": 500, "user": None, "flashes": [],
             "message": "Error interno del servidor. Contacta al administrador."},
            status_code=500,
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", include_in_schema=False)
    def health():
        """Return 200 OK if the portal is running, with option cache counters."""
        return {
            "status": "ok",
            "api_base_url": cfg.api_base_url,
            "options_cache": app.state.services.options_cache.stats(),
        }

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon():
        return HTMLResponse(status_code=204)

    # ── Register routers ──────────────────────────────────────────────────────

    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(students.router)
    app.include_router(academics.router)
    app.include_router(events.router)
    app.include_router(library.router)
    app.include_router(unicda.router)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "portal.app:app",
        host=_cfg.app_host,
        port=_cfg.app_port,
        reload=True,
        log_level="info",
    )
