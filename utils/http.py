"""HTTP utilities for talking to the academic REST API.

Provides reusable pieces for:
- HTTP requests with retry logic and connection pooling
- A JSON/multipart request helper that attaches the bearer token
- Typed error translation (ApiError) and user-facing error messages
- Binary downloads (books, student documents, ZIP bundles)
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional, Dict, List, Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry as URLRetry

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = (
    "Error de conexión con el servidor. Verifica tu conexión a internet."
)

_STATUS_MESSAGES: Dict[int, str] = {
    400: "Datos inválidos. Verifica la información ingresada.",
    401: "Sesión expirada. Por favor, inicia sesión nuevamente.",
    403: "No tienes permisos para realizar esta acción.",
    404: "Recurso no encontrado.",
    409: "Conflicto: El recurso ya existe o está en uso.",
    422: "Datos no válidos. Verifica los campos requeridos.",
    500: "Error interno del servidor. Contacta al administrador.",
}

_FILENAME_RE = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


class ApiError(Exception):
    """Error returned by (or while reaching) the academic API.

    ``status`` is the HTTP status code, or ``0`` when the server could not
    be reached or answered with an unreadable body.  ``response`` keeps the raw body text for logging.
    """

    def __init__(self, message: str, status: int, response: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.response = response

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, message={self.message!r})"


class RetryStrategy:
    """Defines retry behavior for HTTP requests."""

    def __init__(self, max_retries: int = 3, backoff_factor: float = 0.5,
                 status_forcelist: Optional[List[int]] = None):
        """Initialize retry strategy.

        Args:
            max_retries: Maximum number of retry attempts (default: 3)
            backoff_factor: Exponential backoff multiplier (default: 0.5)
            status_forcelist: HTTP status codes to retry on
                            (default: [429, 500, 502, 503, 504])
        """
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.status_forcelist = status_forcelist or [429, 500, 502, 503, 504]

    def get_retry_object(self) -> URLRetry:
        """Get urllib3 Retry object configured with this strategy.

        Only idempotent reads are retried; a POST that reached the server
        must never be replayed.  ``raise_on_status`` is off so the final
        response is handed back and translated into an ApiError.

        Returns:
            urllib3.util.retry.Retry object
        """
        return URLRetry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=self.status_forcelist,
            allowed_methods=["GET", "HEAD"],
            raise_on_status=False,
        )


class SessionManager:
    """Manages HTTP sessions with connection pooling and retries."""

    def __init__(self, retry_strategy: Optional[RetryStrategy] = None,
                 pool_connections: int = 10, pool_maxsize: int = 20):
        """Initialize session manager.

        Args:
            retry_strategy: RetryStrategy to use (default: standard strategy)
            pool_connections: Number of connection pools to cache
            pool_maxsize: Maximum number of connections per pool
        """
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.pool_connections = pool_connections
        self.pool_maxsize = pool_maxsize
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Get or create HTTP session with retries and pooling.

        Returns:
            requests.Session object
        """
        if self._session is None:
            self._session = requests.Session()

            retry = self.retry_strategy.get_retry_object()
            adapter = HTTPAdapter(
                max_retries=retry,
                pool_connections=self.pool_connections,
                pool_maxsize=self.pool_maxsize
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)

        return self._session

    def close(self) -> None:
        """Close the session and release resources."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


@dataclass
class Download:
    """Binary payload fetched from the API."""

    content: bytes
    content_type: str = "application/octet-stream"
    filename: Optional[str] = None


def _error_message(status: int, body: str) -> str:
    """Pick the most useful message out of an error body."""
    message = f"Error {status}"
    try:
        payload = json.loads(body)
    except (ValueError, TypeError):
        return body or message
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return message


def _filename_from_headers(headers) -> Optional[str]:
    disposition = headers.get("content-disposition", "")
    match = _FILENAME_RE.search(disposition)
    return match.group(1) if match else None


class ApiClient:
    """Thin wrapper around requests for the academic REST API.

    Usage::

        client = ApiClient("http://127.0.0.1:8000/internal")
        body = client.get("/libro", token=token, params={"estado": "AC"})
        books = body["data"]
    """

    def __init__(self, base_url: str, timeout: float = 30.0,
                 session_manager: Optional[SessionManager] = None):
        """Initialize the client.

        Args:
            base_url: API root, e.g. http://127.0.0.1:8000/internal
            timeout: Per-request timeout in seconds
            session_manager: Optional shared SessionManager
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session_manager = session_manager or SessionManager()

    def url_for(self, path: str) -> str:
        """Join *path* onto the base URL."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method: str, path: str, *, token: Optional[str] = None,
                json: Any = None, data: Optional[Dict[str, Any]] = None,
                files: Optional[Dict[str, Any]] = None,
                params: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and decode the response.

        Args:
            method: HTTP verb
            path: Path relative to the base URL
            token: Bearer token to attach, if any
            json: JSON body
            data: Form fields (sent as multipart together with *files*)
            files: Files for a multipart body
            params: Query parameters; ``None`` values are dropped

        Returns:
            Parsed JSON, response text, or ``None`` for 204 No Content

        Raises:
            ApiError: On a non-2xx status or when the server is unreachable
        """
        headers: Dict[str, str] = {}
        # requests writes the multipart boundary header itself
        if files is None:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}

        url = self.url_for(path)
        start = time.monotonic()
        try:
            resp = self.session_manager.session.request(
                method, url, headers=headers, json=json, data=data,
                files=files, params=params or None, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("api_unreachable method=%s url=%s error=%s",
                           method, url, exc)
            raise ApiError(CONNECTION_ERROR_MESSAGE, 0) from exc

        logger.debug("api method=%s url=%s status=%d duration_ms=%.1f",
                     method, url, resp.status_code,
                     (time.monotonic() - start) * 1000)

        if not resp.ok:
            body = resp.text
            logger.info("api_error method=%s url=%s status=%d",
                        method, url, resp.status_code)
            raise ApiError(_error_message(resp.status_code, body),
                           resp.status_code, body)

        if resp.status_code == 204:
            return None

        content_type = resp.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return resp.json()
            except ValueError as exc:
                # Unparseable success bodies are reported like an unreachable API
                logger.warning("api_invalid_json method=%s url=%s status=%d",
                               method, url, resp.status_code)
                raise ApiError(CONNECTION_ERROR_MESSAGE, 0, resp.text) from exc
        return resp.text

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        return self.request("POST", path, **kwargs)

    def patch(self, path: str, **kwargs) -> Any:
        return self.request("PATCH", path, **kwargs)

    def download(self, path: str, *, token: str,
                 error_message: str = "Error al descargar archivo") -> Download:
        """Fetch a binary resource.

        Args:
            path: Path relative to the base URL
            token: Bearer token
            error_message: Message for the ApiError raised on failure

        Returns:
            Download with the raw bytes and content metadata
        """
        url = self.url_for(path)
        try:
            resp = self.session_manager.session.get(
                url, headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("api_unreachable method=GET url=%s error=%s", url, exc)
            raise ApiError(CONNECTION_ERROR_MESSAGE, 0) from exc

        if not resp.ok:
            raise ApiError(error_message, resp.status_code, resp.text)

        return Download(
            content=resp.content,
            content_type=resp.headers.get("content-type", "application/octet-stream"),
            filename=_filename_from_headers(resp.headers),
        )

    def close(self) -> None:
        self.session_manager.close()


def describe_api_error(error: BaseException) -> str:
    """Translate an exception into a message suitable for the UI.

    Args:
        error: Exception raised while talking to the API

    Returns:
        Spanish, user-facing message
    """
    if isinstance(error, ApiError):
        if error.status in _STATUS_MESSAGES:
            return _STATUS_MESSAGES[error.status]
        return error.message or "Error desconocido del servidor."
    if isinstance(error, Exception) and str(error):
        return str(error)
    return "Error desconocido. Intenta nuevamente."
