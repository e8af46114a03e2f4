"""
Request middleware: correlation id, access log, timeout and route metrics.
"""
import asyncio
import time
from typing import Callable, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from storepulse.observability import (
    generate_correlation_id,
    get_logger,
    log_context,
    metrics,
    set_correlation_id,
)
from web.config import REQUEST_TIMEOUT, SLOW_REQUEST_TIMEOUT

logger = get_logger(__name__)

# Not access-logged and never timed out
QUIET_PATHS = ("/api/health", "/openapi.json")

DEFAULT_SLOW_PATHS = {"/api/success": SLOW_REQUEST_TIMEOUT}


def route_template(request: Request) -> str:
    """
    Matched route path with its placeholders, e.g. /api/stores/{store_id}.

    Falls back to the raw path when no route matched (404s).
    """
    path = request.url.path
    template = getattr(request.scope.get("route"), "path", None)
    if not template:
        return path

    # Routes of a prefixed router may report their path without the prefix
    path_parts = path.rstrip("/").split("/")
    template_parts = template.rstrip("/").split("/")
    missing = len(path_parts) - len(template_parts)
    if missing > 0:
        return "/".join(path_parts[:missing + 1] + template_parts[1:])
    return template


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per request:
    - adopt X-Request-ID or generate a correlation id, echoed in the response
    - bind method and path to every log line emitted while serving it
    - cut it off with 504 after its timeout
    - count it and its duration under "METHOD /route/{template}"
    """

    def __init__(
        self,
        app: ASGIApp,
        timeout: float = REQUEST_TIMEOUT,
        slow_paths: Optional[Dict[str, float]] = None,
    ):
        super().__init__(app)
        self.timeout = timeout
        self.slow_paths = DEFAULT_SLOW_PATHS if slow_paths is None else slow_paths

    def _is_quiet(self, path: str) -> bool:
        return path in QUIET_PATHS or path.startswith("/docs")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Request-ID") or generate_correlation_id()
        set_correlation_id(correlation_id)

        method, path = request.method, request.url.path
        quiet = self._is_quiet(path)
        timeout = self.slow_paths.get(path, self.timeout)
        started = time.perf_counter()

        with log_context(method=method, path=path):
            if not quiet:
                logger.info(
                    f"{method} {path} started",
                    extra={"client_ip": request.client.host if request.client else "unknown"},
                )

            try:
                if quiet:
                    response = await call_next(request)
                else:
                    response = await asyncio.wait_for(call_next(request), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"{method} {path} timed out", extra={"timeout": timeout})
                metrics.record_error("REQUEST_TIMEOUT")
                response = JSONResponse(
                    status_code=504,
                    content={
                        "error": "Request Timeout",
                        "detail": f"Request exceeded {timeout}s timeout",
                        "path": path,
                        "correlation_id": correlation_id,
                    },
                )
            except Exception as e:
                logger.error(f"{method} {path} failed: {e}")
                metrics.record_error(type(e).__name__)
                raise

            duration_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = correlation_id
            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

            if not quiet:
                log = logger.info if response.status_code < 400 else logger.warning
                log(
                    f"{method} {path} -> {response.status_code}",
                    extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 2)},
                )

        endpoint = f"{method} {route_template(request)}"
        metrics.record_request(endpoint)
        metrics.record_timing(endpoint, duration_ms)
        if response.status_code >= 400:
            metrics.record_error(f"HTTP_{response.status_code}")

        return response
