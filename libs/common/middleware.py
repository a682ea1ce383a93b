"""Request tracing middleware for the wallet API.

Every request gets an X-Request-ID (propagated when the caller sends one),
a start/finish log line with duration, and a cleared context afterwards.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

_QUIET_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in _QUIET_PATHS
        start_time = time.perf_counter()

        if not quiet:
            logger.info("%s %s started", request.method, request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s failed after %.2fms",
                request.method,
                request.url.path,
                (time.perf_counter() - start_time) * 1000,
            )
            raise
        finally:
            clear_request_context()

        if not quiet:
            duration_ms = (time.perf_counter() - start_time) * 1000
            log = logger.warning if response.status_code >= 400 else logger.info
            log(
                "%s %s -> %d (%.2fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "extra_fields": {
                        "status_code": response.status_code,
                        "duration_ms": round(duration_ms, 2),
                    }
                },
            )

        response.headers["X-Request-ID"] = request_id
        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request context middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Observability middleware initialized")
