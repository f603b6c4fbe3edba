from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from brokerdesk.metrics import observe_http_request, resolve_http_path_label


logger = logging.getLogger("brokerdesk.request")


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One ``http.request`` record per request, labelled by route template."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception:
            logger.error(
                "http.error",
                exc_info=True,
                extra={"method": request.method, "path": resolve_http_path_label(request), "status_code": 500},
            )
            raise
        finally:
            # the route template is only known after routing ran
            path = resolve_http_path_label(request)
            duration_ms = _elapsed_ms(started)
            observe_http_request(method=request.method, path=path, status=status_code, duration=duration_ms / 1000)
            logger.log(
                logging.ERROR if status_code >= 500 else logging.INFO,
                "http.request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )
