from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

api_errors_total = Counter(
    "api_errors_total",
    "Total error responses by error code",
    ["code"],
)

scope_denied_total = Counter(
    "scope_denied_total",
    "Total requests denied by the scope resolver",
    ["resource", "decision"],
)

sequence_numbers_issued_total = Counter(
    "sequence_numbers_issued_total",
    "Total ticket and claim numbers issued",
    ["sequence"],
)


_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")
_UUID_RE = re.compile(r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}")


def resolve_http_path_label(request: Request) -> str:
    """Route template with every parameter shown as ``{id}``; raw paths only with ids masked."""

    route = request.scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    if isinstance(template, str) and template:
        return _PATH_PARAM_RE.sub("{id}", template)
    return _UUID_RE.sub("{id}", request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_api_error(code: str) -> None:
    api_errors_total.labels(code=code).inc()


def observe_scope_denied(resource: str, decision: str) -> None:
    scope_denied_total.labels(resource=resource, decision=decision).inc()


def observe_sequence_issued(sequence: str) -> None:
    sequence_numbers_issued_total.labels(sequence=sequence).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
