from __future__ import annotations

from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


@dataclass
class RequestContext:
    """Per-request facts copied onto audit rows."""

    correlation_id: str
    user_id: str | None
    ip_address: str | None
    user_agent: str | None

    @classmethod
    def from_request(cls, request: Request) -> RequestContext:
        forwarded_for = request.headers.get("x-forwarded-for", "")
        ip_address = forwarded_for.split(",")[0].strip() or None
        if ip_address is None and request.client is not None:
            ip_address = request.client.host
        return cls(
            correlation_id=getattr(request.state, "correlation_id", None) or "",
            user_id=None,
            ip_address=ip_address,
            user_agent=request.headers.get("user-agent"),
        )


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        request.state.context = RequestContext.from_request(request)
        return await call_next(request)


def get_request_context(request: Request) -> RequestContext:
    context = getattr(request.state, "context", None)
    if context is None:
        context = RequestContext.from_request(request)
        request.state.context = context
    return context
