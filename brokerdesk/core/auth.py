from dataclasses import dataclass

from jose import ExpiredSignatureError, JWTError, jwt
from starlette.requests import Request

from brokerdesk.context import set_user_id
from brokerdesk.core.config import get_settings
from brokerdesk.core.errors import UnauthenticatedError


@dataclass
class AuthUser:
    sub: str
    source: str


def extract_token(request: Request) -> tuple[str, str] | None:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        return (token, "bearer") if token else None

    cookie = request.cookies.get(get_settings().session_cookie_name)
    if cookie:
        return cookie, "cookie"
    return None


def _bind_subject(request: Request, subject: str) -> None:
    context = getattr(request.state, "context", None)
    if context is not None:
        context.user_id = subject
    set_user_id(subject)


async def get_current_user(request: Request) -> AuthUser:
    settings = get_settings()
    extracted = extract_token(request)

    if extracted is None:
        if settings.test_identity_enabled:
            subject = str(settings.auth_test_user_id)
            _bind_subject(request, subject)
            return AuthUser(sub=subject, source="test")
        raise UnauthenticatedError("Authentication required")

    token, source = extracted
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise UnauthenticatedError("Session expired") from exc
    except JWTError as exc:
        raise UnauthenticatedError("Invalid session token") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise UnauthenticatedError("Invalid session token")

    _bind_subject(request, subject)
    return AuthUser(sub=subject, source=source)
