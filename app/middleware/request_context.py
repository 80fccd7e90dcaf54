"""Request context middleware: request ID, correlation ID and acting user.

RequestIDMiddleware generates or forwards X-Request-ID, CorrelationIDMiddleware
forwards X-Correlation-ID (falling back to the request ID), and
ActorContextMiddleware reads the acting user id set by the authenticating
gateway into the actor context used by the audit trail. Requests without
the header run as SYSTEM.

Client-provided values are sanitized (length + character set) to prevent log
injection. Raw ASGI (no BaseHTTPMiddleware) so context variables set here are
visible to the route handler.
"""

import logging
import re
import uuid
from typing import Callable

from app.shared.context import clear_current_user, set_current_user
from app.shared.enums import ActorType

logger = logging.getLogger(__name__)

# Safe for logging: alphanumeric, hyphen, underscore; max length to avoid abuse.
HEADER_ID_MAX_LENGTH = 64
HEADER_ID_ALLOWED_PATTERN = re.compile(
    r"^[a-zA-Z0-9_-]{1," + str(HEADER_ID_MAX_LENGTH) + r"}$"
)


def _get_header(scope: dict, name: str) -> str | None:
    """Return first header value for name (case-insensitive). Headers are (bytes, bytes)."""
    want = name.lower().encode()
    for k, v in scope.get("headers", []):
        if k.lower() == want:
            return v.decode("utf-8", errors="replace")
    return None


def _clean_id(raw: str | None) -> str | None:
    """Return the stripped value if it is a safe identifier, else None."""
    if not raw or not HEADER_ID_ALLOWED_PATTERN.match(raw.strip()):
        return None
    return raw.strip()


def _with_response_header(send: Callable, header_name: str, value: str) -> Callable:
    async def send_wrapper(message: dict) -> None:
        if message["type"] == "http.response.start":
            headers = list(message.get("headers", []))
            headers.append((header_name.encode(), value.encode()))
            message["headers"] = headers
        await send(message)

    return send_wrapper


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Add or forward X-Request-ID on each request and response. Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        request_id = _clean_id(_get_header(scope, header_name)) or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id
        await app(scope, receive, _with_response_header(send, header_name, request_id))

    return asgi_app


def CorrelationIDMiddleware(
    app: Callable, header_name: str = "X-Correlation-ID"
) -> Callable:
    """Forward X-Correlation-ID; fall back to the request ID, then a new UUID. Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        correlation_id = (
            _clean_id(_get_header(scope, header_name))
            or scope.get("state", {}).get("request_id")
            or str(uuid.uuid4())
        )
        scope.setdefault("state", {})["correlation_id"] = correlation_id
        await app(scope, receive, _with_response_header(send, header_name, correlation_id))

    return asgi_app


def ActorContextMiddleware(app: Callable, header_name: str = "X-User-ID") -> Callable:
    """Set the actor context from the gateway's user header for the request. Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        raw = _get_header(scope, header_name)
        user_id = _clean_id(raw)
        if raw and user_id is None:
            logger.warning("Ignoring malformed %s header", header_name)
        client = scope.get("client")
        set_current_user(
            user_id=user_id,
            actor_type=ActorType.USER if user_id else ActorType.SYSTEM,
            ip_address=client[0] if client else None,
            user_agent=_get_header(scope, "user-agent"),
            request_id=scope.get("state", {}).get("request_id"),
        )
        try:
            await app(scope, receive, send)
        finally:
            clear_current_user()

    return asgi_app
