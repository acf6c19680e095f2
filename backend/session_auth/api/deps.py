"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from session_auth.api.auth_gate import AuthenticatedIdentity, AuthenticationGate
from session_auth.core.container import services

F = TypeVar("F", bound=Callable[..., Any])


def require_auth(func: F) -> F:
    """Ensure the request carries a valid Bearer access token.

    On success the caller is available as ``g.identity``.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        gate = AuthenticationGate(services().access_tokens)
        g.identity = gate.authenticate(request.headers.get("Authorization"))
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_identity() -> AuthenticatedIdentity:
    """Return the identity attached by :func:`require_auth`."""

    return cast(AuthenticatedIdentity, g.identity)


def json_body() -> dict[str, Any]:
    """Return the JSON request body, or ``{}`` when absent or not an object."""

    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def no_content() -> Response:
    """Return an empty ``204 No Content`` response."""

    return Response(status=204)


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
