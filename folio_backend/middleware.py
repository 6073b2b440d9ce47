"""WSGI middleware for bearer-token authentication and request metrics."""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Protocol

USER_ID_KEY = "folio_backend.user_id"
ROUTE_KEY = "folio_backend.route"

WSGIApp = Callable[[dict, Callable[..., Any]], Iterable[bytes]]


class TokenValidator(Protocol):
    def validate_token(self, access_token: str) -> str: ...


class RequestMetrics(Protocol):
    def record_http_duration(self, method: str, path: str, status: int, duration: float) -> None: ...

    def increment_http_requests(self, method: str, path: str, status: int) -> None: ...


def _json_error(start_response: Callable[..., Any], status: str, message: str) -> list[bytes]:
    body = json.dumps({"error": message}, separators=(",", ":")).encode("utf-8")
    start_response(status, [
        ("Content-Type", "application/json; charset=utf-8"),
        ("Content-Length", str(len(body))),
    ])
    return [body]


class AuthMiddleware:
    """Rejects requests without a valid bearer token.

    On success the user ID is stored in the WSGI environ under ``USER_ID_KEY``.
    """

    def __init__(self, app: WSGIApp, auth_provider: TokenValidator) -> None:
        self.app = app
        self.auth_provider = auth_provider

    def __call__(self, environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        unauthorized = "401 Unauthorized"
        header = environ.get("HTTP_AUTHORIZATION", "")
        if not header:
            return _json_error(start_response, unauthorized, "missing authorization header")

        parts = header.split(" ", 1)
        if len(parts) != 2 or parts[0] != "Bearer":
            return _json_error(start_response, unauthorized,
                               "invalid authorization header format, expected 'Bearer <token>'")

        access_token = parts[1]
        if not access_token:
            return _json_error(start_response, unauthorized, "missing access token")

        try:
            user_id = self.auth_provider.validate_token(access_token)
        except Exception:
            return _json_error(start_response, unauthorized, "invalid or expired token")

        environ[USER_ID_KEY] = user_id
        return self.app(environ, start_response)


class _ObservedBody:
    """Response body that runs a callback once, when the server closes it."""

    def __init__(self, body: Iterable[bytes], on_close: Callable[[], None]) -> None:
        self._body = body
        self._on_close = on_close
        self._closed = False

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._body)

    def close(self) -> None:
        try:
            close = getattr(self._body, "close", None)
            if close is not None:
                close()
        finally:
            if not self._closed:
                self._closed = True
                self._on_close()


class MetricsMiddleware:
    """Records the duration and count of every completed request.

    The path label is the route template the application stores under
    ``ROUTE_KEY`` in the environ, or the raw path when it stores none.
    """

    def __init__(self, app: WSGIApp, metrics: RequestMetrics) -> None:
        self.app = app
        self.metrics = metrics

    def __call__(self, environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        start = time.perf_counter()
        status = 200

        def capture(status_line: str, headers: list, exc_info: Any = None) -> Any:
            nonlocal status
            status = int(status_line.split(" ", 1)[0])
            if exc_info is None:
                return start_response(status_line, headers)
            return start_response(status_line, headers, exc_info)

        def record() -> None:
            duration = time.perf_counter() - start
            method = environ.get("REQUEST_METHOD", "GET")
            path = environ.get(ROUTE_KEY, environ.get("PATH_INFO", ""))
            self.metrics.record_http_duration(method, path, status, duration)
            self.metrics.increment_http_requests(method, path, status)

        body = self.app(environ, capture)
        return _ObservedBody(body, record)