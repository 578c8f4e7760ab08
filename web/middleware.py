"""
web/middleware.py -- Request-wrapping functions and the composer that chains them.

A Handler is an async callable taking a Starlette Request and returning a
Response. A Middleware takes a Handler and returns a new Handler that either
delegates to it or answers the request itself (intercepts).

These are per-route wrappers, not ASGI middleware: each route group picks its
own chain, e.g.

    compose(home, recoverer(log, "/error"), log_requests(log), cors(config),
            authenticate(session, "/login"))

Order matters. compose() makes the first middleware the outermost layer: it
sees the request first and the response last. The recoverer must therefore be
listed first so that a fault raised anywhere inside the chain is converted to
a response before it reaches the server.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from auth.session import Session

Handler = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Handler], Handler]

# request.state attribute holding the CORS headers of the current request.
_CORS_HEADERS = "cors_headers"


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def compose(handler: Handler, *middleware: Middleware) -> Handler:
    """Wrap handler so that middleware[0] is the outermost layer.

    compose(h) returns h itself.
    """
    for wrap in reversed(middleware):
        handler = wrap(handler)
    return handler


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CORSConfig:
    """Fixed CORS header values attached to every response."""

    allowed_origin: str = "*"
    allowed_methods: str = "GET, POST, OPTIONS"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allowed_origin,
            "Access-Control-Allow-Methods": self.allowed_methods,
        }


def cors(config: CORSConfig) -> Middleware:
    """Attach the configured CORS headers; answer OPTIONS pre-flights with 204.

    The headers are also recorded on request.state before delegating, so an
    outer recoverer can put them on the response it builds after a fault.
    """

    def middleware(handler: Handler) -> Handler:
        async def with_cors(request: Request) -> Response:
            setattr(request.state, _CORS_HEADERS, config.headers)
            if request.method == "OPTIONS":
                response: Response = Response(status_code=204)
            else:
                response = await handler(request)
            response.headers.update(config.headers)
            return response

        return with_cors

    return middleware


# ---------------------------------------------------------------------------
# Access logging
# ---------------------------------------------------------------------------


def log_requests(logger: logging.Logger) -> Middleware:
    """Log method, path, status and latency of every request that returns a response."""

    def middleware(handler: Handler) -> Handler:
        async def logged(request: Request) -> Response:
            start = time.perf_counter()
            response = await handler(request)
            ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s %d %.1fms %s",
                request.method,
                request.url.path,
                response.status_code,
                ms,
                request.client.host if request.client else "unknown",
            )
            return response

        return logged

    return middleware


# ---------------------------------------------------------------------------
# Fault boundary
# ---------------------------------------------------------------------------


def recoverer(logger: logging.Logger, destination: str) -> Middleware:
    """Turn any exception escaping the inner chain into a 500 redirect to destination.

    The traceback goes to the log, never to the response. CORS headers
    recorded by an inner cors layer are carried over to the redirect. The
    boundary is per request: a fault in one request leaves every other
    request, and the server process, untouched.
    """

    def middleware(handler: Handler) -> Handler:
        async def recovering(request: Request) -> Response:
            try:
                return await handler(request)
            except Exception as exc:
                logger.exception("Unhandled fault on %s %s: %s", request.method, request.url.path, exc)
                response = RedirectResponse(destination, status_code=500)
                response.headers.update(getattr(request.state, _CORS_HEADERS, {}))
                return response

        return recovering

    return middleware


# ---------------------------------------------------------------------------
# Authentication gates
# ---------------------------------------------------------------------------


def authenticate(session: Session, redirect_to: str) -> Middleware:
    """Let signed-in visitors through; send guests to redirect_to with a 302."""

    def middleware(handler: Handler) -> Handler:
        async def members_only(request: Request) -> Response:
            if not session.is_authenticated(request):
                return RedirectResponse(redirect_to, status_code=302)
            return await handler(request)

        return members_only

    return middleware


def redirect_if_authenticated(session: Session, redirect_to: str) -> Middleware:
    """Let guests through; send signed-in visitors to redirect_to with a 302.

    Guards pages such as the login form that make no sense once signed in.
    """

    def middleware(handler: Handler) -> Handler:
        async def guests_only(request: Request) -> Response:
            if session.is_authenticated(request):
                return RedirectResponse(redirect_to, status_code=302)
            return await handler(request)

        return guests_only

    return middleware
