"""
web/app.py -- Application assembly for Gatekeeper.

make_app() builds a FastAPI app from a Dependencies bundle: the session, the
user repository, the views, the static filesystem and the HTTP settings.
Nothing in here knows which concrete implementation it was given, so tests
pass spies and stubs where production passes the real thing.

create_app() is the production wiring: Settings in, app out. asgi.py calls
it once at import time for uvicorn.

ASGI-level middleware (outermost to innermost):
  1. SessionMiddleware -- signed cookie behind request.session, used by
     StarletteSessionStore. Harmless when a different store is plugged in.

Everything else (CORS, logging, fault recovery, auth gates) is attached per
route in web/routes.py.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from auth.login import UserRepository
from auth.session import Session, StarletteSessionStore
from auth.store import UserStore
from core.config import Settings
from web.middleware import CORSConfig, compose, cors, log_requests
from web.routes import add_routes
from web.static import DirectoryFileSystem, StaticFileSystem
from web.views import TemplateViews, ViewRenderer

logger = logging.getLogger("gatekeeper.http")


@dataclass
class Dependencies:
    """Everything the routes need, injected rather than imported.

    users and static may be None: a missing user repository fails at login
    time (caught by the recoverer), a missing filesystem means no static route.
    """

    session: Session = field(default_factory=lambda: Session(StarletteSessionStore()))
    users: UserRepository | None = None
    views: ViewRenderer = field(default_factory=TemplateViews)
    static: StaticFileSystem | None = None
    static_prefix: str = ""
    cors: CORSConfig = field(default_factory=CORSConfig)
    error_destination: str = "/error"
    logger: logging.Logger = logger
    secret_key: str = ""
    secure_cookies: bool = False
    session_max_age: int = 14 * 24 * 60 * 60


def _http_error_handler(deps: Dependencies):
    """Answer router-level 404/405 through the same logging and CORS layers as routes."""
    error_chain_tail = (log_requests(deps.logger), cors(deps.cors))

    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        async def error_response(request: Request) -> Response:
            return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

        return await compose(error_response, *error_chain_tail)(request)

    return http_exception_handler


def make_app(deps: Dependencies, lifespan=None) -> FastAPI:
    """Build the ASGI app for the given dependencies.

    deps.secret_key signs the session cookie and must be set; Settings decides
    its value, including the throwaway key used in DEBUG mode.
    """
    if not deps.secret_key:
        raise ValueError("make_app() needs deps.secret_key to sign session cookies")

    app = FastAPI(
        title="Gatekeeper",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.add_middleware(
        SessionMiddleware,
        secret_key=deps.secret_key,
        max_age=deps.session_max_age,
        same_site="lax",
        https_only=deps.secure_cookies,
    )

    app.state.deps = deps
    add_routes(app, deps)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler(deps))
    return app


def create_app(settings: Settings) -> FastAPI:
    """Wire production implementations from Settings into make_app()."""
    user_store = UserStore(settings.users_db_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Gatekeeper starting up (%d users)", user_store.count_users())
        yield
        user_store.close()
        logger.info("Gatekeeper shutdown complete")

    deps = Dependencies(
        session=Session(StarletteSessionStore()),
        users=user_store,
        views=TemplateViews(),
        static=DirectoryFileSystem(settings.static_dir),
        static_prefix=settings.static_prefix,
        cors=CORSConfig(
            allowed_origin=settings.cors_allowed_origin,
            allowed_methods=settings.cors_allowed_methods,
        ),
        error_destination=settings.error_redirect,
        secret_key=settings.secret_key,
        secure_cookies=settings.secure_cookies,
        session_max_age=settings.session_max_age,
    )
    return make_app(deps, lifespan=lifespan)
