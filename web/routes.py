"""
web/routes.py -- Route table for the Gatekeeper web UI.

Every route is a plain async handler wrapped in its group's middleware chain
(outermost first):

  members  -- recoverer -> log_requests -> cors -> authenticate("/login")
  guests   -- recoverer -> log_requests -> cors -> redirect_if_authenticated("/")
  public   -- recoverer -> log_requests -> cors

Routes:
  GET  /                 -- home page (members)
  GET  /profile          -- profile page (members)
  GET  /login            -- login form (guests)
  POST /login            -- handle password login (guests)
  POST /logout           -- clear the session, redirect /login (public)
  GET  {prefix}/{path}   -- static files (public), only when a filesystem is configured

Each declared route also accepts OPTIONS, which the cors layer answers.
With an empty static prefix the static route is a catch-all, so it must be
registered after every other route.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from auth.login import AuthError, log_in
from auth.session import SessionWriteError
from web.middleware import Handler, authenticate, compose, cors, log_requests, recoverer, redirect_if_authenticated
from web.static import serve_static

if TYPE_CHECKING:
    from web.app import Dependencies

_SIGNED_OUT_NOTICE = "You have been signed out."


def normalize_prefix(prefix: str) -> str:
    """Return "" or "/segment[/segment...]" without a trailing slash."""
    prefix = prefix.strip().strip("/")
    return f"/{prefix}" if prefix else ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _page(deps: Dependencies, request: Request, name: str, status_code: int = 200, **data: Any) -> HTMLResponse:
    context = {
        "user_id": deps.session.current_user_id(request),
        "static_prefix": normalize_prefix(deps.static_prefix),
        **data,
    }
    return HTMLResponse(deps.views.render(name, context), status_code=status_code)


def _server_error() -> Response:
    return PlainTextResponse("Internal Server Error", status_code=500)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def home(deps: Dependencies) -> Handler:
    async def home_page(request: Request) -> Response:
        return _page(deps, request, "home.html")

    return home_page


def profile(deps: Dependencies) -> Handler:
    async def profile_page(request: Request) -> Response:
        return _page(deps, request, "profile.html")

    return profile_page


def login_form(deps: Dependencies) -> Handler:
    async def login_page(request: Request) -> Response:
        notice = deps.session.pop_flash(request, "notice")
        response = _page(deps, request, "login.html", notice=notice)
        if notice:
            deps.session.save(request, response)
        return response

    return login_page


def login_submit(deps: Dependencies) -> Handler:
    """Handle the login form. Bad credentials re-render the form with a 401."""

    async def login_post(request: Request) -> Response:
        form = await request.form()
        email = str(form.get("email", ""))
        password = str(form.get("password", ""))

        response = RedirectResponse("/", status_code=302)
        try:
            await run_in_threadpool(log_in, deps.session, deps.users, request, response, email, password)
        except AuthError as exc:
            return _page(deps, request, "login.html", status_code=401, error_msg=str(exc), email=email.strip())
        except SessionWriteError:
            deps.logger.exception("Could not store the session after login")
            return _server_error()
        response.headers["Cache-Control"] = "no-store"
        return response

    return login_post


def logout(deps: Dependencies) -> Handler:
    """Sign out whoever is (or is not) signed in and go back to the login form."""

    async def logout_post(request: Request) -> Response:
        response = RedirectResponse("/login", status_code=302)
        try:
            deps.session.flash(request, "notice", _SIGNED_OUT_NOTICE)
            deps.session.clear(request, response)
        except SessionWriteError:
            deps.logger.exception("Could not clear the session on logout")
            return _server_error()
        return response

    return logout_post


def login(deps: Dependencies) -> Handler:
    """Serve /login as one route so a 405 lists every method it accepts."""
    show_form = login_form(deps)
    submit = login_submit(deps)

    async def login_page_or_post(request: Request) -> Response:
        if request.method == "POST":
            return await submit(request)
        return await show_form(request)

    return login_page_or_post


# ---------------------------------------------------------------------------
# Route table
# ---------------------------------------------------------------------------


def add_routes(app: FastAPI, deps: Dependencies) -> None:
    """Register every route on app with its middleware chain."""
    public = (
        recoverer(deps.logger, deps.error_destination),
        log_requests(deps.logger),
        cors(deps.cors),
    )
    members = (*public, authenticate(deps.session, "/login"))
    guests = (*public, redirect_if_authenticated(deps.session, "/"))

    app.add_route("/", compose(home(deps), *members), methods=["GET", "OPTIONS"], name="home")
    app.add_route("/profile", compose(profile(deps), *members), methods=["GET", "OPTIONS"], name="profile")
    app.add_route("/login", compose(login(deps), *guests), methods=["GET", "POST", "OPTIONS"], name="login")
    app.add_route("/logout", compose(logout(deps), *public), methods=["POST", "OPTIONS"], name="logout")

    if deps.static is not None:
        prefix = normalize_prefix(deps.static_prefix)
        app.add_route(
            prefix + "/{path:path}",
            compose(serve_static(deps.static), *public),
            methods=["GET", "OPTIONS"],
            name="static",
        )
