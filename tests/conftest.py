"""
tests/conftest.py -- Shared fixtures for Gatekeeper tests.

This module provides:
  - make_client: factory building a TestClient around make_app() with any mix
    of real collaborators and doubles from tests/doubles.py
  - call: runs an async handler against a hand-built Request (no network)
  - http_logger: a named logger whose records caplog captures

Design: follow_redirects=False is essential for the web route tests. We
assert on redirect *locations* (e.g. 302 to /login), which are invisible once
the client follows the redirect and returns the final 200 response.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable

# Set DEBUG before any core import so Settings() can auto-generate SECRET_KEY.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

from web.app import Dependencies, make_app

TEST_SECRET_KEY = "test-secret-key-0123456789abcdef0123456789"


@pytest.fixture
def http_logger(caplog: pytest.LogCaptureFixture) -> logging.Logger:
    """Logger for middleware under test, captured at INFO by caplog."""
    caplog.set_level(logging.INFO)
    return logging.getLogger("gatekeeper.test")


@pytest.fixture
def make_client(http_logger: logging.Logger) -> Callable[..., TestClient]:
    """Return a factory: make_client(**dependency_overrides) -> TestClient.

    Unspecified dependencies fall back to the Dependencies defaults (cookie
    session, Jinja2 views, no user repository, no static files).
    """

    def _make(**overrides) -> TestClient:
        overrides.setdefault("secret_key", TEST_SECRET_KEY)
        overrides.setdefault("logger", http_logger)
        app = make_app(Dependencies(**overrides))
        return TestClient(app, follow_redirects=False)

    return _make


@pytest.fixture
def call() -> Callable[[Callable, Request], Response]:
    """Return call(handler, request) -> Response, running the handler to completion."""

    def _call(handler, request: Request) -> Response:
        return asyncio.run(handler(request))

    return _call
