"""
web/views.py -- HTML rendering behind a minimal interface.

Route handlers only ever call render(name, data) and get bytes back, so any
ViewRenderer (Jinja2 here, a stub in tests) can be plugged in. Rendering
errors propagate; the route's recoverer turns them into a 500.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).parent / "templates"


class ViewRenderer(Protocol):
    def render(self, name: str, data: dict[str, Any]) -> bytes: ...


class TemplateViews:
    """Jinja2 templates from a directory (HTML autoescaping on)."""

    def __init__(self, directory: str | Path = TEMPLATES_DIR) -> None:
        self.templates = Jinja2Templates(directory=str(directory))

    def render(self, name: str, data: dict[str, Any]) -> bytes:
        return self.templates.get_template(name).render(data).encode("utf-8")
