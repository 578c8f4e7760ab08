"""
web/static.py -- Read-only static file serving from a pluggable filesystem.

The handler never touches the disk directly. It asks a StaticFileSystem to
open a cleaned, root-relative path, so tests can serve from a dict and
production serves from a directory.

Path traversal is blocked twice:
  1. clean_path() rejects "..", backslashes and NUL bytes in the request path.
  2. DirectoryFileSystem resolves the final path (following symlinks) and
     refuses anything that lands outside its root.
Every rejection is a plain 404, indistinguishable from a missing file.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import BinaryIO, Protocol

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from web.middleware import Handler


class StaticFileSystem(Protocol):
    """Opens files by root-relative path; raises FileNotFoundError when absent."""

    def open(self, path: str) -> BinaryIO: ...


class DirectoryFileSystem:
    """StaticFileSystem rooted at a directory on disk."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def open(self, path: str) -> BinaryIO:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root) or not target.is_file():
            raise FileNotFoundError(path)
        return target.open("rb")


def clean_path(path: str) -> str | None:
    """Return a root-relative file path, or None if the path must not be served.

    Empty segments and "." are dropped. "..", backslashes and NUL bytes are
    rejected outright rather than normalized away.
    """
    if "\\" in path or "\x00" in path:
        return None
    parts = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            return None
        parts.append(part)
    return "/".join(parts) or None


def _read(files: StaticFileSystem, path: str) -> bytes:
    with files.open(path) as fh:
        return fh.read()


def _not_found() -> Response:
    return PlainTextResponse("Not Found", status_code=404)


def serve_static(files: StaticFileSystem) -> Handler:
    """Build a handler serving the route's {path} parameter from files.

    Opening and reading run in the threadpool; the filesystem may block.
    """

    async def static_file(request: Request) -> Response:
        path = clean_path(request.path_params.get("path", ""))
        if path is None:
            return _not_found()
        try:
            body = await run_in_threadpool(_read, files, path)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return _not_found()
        media_type, _ = mimetypes.guess_type(path)
        return Response(body, media_type=media_type or "application/octet-stream")

    return static_file
