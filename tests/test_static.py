"""Tests for web/static.py -- static files from a pluggable filesystem.

Covers:
- files served at the root and under a prefix, 404 for missing files
- clean_path() rejects traversal, backslashes and NUL bytes
- DirectoryFileSystem refuses paths that resolve outside its root
- file reads happen in the threadpool, off the event loop
"""

from __future__ import annotations

import asyncio
import io

import pytest

from tests.doubles import FileSystemStub
from web.static import DirectoryFileSystem, clean_path

FILES = {"somedir/image.jpg": None, "css/app.css": b"body { color: red; }"}


class LoopRecordingFileSystem(FileSystemStub):
    """Remembers whether each open() ran inside an event loop."""

    def __init__(self, files: dict[str, bytes | None]) -> None:
        super().__init__(files)
        self.opened_on_loop: list[bool] = []

    def open(self, path: str) -> io.BytesIO:
        try:
            asyncio.get_running_loop()
            self.opened_on_loop.append(True)
        except RuntimeError:
            self.opened_on_loop.append(False)
        return super().open(path)


class TestServingStaticFiles:
    def test_valid_file_from_root(self, make_client) -> None:
        resp = make_client(static=FileSystemStub(FILES)).get("/somedir/image.jpg")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/jpeg"

    def test_valid_file_from_prefixed_path(self, make_client) -> None:
        client = make_client(static=FileSystemStub(FILES), static_prefix="/publicprefix")
        resp = client.get("/publicprefix/css/app.css")
        assert resp.status_code == 200
        assert resp.content == b"body { color: red; }"
        assert resp.headers["content-type"].startswith("text/css")

    def test_prefix_is_required_when_configured(self, make_client) -> None:
        client = make_client(static=FileSystemStub(FILES), static_prefix="/publicprefix/")
        assert client.get("/css/app.css").status_code == 404
        assert client.get("/publicprefix/css/app.css").status_code == 200

    def test_non_existing_file(self, make_client) -> None:
        resp = make_client(static=FileSystemStub(FILES)).get("/pic/non-existing.jpg")
        assert resp.status_code == 404

    def test_directory_is_not_listed(self, make_client, tmp_path) -> None:
        (tmp_path / "somedir").mkdir()
        client = make_client(static=DirectoryFileSystem(tmp_path), static_prefix="/static")
        assert client.get("/static/somedir").status_code == 404

    def test_file_is_read_off_the_event_loop(self, make_client) -> None:
        files = LoopRecordingFileSystem(FILES)
        assert make_client(static=files).get("/css/app.css").status_code == 200
        assert files.opened_on_loop == [False]

    def test_unknown_extension_is_octet_stream(self, make_client) -> None:
        resp = make_client(static=FileSystemStub({"blob.zzzunknown": b"\x00\x01"})).get("/blob.zzzunknown")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/octet-stream"


class TestCleanPath:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("css/app.css", "css/app.css"),
            ("/css//app.css", "css/app.css"),
            ("./css/./app.css", "css/app.css"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert clean_path(raw) == expected

    @pytest.mark.parametrize("raw", ["", "/", "../etc/passwd", "css/../../secret", "css\\app.css", "app\x00.css"])
    def test_rejects(self, raw: str) -> None:
        assert clean_path(raw) is None


class TestDirectoryFileSystem:
    def test_reads_file_under_root(self, tmp_path) -> None:
        (tmp_path / "hello.txt").write_bytes(b"hello")
        with DirectoryFileSystem(tmp_path).open("hello.txt") as fh:
            assert fh.read() == b"hello"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            DirectoryFileSystem(tmp_path).open("nope.txt")

    def test_refuses_traversal(self, tmp_path) -> None:
        root = tmp_path / "public"
        root.mkdir()
        (tmp_path / "secret.txt").write_bytes(b"secret")
        with pytest.raises(FileNotFoundError):
            DirectoryFileSystem(root).open("../secret.txt")

    def test_refuses_symlink_out_of_root(self, tmp_path) -> None:
        root = tmp_path / "public"
        root.mkdir()
        (tmp_path / "secret.txt").write_bytes(b"secret")
        (root / "link.txt").symlink_to(tmp_path / "secret.txt")
        with pytest.raises(FileNotFoundError):
            DirectoryFileSystem(root).open("link.txt")
