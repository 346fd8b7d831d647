import io
from typing import Any

import pytest

from httpbuf import BufferedResponse, RecordingSink, ResponseWriter, application, buffered
from httpbuf.utils import logging

FILES: dict[str, bytes] = {"/index.html": b"Hello, world!"}


def fileServer(w: ResponseWriter, path: str) -> None:
	"""Serves the files in `FILES`, a minimal file server."""
	data = FILES.get(path)
	if data is None:
		w.headers.set("Content-Type", "text/plain")
		w.setStatus(404)
		w.write(b"Not Found")
	else:
		w.headers.set("Content-Type", "text/html")
		w.write(data)


@pytest.fixture(autouse=True)
def quiet(monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setattr(logging, "ERR", io.StringIO())


def test_inspect_full_response() -> None:
	seen: list[tuple[int | None, bytes]] = []

	def inspect(response: BufferedResponse, request: Any) -> None:
		seen.append((response.status, response.body))
		assert response.committed is False

	rec = RecordingSink()
	buffered(fileServer, inspect)(rec, "/index.html")
	res = rec.result()
	assert seen == [(None, b"Hello, world!")]
	assert res.status == 200
	assert res.body == b"Hello, world!"
	assert res.headers.get("Content-Length") == "13"
	assert res.headers.get("Content-Type") == "text/html"
	assert rec.commits == 1


def test_inspect_rewrites_headers() -> None:
	def inspect(response: BufferedResponse, request: Any) -> bool:
		if response.status == 404:
			response.setStatus(410)
			response.setHeader("X-Missing", request)
		return True

	rec = RecordingSink()
	buffered(fileServer, inspect)(rec, "/missing.html")
	res = rec.result()
	assert res.status == 410
	assert res.headers.get("X-Missing") == "/missing.html"
	assert res.body == b"Not Found"


def test_inspect_discards() -> None:
	rec = RecordingSink()
	handler = buffered(fileServer, lambda response, request: response.status != 404)
	handler(rec, "/missing.html")
	assert rec.committed is False
	assert rec.chunks == []
	# The sink is left untouched, so something else can be sent
	rec.setStatus(500)
	assert rec.result().status == 500


def test_content_length_only_when_uncommitted() -> None:
	def streaming(w: ResponseWriter, request: Any) -> None:
		w.write(b"first")
		w.flush()
		w.write(b"second")

	rec = RecordingSink()
	buffered(streaming)(rec, None)
	res = rec.result()
	assert "Content-Length" not in res.headers
	assert res.chunks == [b"first", b"second"]


def test_content_length_kept() -> None:
	def sized(w: ResponseWriter, request: Any) -> None:
		w.headers.set("Content-Length", 3)
		w.write(b"abc")

	rec = RecordingSink()
	buffered(sized, contentLength=False)(rec, None)
	assert rec.result().headers.values("Content-Length") == ["3"]
	rec = RecordingSink()
	buffered(fileServer, contentLength=False)(rec, "/index.html")
	assert "Content-Length" not in rec.result().headers


def test_buffered_keeps_handler_name() -> None:
	assert buffered(fileServer).__name__ == "fileServer"


def test_wsgi_application() -> None:
	started: list[tuple[str, list[tuple[str, str]]]] = []

	def startResponse(status: str, headers: list[tuple[str, str]]) -> None:
		started.append((status, headers))

	def handler(w: ResponseWriter, environ: dict[str, Any]) -> None:
		fileServer(w, environ["PATH_INFO"])

	app = application(buffered(handler))
	body = b"".join(app({"PATH_INFO": "/index.html"}, startResponse))
	assert body == b"Hello, world!"
	assert started == [
		("200 OK", [("Content-Type", "text/html"), ("Content-Length", "13")])
	]


def test_wsgi_application_error() -> None:
	started: list[tuple[str, list[tuple[str, str]]]] = []

	def startResponse(status: str, headers: list[tuple[str, str]]) -> None:
		started.append((status, headers))

	def failing(w: ResponseWriter, environ: dict[str, Any]) -> None:
		w.headers.set("X-Partial", "1")
		w.write(b"partial")
		raise RuntimeError("Handler failure")

	app = application(buffered(failing))
	body = b"".join(app({}, startResponse))
	assert body == b"Internal Server Error"
	assert started == [("500 Internal Server Error", [("Content-Type", "text/plain")])]


def test_wsgi_application_empty() -> None:
	started: list[str] = []
	app = application(lambda w, environ: None)
	assert b"".join(app({}, lambda status, headers: started.append(status))) == b""
	assert started == ["200 OK"]


def test_no_content_length_without_body() -> None:
	for status in (101, 204, 304):
		rec = RecordingSink()
		buffered(lambda w, request: w.setStatus(request))(rec, status)
		res = rec.result()
		assert res.status == status
		assert "Content-Length" not in res.headers
	rec = RecordingSink()
	buffered(lambda w, request: None)(rec, None)
	assert rec.result().headers.get("Content-Length") == "0"


# EOF
