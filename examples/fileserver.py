"""
Buffered File Server Example

This serves the files of the current directory through WSGI, buffering
every response so that it can be inspected before being sent.
Features shown:
- Wrapping a handler with `buffered`
- Inspecting the fully buffered response (status, body size)
- Automatic Content-Length from the buffered body
- Running on the standard library WSGI server

Usage:
    python fileserver.py

Test with:
    curl -i http://localhost:8000/fileserver.py
    curl -i http://localhost:8000/missing
"""

from os import getenv
from pathlib import Path
from typing import Any
from wsgiref.simple_server import make_server

from httpbuf import BufferedResponse, ResponseWriter, application, buffered
from httpbuf.utils.logging import info

ROOT: Path = Path(".").absolute()
PORT: int = int(getenv("PORT", 8000))


def serve(w: ResponseWriter, environ: dict[str, Any]) -> None:
	path = (ROOT / environ.get("PATH_INFO", "/").lstrip("/")).absolute()
	if not path.is_file() or ROOT not in path.parents:
		w.headers.set("Content-Type", "text/plain")
		w.setStatus(404)
		w.write("Not Found")
	else:
		w.headers.set("Content-Type", "application/octet-stream")
		w.write(path.read_bytes())


def inspect(response: BufferedResponse, environ: dict[str, Any]) -> None:
	info(
		"Response buffered",
		Path=environ.get("PATH_INFO"),
		Status=response.status,
		Size=len(response.body),
	)


if __name__ == "__main__":
	info("Starting buffered file server", Root=str(ROOT), Port=PORT)
	with make_server("", PORT, application(buffered(serve, inspect))) as server:
		server.serve_forever()

# EOF
