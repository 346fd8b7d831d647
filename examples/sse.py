"""
Incremental Flush Example

This writes a response over a raw socket with a `StreamSink`, flushing the
buffered response after each event so that the client receives them as
they are produced, while the status and headers are sent only once.

Usage:
    python sse.py

Test with:
    curl -N http://localhost:8000/
"""

import socket
import time

from httpbuf import StreamSink, wrap
from httpbuf.utils.logging import info

PORT: int = 8000


def handle(conn: socket.socket) -> None:
	with conn, conn.makefile("wb") as stream:
		response = wrap(StreamSink(stream))
		response.headers.set("Content-Type", "text/event-stream")
		response.headers.set("Connection", "close")
		for i in range(5):
			response.write(f"data: {i}\n\n")
			response.flush()
			time.sleep(1)
		info("Stream complete", Sent=len(response.body))


if __name__ == "__main__":
	with socket.create_server(("", PORT)) as server:
		info("Listening", Port=PORT)
		while True:
			conn, _ = server.accept()
			# Requests are not parsed, any request gets the stream
			conn.recv(65_536)
			handle(conn)

# EOF
