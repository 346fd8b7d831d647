from typing import Any, Callable, Iterator, NamedTuple, Protocol

from . import config
from .model import DeliveryError, HTTPHeaders, ResponseSink
from .status import statusLine

# -----------------------------------------------------------------------------
#
# RECORDER
#
# -----------------------------------------------------------------------------


class RecordedResponse(NamedTuple):
	"""What a `RecordingSink` received."""

	status: int
	headers: HTTPHeaders
	body: bytes
	chunks: list[bytes]
	flushed: int


class RecordingSink(ResponseSink):
	"""An in-memory sink that records the committed status, the headers as they
	were at commit time and every body delivery.

	`limit` caps the number of bytes accepted by each write, and `failAfter`
	makes deliveries fail with a `DeliveryError` once that many bytes have
	been accepted in total."""

	def __init__(
		self,
		headers: HTTPHeaders | None = None,
		*,
		limit: int | None = None,
		failAfter: int | None = None,
	) -> None:
		super().__init__(headers)
		self.limit: int | None = limit
		self.failAfter: int | None = failAfter
		self.committedHeaders: HTTPHeaders | None = None
		self.commits: int = 0
		self.chunks: list[bytes] = []
		self.flushed: int = 0

	@property
	def received(self) -> int:
		return sum(len(_) for _ in self.chunks)

	def _commit(self, status: int, headers: HTTPHeaders) -> None:
		self.commits += 1
		self.committedHeaders = headers

	def _send(self, data: bytes) -> int:
		n: int = len(data) if self.limit is None else min(self.limit, len(data))
		if self.failAfter is not None and self.received + n > self.failAfter:
			accepted: int = max(0, self.failAfter - self.received)
			if accepted:
				self.chunks.append(data[:accepted])
			raise DeliveryError("Connection reset by peer", accepted=accepted)
		self.chunks.append(data[:n])
		return n

	def _flush(self) -> None:
		self.flushed += 1

	def result(self) -> RecordedResponse:
		return RecordedResponse(
			status=config.DEFAULT_STATUS if self.status is None else self.status,
			headers=(
				HTTPHeaders()
				if self.committedHeaders is None
				else self.committedHeaders.clone()
			),
			body=b"".join(self.chunks),
			chunks=list(self.chunks),
			flushed=self.flushed,
		)


# -----------------------------------------------------------------------------
#
# STREAM
#
# -----------------------------------------------------------------------------


class TWritable(Protocol):
	def write(self, data: bytes) -> int | None: ...


class StreamSink(ResponseSink):
	"""Writes an HTTP/1.x response to a binary stream, such as a file or a
	socket file (`socket.makefile("wb")`)."""

	def __init__(
		self,
		stream: TWritable,
		headers: HTTPHeaders | None = None,
		*,
		protocol: str = "HTTP/1.1",
	) -> None:
		super().__init__(headers)
		self.stream: TWritable = stream
		self.protocol: str = protocol
		self._head: bytes = b""

	def head(self, status: int, headers: HTTPHeaders) -> bytes:
		"""Serializes the status line and headers as a payload."""
		lines: list[str] = [f"{k}: {v}" for k, v in headers.items()]
		lines.insert(0, statusLine(status, self.protocol))
		lines.append("")
		lines.append("")
		return "\r\n".join(lines).encode("latin-1")

	def _commit(self, status: int, headers: HTTPHeaders) -> None:
		self._head = self.head(status, headers)
		self._sendHead()

	def _sendHead(self) -> None:
		"""Sends what remains of the head. The unsent part is kept, so that the
		next write or flush completes the head before anything else."""
		while self._head:
			n = self._writeSome(self._head)
			if not n:
				raise DeliveryError("Stream did not accept the whole response head")
			self._head = self._head[n:]

	def _writeSome(self, data: bytes) -> int:
		try:
			n = self.stream.write(data)
		except BlockingIOError as e:
			# Non-blocking buffered streams tell how much they took before blocking
			return getattr(e, "characters_written", 0)
		# Non-blocking raw streams return None when they would block
		return 0 if n is None else n

	def _send(self, data: bytes) -> int:
		self._sendHead()
		return self._writeSome(data)

	def _flush(self) -> None:
		self._sendHead()
		flush = getattr(self.stream, "flush", None)
		if callable(flush):
			flush()


# -----------------------------------------------------------------------------
#
# WSGI
#
# -----------------------------------------------------------------------------


TStartResponse = Callable[..., Any]


class WSGISink(ResponseSink):
	"""Commits through a WSGI `start_response` callable and collects the body
	chunks, which are then returned to the WSGI server by iterating on the
	sink."""

	def __init__(self, startResponse: TStartResponse) -> None:
		super().__init__()
		self.startResponse: TStartResponse = startResponse
		self.chunks: list[bytes] = []

	def _commit(self, status: int, headers: HTTPHeaders) -> None:
		self.startResponse(statusLine(status, None), list(headers.items()))

	def _send(self, data: bytes) -> int:
		self.chunks.append(data)
		return len(data)

	def __iter__(self) -> Iterator[bytes]:
		return iter(self.chunks)


# EOF
