from typing import Callable

from . import config
from .model import (
	DeliveryError,
	HTTPHeaders,
	ResponseState,
	ResponseWriter,
	ShortWriteError,
)
from .utils.io import asBytes
from .utils.logging import LogLevel, debug, logged, warning

# -----------------------------------------------------------------------------
#
# BUFFERED RESPONSE
#
# -----------------------------------------------------------------------------


class BufferedResponse(ResponseWriter):
	"""Wraps a response writer (the sink) and withholds the status, headers and
	body written by a handler until `flush()` is called. The first flush
	commits the status line and headers to the sink, and every flush
	delivers the body bytes written since the previous one.

	Until the first flush, `headers` is a snapshot of the sink headers taken
	at wrap time, and after it, the sink live headers. Writing never touches
	the sink.

	This is not safe for concurrent use: one request, one writer at a time.
	"""

	__slots__ = ["inner", "status", "snapshot", "_body", "_cursor", "_committed", "_notify", "_notifyPending", "_origin"]

	def __init__(self, inner: ResponseWriter) -> None:
		self.inner: ResponseWriter = inner
		self.status: int | None = None
		self.snapshot: HTTPHeaders = inner.headers.clone()
		self._origin: frozenset[str] = frozenset(self.snapshot)
		self._body: bytearray = bytearray()
		self._cursor: int = 0
		self._committed: bool = False
		notify = getattr(inner, "flush", None)
		self._notify: Callable[[], None] | None = notify if callable(notify) else None
		self._notifyPending: bool = False

	@property
	def state(self) -> ResponseState:
		return ResponseState.Committed if self._committed else ResponseState.Buffering

	@property
	def committed(self) -> bool:
		return self._committed

	@property
	def cursor(self) -> int:
		"""How many body bytes were accepted by the sink so far."""
		return self._cursor

	@property
	def body(self) -> bytes:
		"""The whole body written so far, including already flushed bytes."""
		return bytes(self._body)

	@property
	def pending(self) -> bytes:
		"""The body bytes not yet delivered to the sink."""
		return self._slice()

	@property
	def headers(self) -> HTTPHeaders:
		if self._committed:
			return self.inner.headers
		else:
			return self.snapshot

	def setStatus(self, status: int) -> None:
		# The sink only takes one status line, later calls are ignored.
		if self._committed:
			return
		self.status = status

	def write(self, data: bytes | bytearray | memoryview | str) -> int:
		payload: bytes = asBytes(data)
		self._body += payload
		return len(payload)

	def flush(self) -> None:
		"""Commits the status and headers if not done already, then delivers the
		pending body bytes to the sink. Delivery errors are raised with the
		cursor left after the accepted bytes, so that flushing again resumes
		where the sink stopped."""
		# The sink is notified after a commit or a delivery, until it succeeds
		if not self._committed:
			self._notifyPending = True
			self._commit()
		if self._drain():
			self._notifyPending = True
		if self._notifyPending and self._notify:
			self._notify()
			self._notifyPending = False

	def _slice(self) -> bytes:
		with memoryview(self._body) as view:
			return bytes(view[self._cursor :])

	def _commit(self) -> None:
		headers: HTTPHeaders = self.inner.headers
		# Headers the handler removed from the snapshot are removed from the sink
		for name in self._origin:
			if name not in self.snapshot:
				headers.delete(name)
		for name in self.snapshot:
			headers.delete(name)
			for value in self.snapshot.values(name):
				headers.add(name, value)
		if self.status is None:
			self.status = config.DEFAULT_STATUS
		self._committed = True
		if logged(LogLevel.Debug):
			debug(
				"Committing buffered response",
				Status=self.status,
				Headers=len(self.snapshot),
			)
		self.inner.setStatus(self.status)

	def _drain(self) -> int:
		"""Delivers the pending bytes, returning how many were accepted."""
		pending: int = len(self._body) - self._cursor
		if pending == 0:
			return 0
		chunk: bytes = self._slice()
		try:
			accepted = self.inner.write(chunk)
		except DeliveryError as e:
			self._cursor += max(0, min(e.accepted, pending))
			warning(
				"Buffered response delivery failed",
				Error=e.message,
				Accepted=e.accepted,
				Pending=pending,
			)
			raise e
		except BlockingIOError as e:
			# Non-blocking writers report the bytes they took before blocking
			accepted = getattr(e, "characters_written", 0)
			self._cursor += max(0, min(accepted, pending))
			warning(
				"Buffered response delivery would block",
				Accepted=accepted,
				Pending=pending,
			)
			raise e
		except OSError as e:
			warning(
				"Buffered response delivery failed",
				Error=str(e),
				Pending=pending,
			)
			raise e
		if not isinstance(accepted, int) or accepted < 0 or accepted > pending:
			raise ValueError(
				f"Sink returned an invalid write count {accepted!r} for {pending} bytes"
			)
		self._cursor += accepted
		if logged(LogLevel.Debug):
			debug(
				"Drained buffered response",
				Accepted=accepted,
				Cursor=self._cursor,
				Buffered=len(self._body),
			)
		if accepted < pending:
			warning(
				"Buffered response short write",
				Accepted=accepted,
				Pending=pending,
			)
			raise ShortWriteError(
				f"Sink accepted {accepted} of {pending} bytes", accepted=accepted
			)
		return accepted

	def __str__(self) -> str:
		return f"BufferedResponse({self.state.name} {self.status} {self.headers} {self._cursor}/{len(self._body)})"


def wrap(inner: ResponseWriter) -> BufferedResponse:
	"""Wraps the given response writer so that everything written to it is
	buffered until flushed."""
	return BufferedResponse(inner)


# EOF
