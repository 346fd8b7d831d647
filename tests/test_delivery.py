import errno
import io

import pytest

from httpbuf import (
	DeliveryError,
	HTTPHeaders,
	RecordingSink,
	ResponseWriter,
	ShortWriteError,
	wrap,
)
from httpbuf.utils import logging


@pytest.fixture(autouse=True)
def quiet(monkeypatch: pytest.MonkeyPatch) -> io.StringIO:
	stream = io.StringIO()
	monkeypatch.setattr(logging, "ERR", stream)
	return stream


def test_short_write_advances_cursor() -> None:
	rec = RecordingSink(limit=5)
	rw = wrap(rec)
	rw.write(b"Hello, world!")
	with pytest.raises(ShortWriteError) as e:
		rw.flush()
	assert e.value.accepted == 5
	assert rw.cursor == 5
	assert rw.pending == b", world!"
	# Retrying resumes where the sink stopped
	with pytest.raises(ShortWriteError):
		rw.flush()
	assert rw.cursor == 10
	rec.limit = None
	rw.flush()
	assert rec.result().body == b"Hello, world!"
	assert rec.commits == 1


def test_failed_delivery_keeps_accepted_bytes() -> None:
	rec = RecordingSink(failAfter=4)
	rw = wrap(rec)
	rw.write(b"abcdefgh")
	with pytest.raises(DeliveryError) as e:
		rw.flush()
	assert e.value.accepted == 4
	assert rw.cursor == 4
	assert rw.committed is True
	rec.failAfter = None
	rw.flush()
	res = rec.result()
	assert res.body == b"abcdefgh"
	assert res.chunks == [b"abcd", b"efgh"]
	assert rec.commits == 1


def test_failure_is_logged(quiet: io.StringIO) -> None:
	rec = RecordingSink(failAfter=0)
	rw = wrap(rec)
	rw.write(b"abc")
	with pytest.raises(DeliveryError):
		rw.flush()
	assert rw.cursor == 0
	assert "delivery failed" in quiet.getvalue()


class BrokenWriter(ResponseWriter):
	"""A bare writer whose connection went away."""

	def __init__(self) -> None:
		self._headers = HTTPHeaders()
		self.status: int | None = None

	@property
	def headers(self) -> HTTPHeaders:
		return self._headers

	def setStatus(self, status: int) -> None:
		self.status = status

	def write(self, data: bytes | bytearray | memoryview | str) -> int:
		raise ConnectionResetError("Connection reset by peer")


def test_os_errors_propagate() -> None:
	sink = BrokenWriter()
	rw = wrap(sink)
	rw.write(b"abc")
	with pytest.raises(ConnectionResetError):
		rw.flush()
	assert sink.status == 200
	assert rw.cursor == 0
	assert rw.pending == b"abc"


class CountingWriter(BrokenWriter):
	"""A writer without flush, returning whatever count it is told to."""

	flush = None  # type: ignore

	def __init__(self, count: object) -> None:
		super().__init__()
		self.count = count
		self.statuses: list[int] = []

	def setStatus(self, status: int) -> None:
		self.statuses.append(status)

	def write(self, data: bytes | bytearray | memoryview | str) -> int:
		return self.count  # type: ignore


def test_invalid_write_count() -> None:
	rw = wrap(CountingWriter(10))
	rw.write(b"abc")
	with pytest.raises(ValueError):
		rw.flush()
	assert rw.cursor == 0


def test_writer_without_flush() -> None:
	sink = CountingWriter(3)
	rw = wrap(sink)
	rw.write(b"abc")
	rw.flush()
	rw.flush()
	assert sink.statuses == [200]
	assert rw.cursor == 3


def test_superfluous_sink_status(quiet: io.StringIO) -> None:
	rec = RecordingSink()
	rec.setStatus(201)
	rec.setStatus(202)
	assert rec.result().status == 201
	assert rec.commits == 1
	assert "Superfluous" in quiet.getvalue()


class BlockingWriter(BrokenWriter):
	"""A bare writer over a non-blocking stream that takes `capacity` bytes."""

	def __init__(self, capacity: int) -> None:
		super().__init__()
		self.capacity = capacity
		self.data = bytearray()

	def write(self, data: bytes | bytearray | memoryview | str) -> int:
		n = min(self.capacity, len(data))
		self.capacity -= n
		self.data += bytes(data)[:n]
		if n < len(data):
			raise BlockingIOError(errno.EAGAIN, "write could not complete without blocking", n)
		return n


def test_blocking_write_keeps_accepted_bytes() -> None:
	sink = BlockingWriter(3)
	rw = wrap(sink)
	rw.write(b"abcdefgh")
	with pytest.raises(BlockingIOError):
		rw.flush()
	assert rw.cursor == 3
	sink.capacity = 100
	rw.flush()
	assert bytes(sink.data) == b"abcdefgh"


# EOF
