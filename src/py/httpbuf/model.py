from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterable, Iterator

from mypy_extensions import mypyc_attr

from . import config
from .utils.io import asBytes
from .utils.logging import warning

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in name.split("-"))
		headers[key] = normalized
		return normalized


# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class DeliveryError(Exception):
	"""Raised when body bytes could not be delivered to a sink. The `accepted`
	count tells how many of the given bytes the sink did take before failing."""

	def __init__(self, message: str, accepted: int = 0):
		super().__init__(message)
		self.message: str = message
		self.accepted: int = accepted


class ShortWriteError(DeliveryError):
	"""The sink accepted fewer bytes than it was given, without failing."""


# -----------------------------------------------------------------------------
#
# HEADERS
#
# -----------------------------------------------------------------------------


class HTTPHeaders:
	"""A mutable header map, from a normalized header name to the ordered list
	of its values."""

	__slots__ = ["_values"]

	def __init__(
		self,
		headers: "HTTPHeaders | dict[str, str | list[str]] | Iterable[tuple[str, str]] | None" = None,
	) -> None:
		self._values: dict[str, list[str]] = {}
		if isinstance(headers, HTTPHeaders):
			for k, v in headers._values.items():
				self._values[k] = list(v)
		elif isinstance(headers, dict):
			for k, v in headers.items():
				if isinstance(v, list):
					for _ in v:
						self.add(k, _)
				else:
					self.add(k, v)
		elif headers is not None:
			for k, v in headers:
				self.add(k, v)

	def get(self, name: str, default: str | None = None) -> str | None:
		"""Returns the first value of the given header."""
		values = self._values.get(headername(name))
		return values[0] if values else default

	def values(self, name: str) -> list[str]:
		return list(self._values.get(headername(name), ()))

	def set(self, name: str, value: str | int) -> "HTTPHeaders":
		"""Replaces all the values of the given header."""
		self._values[headername(name)] = [str(value)]
		return self

	def add(self, name: str, value: str | int) -> "HTTPHeaders":
		"""Appends a value to the given header."""
		self._values.setdefault(headername(name), []).append(str(value))
		return self

	def delete(self, name: str) -> "HTTPHeaders":
		self._values.pop(headername(name), None)
		return self

	def clone(self) -> "HTTPHeaders":
		return HTTPHeaders(self)

	def items(self) -> Iterator[tuple[str, str]]:
		"""Iterates on `(name, value)` pairs, one per value."""
		for k, values in self._values.items():
			for v in values:
				yield (k, v)

	def __contains__(self, name: object) -> bool:
		return isinstance(name, str) and bool(self._values.get(headername(name)))

	def __iter__(self) -> Iterator[str]:
		return iter(list(self._values))

	def __len__(self) -> int:
		return len(self._values)

	def __eq__(self, other: object) -> bool:
		if isinstance(other, HTTPHeaders):
			return self._values == other._values
		return NotImplemented

	def __str__(self) -> str:
		return f"Headers({', '.join(f'{k}: {v}' for k, v in self.items())})"


# -----------------------------------------------------------------------------
#
# WRITERS
#
# -----------------------------------------------------------------------------


class ResponseState(Enum):
	"""The state of a response with regard to its sink"""

	Buffering = 0
	Committed = 1


@mypyc_attr(allow_interpreted_subclasses=True)
class ResponseWriter(ABC):
	"""The capabilities a handler uses to produce a response: a header map,
	a status setter, a byte writer and an explicit flush."""

	@property
	@abstractmethod
	def headers(self) -> HTTPHeaders: ...

	@abstractmethod
	def setStatus(self, status: int) -> None: ...

	@abstractmethod
	def write(self, data: bytes | bytearray | memoryview | str) -> int: ...

	def flush(self) -> None:
		pass

	def getHeader(self, name: str) -> str | None:
		return self.headers.get(name)

	def setHeader(self, name: str, value: str | int | None) -> "ResponseWriter":
		if value is None:
			self.headers.delete(name)
		else:
			self.headers.set(name, value)
		return self


@mypyc_attr(allow_interpreted_subclasses=True)
class ResponseSink(ResponseWriter):
	"""Base class for the non-buffering destinations of a response. The status
	line and headers are committed once, either explicitly with `setStatus`
	or implicitly by the first `write` or `flush`. The headers sent are the
	ones present at commit time, later changes to the header map are not
	sent."""

	def __init__(self, headers: HTTPHeaders | None = None) -> None:
		self._headers: HTTPHeaders = HTTPHeaders() if headers is None else headers
		self.status: int | None = None

	@property
	def headers(self) -> HTTPHeaders:
		return self._headers

	@property
	def committed(self) -> bool:
		return self.status is not None

	def setStatus(self, status: int) -> None:
		if self.status is not None:
			warning(
				"Superfluous setStatus call, response already committed",
				Status=self.status,
				Ignored=status,
			)
			return
		self.status = status
		self._commit(status, self._headers.clone())

	def write(self, data: bytes | bytearray | memoryview | str) -> int:
		if self.status is None:
			self.setStatus(config.DEFAULT_STATUS)
		payload: bytes = asBytes(data)
		return self._send(payload) if payload else 0

	def flush(self) -> None:
		if self.status is None:
			self.setStatus(config.DEFAULT_STATUS)
		self._flush()

	@abstractmethod
	def _commit(self, status: int, headers: HTTPHeaders) -> None:
		"""Sends the status line and the given headers."""

	@abstractmethod
	def _send(self, data: bytes) -> int:
		"""Sends the given bytes, returning how many were accepted."""

	def _flush(self) -> None:
		pass


# EOF
