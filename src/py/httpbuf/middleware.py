from functools import update_wrapper
from typing import Any, Callable, Iterable

from . import config
from .buffered import BufferedResponse
from .model import ResponseWriter
from .sinks import TStartResponse, WSGISink
from .utils.logging import debug, exception

# --
# Handlers take a response writer and a request, the request being whatever
# the hosting server provides (for WSGI, the environ).
THandler = Callable[[ResponseWriter, Any], None]
TInspector = Callable[[BufferedResponse, Any], bool | None]

# Responses to these never carry a body, nor a `Content-Length`
NO_BODY_STATUS: frozenset[int] = frozenset((204, 304))


def buffered(
	handler: THandler,
	inspect: TInspector | None = None,
	*,
	contentLength: bool = True,
) -> THandler:
	"""Wraps the given handler so that its response is fully buffered before
	being sent. Once the handler returns, `inspect(response, request)` can
	look at or modify the response, and discards it by returning `False`.
	When nothing was flushed by the handler and `contentLength` is set, the
	`Content-Length` header is set from the buffered body, except for
	the statuses that have no body (1xx, 204, 304)."""

	def wrapper(writer: ResponseWriter, request: Any) -> None:
		response = BufferedResponse(writer)
		handler(response, request)
		if inspect and inspect(response, request) is False:
			debug(
				"Discarding buffered response",
				Status=response.status,
				Buffered=len(response.body),
			)
			return
		status: int = config.DEFAULT_STATUS if response.status is None else response.status
		if (
			contentLength
			and not response.committed
			and status >= 200
			and status not in NO_BODY_STATUS
			and "Content-Length" not in response.headers
		):
			response.headers.set("Content-Length", len(response.body))
		response.flush()

	return update_wrapper(wrapper, handler)


def application(handler: THandler) -> Callable[[dict[str, Any], TStartResponse], Iterable[bytes]]:
	"""Returns a WSGI application that runs `handler(writer, environ)`."""

	def app(environ: dict[str, Any], startResponse: TStartResponse) -> Iterable[bytes]:
		sink = WSGISink(startResponse)
		try:
			handler(sink, environ)
		except Exception as e:
			exception(e, "Handler failed")
			if sink.committed:
				raise e
			for name in sink.headers:
				sink.headers.delete(name)
			sink.headers.set("Content-Type", "text/plain")
			sink.setStatus(500)
			return [b"Internal Server Error"]
		# Handlers that wrote nothing still need a status line
		sink.flush()
		return sink

	return app


# EOF
