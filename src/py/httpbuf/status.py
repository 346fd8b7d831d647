from http import HTTPStatus

# --
# Reason phrases for the status lines produced by the sinks, indexed
# by status code.
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}


def statusLine(status: int, protocol: str | None = "HTTP/1.1") -> str:
	"""Returns the status line for the given code, without the trailing EOL. When
	`protocol` is `None`, returns the WSGI form (`200 OK`)."""
	message: str = HTTP_STATUS.get(status, "Unknown status")
	return f"{status} {message}" if protocol is None else f"{protocol} {status} {message}"


# EOF
