from os import getenv
from .utils.io import DEFAULT_ENCODING  # NOQA: F401

# Minimum level of the log lines written to stderr, one of the `LogLevel`
# names (Debug, Info, Warning, Error...).
LOG_LEVEL: str = getenv("HTTPBUF_LOG_LEVEL", "Info")

# Status committed by a flush when the handler never set one
DEFAULT_STATUS: int = int(getenv("HTTPBUF_DEFAULT_STATUS", 200))

# EOF
