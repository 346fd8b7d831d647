from .model import (
    DeliveryError,
    HTTPHeaders,
    ResponseSink,
    ResponseState,
    ResponseWriter,
    ShortWriteError,
)  # NOQA: F401
from .buffered import BufferedResponse, wrap  # NOQA: F401
from .sinks import RecordedResponse, RecordingSink, StreamSink, WSGISink  # NOQA: F401
from .middleware import application, buffered  # NOQA: F401


# EOF
