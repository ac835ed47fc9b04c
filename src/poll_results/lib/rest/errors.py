"""Error types raised by the REST data source and the decoders built on it."""


class DataSourceError(Exception):
    """Base class for failures talking to or decoding from the backend."""


class TransportError(DataSourceError):
    """Raised when a backend call fails or returns a non-2xx status.

    Covers timeouts, refused connections and HTTP error statuses alike;
    callers only need to distinguish success from failure.

    Args:
        message: Human-readable error description.
        status_code: HTTP status code when the server answered.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DecodeError(DataSourceError):
    """Raised when a response body cannot be parsed into an expected shape."""
