"""Exceptions raised by the synthesis client."""


class SoVITSClientError(Exception):
    """Base class for every error the client reports."""
    pass


class SerializationError(SoVITSClientError):
    """Raised when a request cannot be built or encoded."""
    pass


class TransportError(SoVITSClientError):
    """Raised when the HTTP round trip itself fails (connection, timeout)."""
    pass


class ServerError(SoVITSClientError):
    """Raised when the server answers with a non-success status code."""

    def __init__(self, operation: str, status_code: int, body: str):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"{operation} failed with status {status_code}: {body}")
