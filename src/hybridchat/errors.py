class HybridChatError(Exception):
    pass


class TransportError(HybridChatError):
    """Non-2xx response or network failure talking to a backend."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StreamAborted(HybridChatError):
    """The caller cancelled an in-flight reply. Not an error for display."""


class PayloadError(HybridChatError):
    """A single streamed event could not be decoded."""


class PersistenceError(HybridChatError):
    pass
