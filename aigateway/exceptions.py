"""
Custom exceptions for the AI gateway, providing a structured error hierarchy.
"""


class GatewayError(Exception):
    """Base exception for all custom exceptions in the gateway."""

    pass


class ConfigurationError(GatewayError):
    """Raised for errors in gateway configuration, like missing keys or invalid values."""

    pass


class BackendError(GatewayError):
    """Raised when the primary AI backend (Ollama) cannot produce a reply."""

    pass


class ProbeTimeout(BackendError):
    """Raised when a backend call does not finish within its deadline."""

    pass


class BackendUnavailable(BackendError):
    """Raised when the backend refuses or drops the connection."""

    pass


class BackendProtocolError(BackendError):
    """Raised for non-2xx replies or payloads that do not match the chat schema."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class DownloadFailure(GatewayError):
    """Raised when a remote resource cannot be downloaded."""

    pass


class CacheWriteFailure(GatewayError):
    """Raised when a downloaded resource cannot be written into the local cache."""

    pass


class AttachmentNotFound(GatewayError):
    """Raised when an attachment reference does not resolve to a readable file."""

    pass


class AllSourcesExhausted(GatewayError):
    """Raised when every source of a fallback chain failed and no terminal source exists."""

    def __init__(self, message: str, failures: list[tuple[str, str]] | None = None):
        super().__init__(message)
        self.failures = failures or []
