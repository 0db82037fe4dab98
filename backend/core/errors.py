"""
Error taxonomy for the docs preview server.

Only BindError is fatal. The per-request errors are translated into HTTP
responses at the route and never escape the request.
"""


class PreviewError(Exception):
    """Base class for all preview server errors."""


class BindError(PreviewError):
    """The listener could not be bound (port in use, missing permission)."""

    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(f"Cannot listen on {host}:{port}: {reason}")


class NotFound(PreviewError):
    """No file exists for the requested path."""


class PathTraversalRejected(PreviewError):
    """The requested path resolves outside its document root."""


class InternalReadError(PreviewError):
    """The file exists but could not be read."""
