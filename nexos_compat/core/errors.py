"""Exceptions raised by nexos_compat.

The request/response pipeline itself is lenient and does not raise for
malformed payloads; these cover configuration and the command line.
"""


class NexosCompatError(Exception):
    """Base class for all nexos_compat errors."""


class ConfigurationError(NexosCompatError):
    """Raised when configuration loading or validation fails."""


class ModelListError(NexosCompatError):
    """Raised when the gateway's model listing cannot be fetched."""

    def __init__(self, status_code: int, reason: str, body: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"Error: {status_code} {reason}")
