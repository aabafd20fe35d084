"""
Exceptions raised by the client.
"""


class OpenAlexError(Exception):
    """Base class for everything this package raises."""


class ValidationError(OpenAlexError, ValueError):
    """
    Raised before any request is made, when search parameters conflict or lack a required companion.
    """


class TransportError(OpenAlexError):
    """
    Raised for any non-2xx response that isn't handled as "not found".
    Carries the status code, the reason phrase and the requested url.
    """

    def __init__(self, status_code: int, reason: str, url: str) -> None:
        self.status_code: int = status_code
        self.reason: str = reason
        self.url: str = url
        super().__init__(f'Error {status_code}: {reason} (url, ``{url}``)')
