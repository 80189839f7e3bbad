from typing import Optional


class AnalyzerError(Exception):
    """Base class for page analysis failures."""


class InvalidURLError(AnalyzerError, ValueError):
    """The analysis target is not an absolute URL with scheme and host."""

    def __init__(self, url: object, reason: str = "missing scheme or host"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class NetworkError(AnalyzerError):
    """The main page fetch failed at the transport level."""


class HTTPStatusError(AnalyzerError):
    """The main page fetch returned a status code of 400 or above."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP error: {status_code}")


class ParseError(AnalyzerError):
    """The response body could not be parsed as HTML."""


class ProbeError(AnalyzerError):
    """A single broken-link probe failed before receiving a response."""

    def __init__(self, url: str, message: Optional[str] = None):
        self.url = url
        super().__init__(message or f"Failed to check {url}")
