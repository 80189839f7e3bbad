import re
import string
from typing import Optional
from urllib.parse import SplitResult, urlsplit

from site_analyzer.core.exceptions import InvalidURLError

# "%" that does not start a two-digit hex escape
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

# ASCII characters allowed in a host (port and IPv6 brackets included)
_HOST_CHARS = frozenset(string.ascii_letters + string.digits + "-._~!$&'()*+,;=:[]<>\"%")


def parse_reference(reference: str) -> Optional[SplitResult]:
    """
    Parse a URL reference, returning None when it is not a valid reference.

    A reference is invalid when it contains control characters, a malformed
    port or IPv6 literal, a ``%`` that is not a hex escape in its host, path
    or fragment, a host character outside the URL host alphabet, or (for a
    relative reference) a colon in its first path segment. The query is not
    checked. Relative references are valid.
    """
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in reference):
        return None
    try:
        parts = urlsplit(reference)
        # Accessing .port validates it
        parts.port
    except ValueError:
        return None

    if any(_BAD_ESCAPE.search(piece) for piece in (parts.netloc, parts.path, parts.fragment)):
        return None
    if any(ch < "\x80" and ch not in _HOST_CHARS for ch in url_host(parts)):
        return None
    if not parts.scheme and ":" in parts.path.partition("/")[0]:
        return None
    return parts


def url_host(parts: SplitResult) -> str:
    """Host as written in the URL: netloc without userinfo, port kept, case kept."""
    return parts.netloc.rpartition("@")[2]


def validate_target_url(url: object) -> SplitResult:
    """
    Check that an analysis target is an absolute URL with scheme and host.

    Raises:
        InvalidURLError: before any network I/O when the target is unusable
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(url, "URL cannot be empty")

    parts = parse_reference(url)
    if parts is None:
        raise InvalidURLError(url, "URL could not be parsed")
    if not parts.scheme:
        raise InvalidURLError(url, "missing scheme")
    if not url_host(parts):
        raise InvalidURLError(url, "missing host")
    return parts
