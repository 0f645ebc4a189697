"""Redirect responses with cache headers and safely encoded targets."""

from __future__ import annotations

import re
from urllib.parse import quote

from starlette.responses import RedirectResponse

from docshost.web.cache import CachePolicy

# RFC 3986 unreserved characters plus the path separator and the
# sub-delims that are harmless inside a path segment. Stricter than what
# browsers send: "[", "]", "|", "^", "\\" and a "%" not starting a valid
# escape are always percent-encoded.
_PATH_SAFE = "/-._~!$&'()*+,;=:@"

_VALID_ESCAPE = re.compile(r"%[0-9A-Fa-f]{2}")

_HEADER_UNSAFE = re.compile(r"[\x00-\x1f\x7f]")


def encode_url_path(path: str) -> str:
    """Percent-encode ``path`` for use in a URL path.

    Existing valid ``%XX`` escapes are kept as they are, so encoding is
    idempotent; a stray ``%`` is encoded as ``%25``.
    """
    parts = []
    pos = 0
    for match in _VALID_ESCAPE.finditer(path):
        parts.append(quote(path[pos:match.start()], safe=_PATH_SAFE))
        parts.append(match.group(0))
        pos = match.end()
    parts.append(quote(path[pos:], safe=_PATH_SAFE))
    return "".join(parts)


def cached_redirect(uri: str, cache_policy: CachePolicy) -> RedirectResponse:
    """Build a 302 to ``uri`` carrying the headers of ``cache_policy``.

    Raises ValueError when ``uri`` cannot be placed in a Location header.
    """
    if not uri:
        raise ValueError("redirect target is empty")
    if _HEADER_UNSAFE.search(uri) or not uri.isascii():
        raise ValueError(f"invalid redirect target: {uri!r}")

    response = RedirectResponse(uri, status_code=302)
    response.headers.update(cache_policy.headers())
    return response
