"""Caching directives for CDN and browser."""

from __future__ import annotations

import enum

from docshost.config import Settings, get_settings

# One year; the CDN is purged explicitly when a crate is rebuilt.
FOREVER_IN_SECONDS = 31_536_000


class CachePolicy(enum.Enum):
    """How long a response may be cached by the CDN and by browsers."""

    NO_CACHING = "no-caching"
    NO_STORE_MUST_REVALIDATE = "no-store-must-revalidate"
    FOREVER_IN_CDN_AND_BROWSER = "forever-in-cdn-and-browser"
    FOREVER_IN_CDN = "forever-in-cdn"
    FOREVER_IN_CDN_AND_STALE_IN_BROWSER = "forever-in-cdn-and-stale-in-browser"

    def headers(self, settings: Settings | None = None) -> dict[str, str]:
        """Return the cache headers to set on a response using this policy."""
        settings = settings or get_settings()

        if self is CachePolicy.NO_CACHING:
            return {"Cache-Control": "max-age=0"}
        if self is CachePolicy.NO_STORE_MUST_REVALIDATE:
            return {"Cache-Control": "no-cache, no-store, must-revalidate, max-age=0"}
        if self is CachePolicy.FOREVER_IN_CDN_AND_BROWSER:
            return {"Cache-Control": f"public, max-age={FOREVER_IN_SECONDS}"}

        cdn = {"CDN-Cache-Control": f"max-age={FOREVER_IN_SECONDS}"}
        if self is CachePolicy.FOREVER_IN_CDN:
            return {"Cache-Control": "max-age=0", **cdn}

        # FOREVER_IN_CDN_AND_STALE_IN_BROWSER
        directives = ["public"]
        if settings.cache_control_max_age is not None:
            directives.append(f"max-age={settings.cache_control_max_age}")
        else:
            directives.append("max-age=0")
        if settings.cache_control_stale_while_revalidate is not None:
            directives.append(
                f"stale-while-revalidate={settings.cache_control_stale_while_revalidate}"
            )
        return {"Cache-Control": ", ".join(directives), **cdn}
