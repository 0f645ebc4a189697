"""Closed failure taxonomy for request handlers.

Handlers raise these (or let anything else propagate) instead of building
error responses themselves, so that:
- Service code is testable without a FastAPI request context
- Titles, messages and status codes are declared in one place
- ``classify`` can normalize any escaping exception into exactly one kind

Rendering lives in ``docshost.web.error``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolError

from docshost.storage import PathNotFoundError

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from docshost.web.cache import CachePolicy


class AppError(Exception):
    """Base of the taxonomy. Only its concrete subclasses are ever raised."""

    status_code: int = 500
    title: str = ""
    detail: str = ""

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.detail
        super().__init__(self.detail)

    def into_response(self, request: Request | None = None) -> Response:
        """Render this failure as an HTML error page."""
        from docshost.web.error import into_error_response, into_html_response

        return into_html_response(into_error_response(self), request)


class ResourceNotFound(AppError):
    """A doc page or static file that does not exist."""

    status_code = 404
    title = "The requested resource does not exist"
    detail = "no such resource"


class BuildNotFound(AppError):
    status_code = 404
    title = "The requested build does not exist"
    detail = "no such build"


class CrateNotFound(AppError):
    # TODO: carry the attempted crate name so the page can link to a search for it
    status_code = 404
    title = "The requested crate does not exist"
    detail = "no such crate"


class OwnerNotFound(AppError):
    status_code = 404
    title = "The requested owner does not exist"
    detail = "no such owner"


class VersionNotFound(AppError):
    """The crate exists but no release matches the requested version."""

    status_code = 404
    title = "The requested version does not exist"
    detail = "no such version for this crate"


class NoResults(AppError):
    """A search was submitted without any search terms."""

    status_code = 404
    title = "No results given for empty search query"
    detail = "Search yielded no results"


class _CausedError(AppError):
    """A kind that carries the underlying exception as its message source."""

    def __init__(self, cause: BaseException | str, message: str | None = None) -> None:
        if isinstance(cause, str):
            cause = ValueError(cause)
        self.cause = cause
        super().__init__(message or str(cause) or type(cause).__name__)
        self.__cause__ = cause


class BadRequest(_CausedError):
    """Input the handler could not make sense of (e.g. a malformed version)."""

    status_code = 400
    title = "Bad request"
    detail = "bad request"


class InternalError(_CausedError):
    """Anything unexpected. Always reported out-of-band before rendering."""

    status_code = 500
    title = "Internal Server Error"
    detail = "internal error"

    # The rendered message never includes the statement or its parameters;
    # the full error stays on ``cause`` for reporting.

    @classmethod
    def from_db_error(cls, err: SQLAlchemyError) -> InternalError:
        orig = getattr(err, "orig", None)
        message = str(orig) if orig is not None else ""
        return cls(err, message or "database error")

    @classmethod
    def from_pool_error(cls, err: PoolError) -> InternalError:
        return cls(err, "database connection pool exhausted")


class Redirect(AppError):
    """Not a failure as such: short-circuits a handler into a 302."""

    status_code = 302
    detail = "redirect"

    def __init__(self, target: str, cache_policy: CachePolicy) -> None:
        super().__init__(self.detail)
        self.target = target
        self.cache_policy = cache_policy


class JsonAppError(Exception):
    """An ``AppError`` to be rendered as a JSON payload (API endpoints)."""

    def __init__(self, error: BaseException) -> None:
        self.error = classify(error)
        super().__init__(str(self.error))

    def into_response(self) -> Response:
        from docshost.web.error import into_error_response, into_json_response

        return into_json_response(into_error_response(self.error))


TAXONOMY: tuple[type[AppError], ...] = (
    ResourceNotFound,
    BuildNotFound,
    CrateNotFound,
    OwnerNotFound,
    VersionNotFound,
    NoResults,
    InternalError,
    BadRequest,
    Redirect,
)


def classify(err: BaseException) -> AppError:
    """Resolve any exception to exactly one taxonomy kind.

    Order matters: a value already in the taxonomy wins, then the storage
    "path not found" signal, and everything else becomes an internal error
    (database errors through the conversions that keep SQL out of the message).
    """
    if isinstance(err, JsonAppError):
        return err.error
    if isinstance(err, TAXONOMY):
        return err
    if isinstance(err, PathNotFoundError):
        return ResourceNotFound()
    if isinstance(err, PoolError):
        return InternalError.from_pool_error(err)
    if isinstance(err, SQLAlchemyError):
        return InternalError.from_db_error(err)
    return InternalError(err)
