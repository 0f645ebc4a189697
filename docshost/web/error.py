"""Turning taxonomy failures into HTML or JSON responses.

A failure goes through two steps: ``into_error_response`` picks a
format-agnostic shape for it, then ``into_html_response`` or
``into_json_response`` renders that shape, depending on whether the route
serves pages or the JSON API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Coroutine

from fastapi import FastAPI
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from docshost.exceptions import (
    AppError,
    BadRequest,
    InternalError,
    JsonAppError,
    NoResults,
    Redirect,
    ResourceNotFound,
    classify,
)
from docshost.telemetry import report_error
from docshost.web.pages import Search, render_page, render_search
from docshost.web.redirect import cached_redirect, encode_url_path

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


# ── Error response shapes ────────────────────────────────────────────────────

@dataclass(frozen=True)
class ErrorInfo:
    """Representable both as an HTML page and as a JSON payload."""

    title: str
    message: str
    status: int


@dataclass(frozen=True)
class RedirectResponse:
    response: Response


@dataclass(frozen=True)
class SearchResults:
    """Recreates the empty search page. Only valid on HTML routes."""

    search: Search


ErrorResponse = ErrorInfo | RedirectResponse | SearchResults


def _internal_error_info(error: InternalError) -> ErrorInfo:
    report_error(error.cause)
    return ErrorInfo(error.title, error.detail, error.status_code)


def into_error_response(error: AppError) -> ErrorResponse:
    """Select the response shape for a taxonomy kind."""
    if isinstance(error, InternalError):
        return _internal_error_info(error)

    if isinstance(error, BadRequest):
        logger.warning("Bad request: %s", error.cause)
        return ErrorInfo(error.title, error.detail, error.status_code)

    if isinstance(error, NoResults):
        return SearchResults(Search(title=error.title, status=error.status_code))

    if isinstance(error, Redirect):
        try:
            response = cached_redirect(encode_url_path(error.target), error.cache_policy)
        except Exception as exc:
            # Fall back once, straight to the internal error page.
            return _internal_error_info(InternalError(exc))
        return RedirectResponse(response)

    # The static not-found kinds
    logger.info("%s: %s", type(error).__name__, error.detail)
    return ErrorInfo(error.title, error.detail, error.status_code)


def into_html_response(shape: ErrorResponse, request: Request | None = None) -> Response:
    if isinstance(shape, ErrorInfo):
        return render_page(
            request,
            "error.html",
            {"title": shape.title, "message": shape.message, "status": shape.status},
            status_code=shape.status,
        )
    if isinstance(shape, RedirectResponse):
        return shape.response
    return render_search(request, shape.search)


def into_json_response(shape: ErrorResponse) -> Response:
    if isinstance(shape, ErrorInfo):
        return JSONResponse(
            status_code=shape.status,
            content={"result": "err", "title": shape.title, "message": shape.message},
        )
    if isinstance(shape, RedirectResponse):
        return shape.response
    raise AssertionError(
        "expecting that handlers that return JSON error responses "
        f"don't return search results, but got: {shape.search!r}"
    )


# ── Framework glue ───────────────────────────────────────────────────────────

def _normalize(exc: Exception) -> AppError:
    if isinstance(exc, RequestValidationError):
        return BadRequest(_describe_validation_error(exc))
    return classify(exc)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}"


Endpoint = Callable[[Request], Coroutine[Any, Any, Response]]


class HtmlErrorRoute(APIRoute):
    """Route class for page handlers: any failure becomes an HTML error page."""

    def get_route_handler(self) -> Endpoint:
        original = super().get_route_handler()

        async def handler(request: Request) -> Response:
            try:
                return await original(request)
            except HTTPException:
                raise
            except Exception as exc:
                return into_html_response(into_error_response(_normalize(exc)), request)

        return handler


class JsonErrorRoute(APIRoute):
    """Route class for API handlers: any failure becomes a JSON error payload."""

    def get_route_handler(self) -> Endpoint:
        original = super().get_route_handler()

        async def handler(request: Request) -> Response:
            try:
                return await original(request)
            except HTTPException:
                raise
            except Exception as exc:
                return into_json_response(into_error_response(_normalize(exc)))

        return handler


def register_error_handlers(app: FastAPI) -> None:
    """Handle taxonomy errors raised outside the custom route classes."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> Response:
        return into_html_response(into_error_response(classify(exc)), request)

    @app.exception_handler(JsonAppError)
    async def json_app_error_handler(request: Request, exc: JsonAppError) -> Response:
        return exc.into_response()

    @app.exception_handler(HTTPException)
    async def not_found_handler(request: Request, exc: HTTPException) -> Response:
        # Unmatched paths never reach a route class; give them the same 404.
        if exc.status_code != 404:
            return await http_exception_handler(request, exc)
        shape = into_error_response(ResourceNotFound())
        path = request.url.path
        if path == API_PREFIX or path.startswith(API_PREFIX + "/"):
            return into_json_response(shape)
        return into_html_response(shape, request)
