"""Jinja2 page rendering shared by the HTML routes and the error pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fastapi.templating import Jinja2Templates
from starlette.requests import Request
from starlette.responses import HTMLResponse

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@dataclass
class SearchResult:
    name: str
    version: str
    description: str | None = None


@dataclass
class Search:
    """Data behind the search results page. The default is an empty search."""

    title: str = ""
    search_query: str | None = None
    results: list[SearchResult] = field(default_factory=list)
    previous_page_link: str | None = None
    next_page_link: str | None = None
    status: int = 200


def render_page(
    request: Request | None,
    template: str,
    context: dict[str, Any],
    status_code: int = 200,
) -> HTMLResponse:
    """Render ``template`` with ``context``.

    Error pages can be produced outside a request (e.g. in unit tests), so a
    missing request falls back to a plain template render.
    """
    if request is not None:
        return templates.TemplateResponse(
            request,
            template,
            context,
            status_code=status_code,
        )
    html = templates.get_template(template).render(**context)
    return HTMLResponse(html, status_code=status_code)


def render_search(request: Request | None, search: Search) -> HTMLResponse:
    return render_page(
        request,
        "releases/search.html",
        {"title": search.title, "search": search},
        status_code=search.status,
    )
