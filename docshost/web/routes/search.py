"""Release search page."""

from __future__ import annotations

from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request

from docshost.exceptions import NoResults
from docshost.web.dependencies import Store, get_store
from docshost.web.error import HtmlErrorRoute
from docshost.web.pages import Search, SearchResult, render_search

router = APIRouter(route_class=HtmlErrorRoute, tags=["search"])

PER_PAGE = 30


def _page_link(query: str, page: int) -> str:
    return "/releases/search?" + urlencode({"query": query, "page": page})


@router.get("/releases/search")
async def search_releases(
    request: Request,
    query: str = "",
    page: int = Query(default=1, ge=1),
    store: Store = Depends(get_store),
):
    query = query.strip()
    if not query:
        raise NoResults()

    found = await store.search(query, page=page, per_page=PER_PAGE)
    search = Search(
        title=f"Search results for '{query}'",
        search_query=query,
        results=[
            SearchResult(name=r.name, version=r.version, description=r.description)
            for r in found.releases
        ],
        previous_page_link=_page_link(query, page - 1) if page > 1 else None,
        next_page_link=_page_link(query, page + 1) if found.has_more else None,
    )
    return render_search(request, search)
