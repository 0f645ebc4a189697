"""JSON API. Failures are rendered as ``{"result": "err", ...}`` payloads."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docshost.exceptions import BadRequest, CrateNotFound
from docshost.registry import RegistryApi, get_registry
from docshost.versions import match_version
from docshost.web.dependencies import Store, get_store
from docshost.web.error import API_PREFIX, JsonErrorRoute

router = APIRouter(prefix=API_PREFIX, route_class=JsonErrorRoute, tags=["api"])


class ReleaseOut(BaseModel):
    name: str
    version: str
    description: str | None = None
    yanked: bool
    downloads: int
    release_time: datetime


class RegistryReleaseOut(BaseModel):
    name: str
    version: str
    release_time: datetime
    yanked: bool
    downloads: int


class OwnerOut(BaseModel):
    login: str
    name: str
    avatar: str


class SearchOut(BaseModel):
    query: str
    page: int
    releases: list[ReleaseOut]
    has_more: bool


def _release_out(release) -> ReleaseOut:
    return ReleaseOut(
        name=release.name,
        version=release.version,
        description=release.description,
        yanked=release.yanked,
        downloads=release.downloads,
        release_time=release.release_time,
    )


@router.get("/crates/{name}/owners", response_model=list[OwnerOut])
async def crate_owners(
    name: str,
    store: Store = Depends(get_store),
    registry: RegistryApi = Depends(get_registry),
):
    """Owners as reported by the registry (empty when the registry is unavailable)."""
    if await store.get_releases(name) is None:
        raise CrateNotFound()
    data = await registry.get_crate_data(name)
    return [OwnerOut(login=o.login, name=o.name, avatar=o.avatar) for o in data.owners]


@router.get("/crates/{name}/{version}", response_model=ReleaseOut)
async def release_info(name: str, version: str, store: Store = Depends(get_store)):
    releases = await store.get_releases(name)
    if releases is None:
        raise CrateNotFound()
    return _release_out(match_version(releases, version))


@router.get("/crates/{name}/{version}/registry", response_model=RegistryReleaseOut)
async def registry_release_info(
    name: str,
    version: str,
    store: Store = Depends(get_store),
    registry: RegistryApi = Depends(get_registry),
):
    """Release time, yanked flag and downloads as the registry reports them.

    The version is resolved locally first, so requirements work here too.
    Registry failures yield defaults rather than an error.
    """
    releases = await store.get_releases(name)
    if releases is None:
        raise CrateNotFound()
    release = match_version(releases, version)
    data = await registry.get_release_data(name, release.version)
    return RegistryReleaseOut(
        name=name,
        version=release.version,
        release_time=data.release_time,
        yanked=data.yanked,
        downloads=data.downloads,
    )


@router.get("/search", response_model=SearchOut)
async def search(query: str = "", page: int = 1, store: Store = Depends(get_store)):
    # The empty search page only exists in HTML; the API reports a bad request.
    query = query.strip()
    if not query:
        raise BadRequest("missing search query")
    if page < 1:
        raise BadRequest(f"invalid page: {page}")
    found = await store.search(query, page=page)
    return SearchOut(
        query=query,
        page=page,
        releases=[_release_out(r) for r in found.releases],
        has_more=found.has_more,
    )
