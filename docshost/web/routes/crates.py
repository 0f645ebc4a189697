"""HTML pages: crate details, builds, owners, and top-level static files."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from docshost.exceptions import BuildNotFound, CrateNotFound, OwnerNotFound, Redirect
from docshost.storage import Storage
from docshost.versions import match_version, version_key
from docshost.web.cache import CachePolicy
from docshost.web.dependencies import Store, get_storage, get_store
from docshost.web.error import HtmlErrorRoute
from docshost.web.pages import render_page

router = APIRouter(route_class=HtmlErrorRoute, tags=["pages"])


@router.get("/crate/{name}/{version}/builds/{build_id}")
async def build_details(
    request: Request,
    name: str,
    version: str,
    build_id: int,
    store: Store = Depends(get_store),
):
    releases = await store.get_releases(name)
    if releases is None:
        raise CrateNotFound()
    release = match_version(releases, version)
    if release.version != version:
        raise Redirect(f"/crate/{name}/{release.version}/builds/{build_id}", CachePolicy.NO_CACHING)

    build = await store.get_build(name, release.version, build_id)
    if build is None:
        raise BuildNotFound()
    return render_page(
        request,
        "crate/build.html",
        {"title": f"Build #{build.id}", "build": build, "release": release},
    )


@router.get("/releases/{owner}")
async def owner_releases(request: Request, owner: str, store: Store = Depends(get_store)):
    found = await store.get_owner(owner.lstrip("@"))
    if found is None:
        raise OwnerNotFound()
    info, crates = found
    return render_page(
        request,
        "releases/owner.html",
        {"title": info.login, "owner": info, "crates": [{"name": name} for name in crates]},
    )


@router.get("/{name}")
async def crate_or_resource(
    name: str,
    store: Store = Depends(get_store),
    storage: Storage = Depends(get_storage),
):
    """Top-level static file (``/style.css``) or the short crate URL (``/serde``)."""
    if "." in name:
        # Missing files raise PathNotFoundError, rendered as ResourceNotFound.
        body = storage.get(name)
        return Response(
            body,
            media_type=storage.mime_type(name),
            headers=CachePolicy.FOREVER_IN_CDN_AND_STALE_IN_BROWSER.headers(),
        )

    if await store.get_releases(name) is None:
        raise CrateNotFound()
    raise Redirect(f"/{name}/latest", CachePolicy.FOREVER_IN_CDN)


@router.get("/{name}/{version}")
async def crate_details(
    request: Request,
    name: str,
    version: str,
    store: Store = Depends(get_store),
):
    releases = await store.get_releases(name)
    if releases is None:
        raise CrateNotFound()
    release = match_version(releases, version)
    versions = sorted(releases, key=lambda r: version_key(r.version), reverse=True)
    return render_page(
        request,
        "crate/details.html",
        {"title": f"{release.name} {release.version}", "release": release, "versions": versions},
    )
