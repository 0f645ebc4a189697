"""Release metadata lookups used by the web handlers.

``ReleaseStore`` reads Postgres through SQLAlchemy. ``MemoryReleaseStore``
has the same interface and is used when no DATABASE_URL is configured
(local development) and in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docshost.models.tables import Build, Crate, CrateOwner, Owner, Release


@dataclass
class ReleaseInfo:
    name: str
    version: str
    description: str | None = None
    yanked: bool = False
    downloads: int = 0
    release_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class BuildInfo:
    id: int
    success: bool
    log: str | None = None


@dataclass
class OwnerInfo:
    login: str
    name: str | None = None
    avatar: str | None = None


@dataclass
class SearchPage:
    releases: list[ReleaseInfo]
    has_more: bool


def _release_info(name: str, row: Release) -> ReleaseInfo:
    return ReleaseInfo(
        name=name,
        version=row.version,
        description=row.description,
        yanked=row.yanked,
        downloads=row.downloads,
        release_time=row.release_time,
    )


class ReleaseStore:
    """SQLAlchemy-backed store. One instance per request (wraps its session)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_releases(self, name: str) -> list[ReleaseInfo] | None:
        """All releases of a crate, or None when the crate does not exist."""
        crate = (
            await self.db.execute(select(Crate).where(Crate.name == name))
        ).scalar_one_or_none()
        if crate is None:
            return None
        rows = (
            await self.db.execute(select(Release).where(Release.crate_id == crate.id))
        ).scalars().all()
        return [_release_info(crate.name, row) for row in rows]

    async def get_build(self, name: str, version: str, build_id: int) -> BuildInfo | None:
        result = await self.db.execute(
            select(Build)
            .join(Release, Build.release_id == Release.id)
            .join(Crate, Release.crate_id == Crate.id)
            .where(Crate.name == name, Release.version == version, Build.id == build_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return BuildInfo(id=row.id, success=row.success, log=row.log)

    async def get_owner(self, login: str) -> tuple[OwnerInfo, list[str]] | None:
        owner = (
            await self.db.execute(select(Owner).where(Owner.login == login))
        ).scalar_one_or_none()
        if owner is None:
            return None
        crates = (
            await self.db.execute(
                select(Crate.name)
                .join(CrateOwner, CrateOwner.crate_id == Crate.id)
                .where(CrateOwner.owner_id == owner.id)
                .order_by(Crate.name)
            )
        ).scalars().all()
        return OwnerInfo(login=owner.login, name=owner.name, avatar=owner.avatar), list(crates)

    async def search(self, query: str, page: int = 1, per_page: int = 30) -> SearchPage:
        """Newest non-yanked release of every crate whose name contains ``query``."""
        newest = (
            select(Release.crate_id, func.max(Release.release_time).label("latest"))
            .where(Release.yanked.is_(False))
            .group_by(Release.crate_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Crate.name, Release)
            .join(Release, Release.crate_id == Crate.id)
            .join(
                newest,
                (newest.c.crate_id == Release.crate_id)
                & (newest.c.latest == Release.release_time),
            )
            .where(Crate.name.ilike(f"%{query}%"))
            .order_by(Crate.name)
            .offset((page - 1) * per_page)
            .limit(per_page + 1)
        )
        rows = result.all()
        releases = [_release_info(name, row) for name, row in rows[:per_page]]
        return SearchPage(releases=releases, has_more=len(rows) > per_page)


class MemoryReleaseStore:
    """In-process store with the same interface as ReleaseStore."""

    def __init__(self) -> None:
        self.releases: dict[str, list[ReleaseInfo]] = {}
        self.builds: dict[tuple[str, str], list[BuildInfo]] = {}
        self.owners: dict[str, OwnerInfo] = {}
        self.owned: dict[str, list[str]] = {}

    # ── Fixtures ──

    def add_release(self, release: ReleaseInfo) -> ReleaseInfo:
        self.releases.setdefault(release.name, []).append(release)
        return release

    def add_build(self, name: str, version: str, build: BuildInfo) -> BuildInfo:
        self.builds.setdefault((name, version), []).append(build)
        return build

    def add_owner(self, owner: OwnerInfo, crates: list[str]) -> OwnerInfo:
        self.owners[owner.login] = owner
        self.owned[owner.login] = sorted(crates)
        return owner

    # ── Queries ──

    async def get_releases(self, name: str) -> list[ReleaseInfo] | None:
        if name not in self.releases:
            return None
        return list(self.releases[name])

    async def get_build(self, name: str, version: str, build_id: int) -> BuildInfo | None:
        for build in self.builds.get((name, version), []):
            if build.id == build_id:
                return build
        return None

    async def get_owner(self, login: str) -> tuple[OwnerInfo, list[str]] | None:
        owner = self.owners.get(login)
        if owner is None:
            return None
        return owner, list(self.owned.get(login, []))

    async def search(self, query: str, page: int = 1, per_page: int = 30) -> SearchPage:
        needle = query.lower()
        matches = []
        for name in sorted(self.releases):
            if needle not in name.lower():
                continue
            live = [r for r in self.releases[name] if not r.yanked]
            if live:
                matches.append(max(live, key=lambda r: r.release_time))
        start = (page - 1) * per_page
        return SearchPage(
            releases=matches[start:start + per_page],
            has_more=len(matches) > start + per_page,
        )
