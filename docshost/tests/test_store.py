"""Tests for the SQLAlchemy release store and session error conversion."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from docshost.exceptions import InternalError
from docshost.models import database
from docshost.models.database import Base, session_scope
from docshost.models.tables import Build, Crate, CrateOwner, Owner, Release
from docshost.store import ReleaseStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_sessionmaker(engine, expire_on_commit=False)() as db:
        yield db
    await engine.dispose()


@pytest_asyncio.fixture
async def release_store(session) -> ReleaseStore:
    serde = Crate(name="serde")
    serde_json = Crate(name="serde_json")
    tokio = Crate(name="tokio")
    session.add_all([serde, serde_json, tokio])
    await session.flush()

    def release(crate, version, days, yanked=False):
        return Release(
            crate_id=crate.id,
            version=version,
            yanked=yanked,
            downloads=days * 10,
            release_time=BASE_TIME + timedelta(days=days),
        )

    serde_100 = release(serde, "1.0.0", 1)
    session.add_all([
        serde_100,
        release(serde, "1.0.1", 2),
        release(serde, "1.0.2", 3, yanked=True),
        release(serde_json, "1.0.0", 1),
        release(tokio, "1.0.0", 1),
    ])
    await session.flush()

    dtolnay = Owner(login="dtolnay", name="David")
    session.add_all([Build(release_id=serde_100.id, success=True, log="ok"), dtolnay])
    await session.flush()
    session.add_all([
        CrateOwner(crate_id=serde_json.id, owner_id=dtolnay.id),
        CrateOwner(crate_id=serde.id, owner_id=dtolnay.id),
    ])
    await session.commit()
    return ReleaseStore(session)


class TestReleaseStore:
    @pytest.mark.asyncio
    async def test_get_releases(self, release_store):
        releases = await release_store.get_releases("serde")
        assert sorted(r.version for r in releases) == ["1.0.0", "1.0.1", "1.0.2"]
        assert all(r.name == "serde" for r in releases)
        assert [r.yanked for r in releases if r.version == "1.0.2"] == [True]

    @pytest.mark.asyncio
    async def test_get_releases_unknown_crate(self, release_store):
        assert await release_store.get_releases("nope") is None

    @pytest.mark.asyncio
    async def test_get_build(self, release_store):
        build = await release_store.get_build("serde", "1.0.0", 1)
        assert build is not None
        assert build.success
        assert build.log == "ok"
        assert await release_store.get_build("serde", "1.0.1", 1) is None

    @pytest.mark.asyncio
    async def test_get_owner(self, release_store):
        owner, crates = await release_store.get_owner("dtolnay")
        assert owner.name == "David"
        assert crates == ["serde", "serde_json"]
        assert await release_store.get_owner("nobody") is None

    @pytest.mark.asyncio
    async def test_search_returns_newest_non_yanked_release(self, release_store):
        page = await release_store.search("SERDE")
        assert [(r.name, r.version) for r in page.releases] == [
            ("serde", "1.0.1"),
            ("serde_json", "1.0.0"),
        ]
        assert not page.has_more

    @pytest.mark.asyncio
    async def test_search_pagination(self, release_store):
        first = await release_store.search("serde", page=1, per_page=1)
        assert [r.name for r in first.releases] == ["serde"]
        assert first.has_more
        second = await release_store.search("serde", page=2, per_page=1)
        assert [r.name for r in second.releases] == ["serde_json"]
        assert not second.has_more

    @pytest.mark.asyncio
    async def test_search_no_match(self, release_store):
        page = await release_store.search("rocket")
        assert page.releases == []
        assert not page.has_more


class _FailingSession:
    """Session context manager whose entry fails, like a refused connection."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, *exc_info):
        return False


class TestSessionScope:
    @pytest.fixture
    def failing_sessionmaker(self, monkeypatch):
        def _install(error: Exception) -> None:
            monkeypatch.setattr(database, "get_sessionmaker", lambda: lambda: _FailingSession(error))

        return _install

    @pytest.mark.asyncio
    async def test_operational_error_becomes_internal_error(self, failing_sessionmaker):
        err = OperationalError(
            "SELECT * FROM owners WHERE login = %(login)s",
            {"login": "secret"},
            Exception("conn refused"),
        )
        failing_sessionmaker(err)
        with pytest.raises(InternalError) as info:
            async with session_scope():
                pass
        assert info.value.__cause__ is err
        assert info.value.cause is err
        assert info.value.detail == "conn refused"

    @pytest.mark.asyncio
    async def test_pool_timeout_becomes_internal_error(self, failing_sessionmaker):
        err = PoolError("QueuePool limit of size 5 overflow 5 reached")
        failing_sessionmaker(err)
        with pytest.raises(InternalError) as info:
            async with session_scope():
                pass
        assert info.value.__cause__ is err
        assert info.value.detail == "database connection pool exhausted"

    @pytest.mark.asyncio
    async def test_error_inside_scope_is_converted(self, monkeypatch, session):
        monkeypatch.setattr(database, "get_sessionmaker", lambda: lambda: session)
        err = OperationalError("SELECT 1", {}, Exception("server closed the connection"))
        with pytest.raises(InternalError) as info:
            async with session_scope():
                raise err
        assert info.value.__cause__ is err

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(self, monkeypatch, session):
        monkeypatch.setattr(database, "get_sessionmaker", lambda: lambda: session)
        with pytest.raises(KeyError):
            async with session_scope():
                raise KeyError("not a database error")
