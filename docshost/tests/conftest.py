"""Shared fixtures for docshost tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from docshost.main import create_app
from docshost.storage import Storage
from docshost.store import BuildInfo, MemoryReleaseStore, OwnerInfo, ReleaseInfo
from docshost.telemetry import clear_error_reporters
from docshost.web.dependencies import get_storage, get_store


@pytest.fixture
def store() -> MemoryReleaseStore:
    """An empty in-memory release store."""
    return MemoryReleaseStore()


@pytest.fixture
def fake_release(store):
    """Factory adding a release to ``store``; releases are spaced a day apart."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _add(name: str = "dummy", version: str = "1.0.0", yanked: bool = False, **kwargs):
        counter["n"] += 1
        return store.add_release(
            ReleaseInfo(
                name=name,
                version=version,
                yanked=yanked,
                release_time=base + timedelta(days=counter["n"]),
                **kwargs,
            )
        )

    return _add


@pytest.fixture
def storage(tmp_path) -> Storage:
    (tmp_path / "style.css").write_text("body { color: black; }")
    return Storage(tmp_path)


@pytest.fixture
def app(store, storage):
    application = create_app()
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_storage] = lambda: storage
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture(autouse=True)
def _reset_reporters():
    yield
    clear_error_reporters()


@pytest.fixture
def owner(store, fake_release) -> OwnerInfo:
    fake_release(name="serde", version="1.0.0")
    store.add_build("serde", "1.0.0", BuildInfo(id=7, success=True, log="ok"))
    return store.add_owner(OwnerInfo(login="dtolnay", name="David"), ["serde"])
