"""FastAPI dependencies shared by the page and API routers."""

from __future__ import annotations

from functools import lru_cache
from typing import AsyncIterator, Union

from docshost.config import get_settings
from docshost.models.database import session_scope
from docshost.storage import Storage
from docshost.store import MemoryReleaseStore, ReleaseStore

Store = Union[ReleaseStore, MemoryReleaseStore]


@lru_cache
def get_memory_store() -> MemoryReleaseStore:
    return MemoryReleaseStore()


async def get_store() -> AsyncIterator[Store]:
    """Release store for one request: Postgres when configured, memory otherwise."""
    if not get_settings().database_url:
        yield get_memory_store()
        return
    async with session_scope() as session:
        yield ReleaseStore(session)


@lru_cache
def get_storage() -> Storage:
    return Storage(get_settings().storage_root)
