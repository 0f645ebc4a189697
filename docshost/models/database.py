from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from docshost.config import get_settings
from docshost.exceptions import InternalError


class Base(DeclarativeBase):
    pass


@lru_cache
def get_engine() -> AsyncEngine:
    return create_async_engine(
        get_settings().database_url,
        echo=False,
        pool_size=5,
        max_overflow=5,
        # Validate connections before use; drops stale connections from the pool.
        pool_pre_ping=True,
        pool_recycle=1800,
        # Raise immediately if no connection is available within 30 s.
        pool_timeout=30,
    )


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Open a session; database and pool failures surface as InternalError."""
    try:
        async with get_sessionmaker()() as session:
            yield session
    except PoolError as err:
        raise InternalError.from_pool_error(err) from err
    except SQLAlchemyError as err:
        raise InternalError.from_db_error(err) from err

