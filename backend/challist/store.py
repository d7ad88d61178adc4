from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generic, TypeVar
import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from challist.db import Base, SessionLocal
from challist.errors import UpstreamError
from challist.models.level import Level
from challist.models.pack import Pack
from challist.models.submission import Submission
from challist.models.user_activity import UserActivity

log = structlog.get_logger()

M = TypeVar("M", bound=Base)


class Repository(Generic[M]):
    """
    Storage access for one entity type: get / list / upsert / delete / update.

    Every call opens its own session and commits on its own, so each call is
    atomic for the row it touches and nothing more. There is no
    way to group calls into one transaction; multi-row operations (placement
    shifts) are sequences of independent writes.
    """

    def __init__(self, model: type[M], session_factory: async_sessionmaker[AsyncSession] | None = None):
        self.model = model
        self.session_factory = session_factory or SessionLocal
        self.table = model.__tablename__

    @asynccontextmanager
    async def _session(self, op: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            log.error("store.failed", table=self.table, op=op, error=str(e))
            raise UpstreamError(f"{self.table}.{op} failed: {e}") from e

    async def get(self, key: Any) -> M | None:
        async with self._session("get") as session:
            return await session.get(self.model, key)

    async def list(self, *where: Any, order_by: Any = None) -> list[M]:
        """Rows matching `where`. Callers must not rely on native order unless they pass `order_by`."""
        async with self._session("list") as session:
            q = select(self.model)
            if where:
                q = q.where(*where)
            if order_by is not None:
                q = q.order_by(*(order_by if isinstance(order_by, (list, tuple)) else (order_by,)))
            return list((await session.execute(q)).scalars().all())

    async def upsert(self, obj: M) -> M:
        async with self._session("upsert") as session:
            merged = await session.merge(obj)
            await session.commit()
            return merged

    async def delete(self, key: Any) -> bool:
        async with self._session("delete") as session:
            obj = await session.get(self.model, key)
            if obj is None:
                return False
            await session.delete(obj)
            await session.commit()
            return True

    async def update(self, key: Any, **fields: Any) -> M | None:
        """Partial update of one row. Returns None when the row is gone."""
        async with self._session("update") as session:
            obj = await session.get(self.model, key)
            if obj is None:
                return None
            for name, value in fields.items():
                setattr(obj, name, value)
            await session.commit()
            return obj


class Store:
    """The four entity repositories the engine consumes."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        self.levels: Repository[Level] = Repository(Level, session_factory)
        self.packs: Repository[Pack] = Repository(Pack, session_factory)
        self.users: Repository[UserActivity] = Repository(UserActivity, session_factory)
        self.submissions: Repository[Submission] = Repository(Submission, session_factory)


store = Store()


def get_store() -> Store:
    return store
