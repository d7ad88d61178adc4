from __future__ import annotations
from typing import Any
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool
from challist.config import settings

class Base(DeclarativeBase):
    pass

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONDoc = JSON().with_variant(JSONB(), "postgresql")

def _engine_kwargs(url: str) -> dict[str, Any]:
    # In-memory SQLite (local runs, tests) must share one connection across sessions
    if url.startswith("sqlite"):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {}

engine = create_async_engine(settings.database_url, future=True, echo=False, **_engine_kwargs(settings.database_url))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)
