from __future__ import annotations
import os

# settings and the engine are built at import time; point them at an in-memory db first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_USER_IDS"] = "admin-1"
os.environ["SCORING_STRATEGY"] = "linear"
os.environ["AUDIT_AFTER_WRITE"] = "0"

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from challist.db import Base, engine  # noqa: E402
from challist.models.level import Level  # noqa: E402
from challist.models.user_activity import UserActivity  # noqa: E402
from challist.security import make_identity_token  # noqa: E402
from challist.store import Store  # noqa: E402


@pytest_asyncio.fixture
async def store():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield Store()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(store):
    from challist.main import app
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_level(level_id: str, placement: int = 0, **kw) -> Level:
    data = dict(
        id=level_id,
        placement=placement,
        name=kw.pop("name", f"Level {level_id}"),
        creator="someone",
        verifier="somebody",
        video_ref=None,
        difficulty="Extreme",
        gamemode="Mixed",
        decoration_style="Modern",
        extra_tags=[],
        enjoyment_ratings=[],
    )
    data.update(kw)
    return Level(**data)


@pytest.fixture
def level_factory():
    return make_level


@pytest_asyncio.fixture
async def seed_levels(store):
    """Store levels a..z in order, bypassing the ledger. Returns the ids."""
    async def _seed(*ids: str, placements: list[int] | None = None) -> list[str]:
        for i, lid in enumerate(ids):
            p = placements[i] if placements else i + 1
            await store.levels.upsert(make_level(lid, p))
        return list(ids)
    return _seed


@pytest_asyncio.fixture
async def seed_user(store):
    async def _seed(user_id: str, username: str | None = None, levels: list[str] = (), packs: list[str] = ()) -> UserActivity:
        user = UserActivity(
            user_id=user_id,
            username=username or user_id,
            completed_levels=[
                {"level_id": lid, "video_ref": None, "completed_at": f"2026-01-{i + 1:02d}T00:00:00+00:00", "is_verifier": False}
                for i, lid in enumerate(levels)
            ],
            completed_packs=[{"pack_id": pid, "completed_at": "2026-01-01T00:00:00+00:00"} for pid in packs],
        )
        return await store.users.upsert(user)
    return _seed


def auth_headers(user_id: str = "user-1", username: str = "player", is_admin: bool = False) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_identity_token(user_id, username, is_admin=is_admin)}"}


@pytest.fixture
def user_headers():
    return auth_headers()


@pytest.fixture
def admin_headers():
    # admin via ADMIN_USER_IDS, not via the token claim
    return auth_headers("admin-1", "moderator")
