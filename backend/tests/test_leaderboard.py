import pytest
import pytest_asyncio
from challist.config import settings
from challist.errors import NotFoundError
from challist.models.pack import Pack
from challist.services.leaderboard import LeaderboardAggregator


@pytest_asyncio.fixture
async def world(store, seed_levels, seed_user):
    await seed_levels("a", "b", "c")
    await store.packs.upsert(Pack(id="p", name="P", category="C", bonus_points=10, level_ids=["a", "c"]))
    await seed_user("u1", username="Alpha", levels=["a", "c", "deleted"], packs=["p"])
    await seed_user("u2", username="Beta", levels=["b"])
    await seed_user("u3", username="Gamma")
    return store


@pytest.mark.asyncio
async def test_user_totals(world):
    agg = LeaderboardAggregator(world)
    t = await agg.user_totals("u1")
    assert (t.level_points, t.pack_points, t.total, t.completed_count) == (151, 10, 161, 2)
    assert (await agg.user_totals("u3")).total == 0
    assert (await agg.user_totals("nobody")).total == 0


@pytest.mark.asyncio
async def test_leaderboard_order_and_ranks(world, seed_user):
    await seed_user("u0", username="Tied", levels=["b"])
    rows = await LeaderboardAggregator(world).leaderboard()
    assert [(r.rank, r.user_id, r.total) for r in rows] == [
        (1, "u1", 161), (2, "u0", 76), (3, "u2", 76), (4, "u3", 0),
    ]


@pytest.mark.asyncio
async def test_percent_strategy_changes_level_points(world):
    t = await LeaderboardAggregator(world, "percent").user_totals("u2")
    assert t.level_points == 51


@pytest.mark.asyncio
async def test_aborted_read_returns_empty(world):
    calls = {"n": 0}

    async def abort():
        calls["n"] += 1
        return calls["n"] >= 2

    assert await LeaderboardAggregator(world).leaderboard(abort=abort) == []
    assert (await LeaderboardAggregator(world).user_totals("u1", abort=abort)).total == 0


@pytest.mark.asyncio
async def test_user_profile(world):
    prof = await LeaderboardAggregator(world).user_profile("u1")
    assert prof.user.username == "Alpha"
    assert prof.total == 161 and prof.rank == 1
    assert [c.level.id for c in prof.completions] == ["a", "c"]
    assert {p.pack_id: (p.percent, p.is_completed) for p in prof.packs} == {"p": (100, True)}
    with pytest.raises(NotFoundError):
        await LeaderboardAggregator(world).user_profile("ghost")


@pytest.mark.asyncio
async def test_level_detail(world):
    detail = await LeaderboardAggregator(world).level_detail(2)
    assert detail.level.id == "b" and detail.level.points == 76
    assert [c.user_id for c in detail.completions] == ["u2"]
    with pytest.raises(NotFoundError):
        await LeaderboardAggregator(world).level_detail(9)


@pytest.mark.asyncio
async def test_search(world):
    res = await LeaderboardAggregator(world).search("ALP")
    assert [u.user_id for u in res.users] == ["u1"]
    res = await LeaderboardAggregator(world).search("level b")
    assert [lv.id for lv in res.levels] == ["b"]
    assert (await LeaderboardAggregator(world).search("   ")).levels == []


@pytest.mark.asyncio
async def test_duplicate_completions_score_once(world, seed_user):
    await seed_user("u4", username="Twice", levels=["b", "b"])
    t = await LeaderboardAggregator(world).user_totals("u4")
    assert (t.level_points, t.completed_count) == (76, 1)


@pytest.mark.asyncio
async def test_abandoned_profile_writes_nothing(world, monkeypatch):
    monkeypatch.setattr(settings, "prune_dangling_completions", True)
    fetched = []
    real_list = world.levels.list

    async def counting_list(*args, **kwargs):
        fetched.append(1)
        return await real_list(*args, **kwargs)

    async def gone():
        return True

    monkeypatch.setattr(world.levels, "list", counting_list)
    assert await LeaderboardAggregator(world).user_profile("u1", abort=gone) is None
    assert fetched == []
    entries = (await world.users.get("u1")).completed_levels
    assert [e["level_id"] for e in entries] == ["a", "c", "deleted"]
