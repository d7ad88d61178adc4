import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from challist.config import settings
from challist.jobs import audit_placements as job
from challist.services.auditor import PlacementAuditor


@pytest.mark.asyncio
async def test_job_repairs_drifted_list(store, seed_levels):
    await seed_levels("a", "b", "c", placements=[2, 2, 7])
    result = await job._run(repair=True)
    assert result["total"] == 3 and result["issues"] > 0
    assert result["repaired"] > 0 and result["clean"] is True
    levels = sorted(await store.levels.list(), key=lambda lv: lv.placement)
    assert [lv.placement for lv in levels] == [1, 2, 3]


@pytest.mark.asyncio
async def test_job_without_repair_only_reports(store, seed_levels):
    await seed_levels("a", "b", placements=[3, 7])
    result = await job._run(repair=False)
    assert result["repaired"] == 0 and result["clean"] is False and result["issues"] == 2
    assert sorted(lv.placement for lv in await store.levels.list()) == [3, 7]
    assert not await PlacementAuditor(store).verify()


@pytest.mark.asyncio
async def test_job_on_clean_list(store, seed_levels):
    await seed_levels("a", "b")
    assert await job._run(repair=True) == {"total": 2, "issues": 0, "repaired": 0, "clean": True}


class _DownQueue:
    def __init__(self, *args, **kwargs):
        pass

    def enqueue(self, *args, **kwargs):
        raise RedisConnectionError("Error 111 connecting to redis:6379. Connection refused.")


def test_enqueue_returns_none_when_redis_is_down(monkeypatch):
    monkeypatch.setattr(job, "Queue", _DownQueue)
    assert job.enqueue_audit(repair=True) is None


def test_audit_after_write_respects_setting(monkeypatch):
    calls = []
    monkeypatch.setattr(job, "enqueue_audit", lambda repair=False: calls.append(repair))

    monkeypatch.setattr(settings, "audit_after_write", False)
    job.audit_after_write()
    assert calls == []

    monkeypatch.setattr(settings, "audit_after_write", True)
    job.audit_after_write()
    assert calls == [False]


@pytest.mark.asyncio
async def test_audit_job_route(client, admin_headers, user_headers, monkeypatch):
    queued = []

    def fake_enqueue(repair=False):
        queued.append(repair)
        return "job-1"

    monkeypatch.setattr("challist.routes.admin.enqueue_audit", fake_enqueue)
    r = await client.post("/admin/placements/audit-job?repair=true", headers=admin_headers)
    assert r.status_code == 202
    assert r.json() == {"job_id": "job-1"}
    assert queued == [True]

    r = await client.post("/admin/placements/audit-job", headers=user_headers)
    assert r.status_code == 403
    assert queued == [True]


@pytest.mark.asyncio
async def test_audit_job_route_without_redis(client, admin_headers, monkeypatch):
    monkeypatch.setattr(job, "Queue", _DownQueue)
    r = await client.post("/admin/placements/audit-job", headers=admin_headers)
    assert r.status_code == 202
    assert r.json() == {"job_id": None}
