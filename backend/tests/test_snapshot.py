import base64
import json
import httpx
import pytest
from challist.errors import UpstreamError, ValidationError
from challist.services.ledger import PlacementLedger
from challist.services.snapshot import GitHubPublishSink, build_snapshot

API = "https://api.github.test"


@pytest.mark.asyncio
async def test_build_snapshot(store, seed_levels):
    await seed_levels("b", "a", placements=[2, 1])
    doc = await build_snapshot(PlacementLedger(store))
    assert doc["metadata"]["totalLevels"] == 2
    assert len(doc["metadata"]["lastUpdated"]) == 10
    assert [lv["id"] for lv in doc["levels"]] == ["a", "b"]
    assert doc["levels"][0]["levelName"] == "Level a"
    assert doc["levels"][0]["tags"]["decorationStyle"] == "Modern"


def _github(branch_exists: bool, file_exists: bool, calls: list):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        path = request.url.path
        if request.method == "GET" and path == "/repos/owner/list/git/ref/heads/staging":
            return httpx.Response(200 if branch_exists else 404, json={"object": {"sha": "stg"}})
        if request.method == "GET" and path == "/repos/owner/list":
            return httpx.Response(200, json={"default_branch": "main"})
        if request.method == "GET" and path == "/repos/owner/list/git/ref/heads/main":
            return httpx.Response(200, json={"object": {"sha": "main-sha"}})
        if request.method == "POST" and path == "/repos/owner/list/git/refs":
            assert json.loads(request.content) == {"ref": "refs/heads/staging", "sha": "main-sha"}
            return httpx.Response(201, json={})
        if request.method == "GET" and path == "/repos/owner/list/contents/src/data/levels.json":
            return httpx.Response(200 if file_exists else 404, json={"sha": "file-sha"})
        if request.method == "PUT" and path == "/repos/owner/list/contents/src/data/levels.json":
            body = json.loads(request.content)
            assert body["branch"] == "staging"
            assert ("sha" in body) == file_exists
            assert json.loads(base64.b64decode(body["content"]))["levels"] == []
            return httpx.Response(200, json={"commit": {"sha": "c0ffee", "html_url": "https://github.test/c0ffee"}})
        return httpx.Response(500)
    return httpx.MockTransport(handler)


def _sink(transport):
    return GitHubPublishSink(token="t", owner="owner", repo="list", path="src/data/levels.json",
                             api_url=API, transport=transport)


@pytest.mark.asyncio
async def test_publish_creates_missing_branch():
    calls = []
    result = await _sink(_github(False, False, calls)).publish({"metadata": {}, "levels": []}, "staging", "msg")
    assert result["commit_sha"] == "c0ffee"
    assert ("POST", "/repos/owner/list/git/refs") in calls


@pytest.mark.asyncio
async def test_publish_updates_existing_file():
    calls = []
    await _sink(_github(True, True, calls)).publish({"metadata": {}, "levels": []}, "staging", "msg")
    assert ("POST", "/repos/owner/list/git/refs") not in calls


@pytest.mark.asyncio
async def test_publish_failure_is_upstream():
    sink = _sink(httpx.MockTransport(lambda request: httpx.Response(503, text="down")))
    with pytest.raises(UpstreamError):
        await sink.publish({"levels": []}, "staging", "msg")


@pytest.mark.asyncio
async def test_publish_requires_configuration():
    with pytest.raises(ValidationError):
        await GitHubPublishSink(token="", owner="o", repo="r").publish({}, "staging", "msg")
