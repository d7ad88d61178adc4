from __future__ import annotations
import base64
import json
from datetime import datetime, timezone
from typing import Any, Protocol
import httpx
import structlog

from challist.config import settings
from challist.errors import UpstreamError, ValidationError
from challist.models.level import Level
from challist.services.ledger import PlacementLedger

log = structlog.get_logger()


def level_document(lv: Level) -> dict[str, Any]:
    return {
        "placement": lv.placement,
        "levelName": lv.name,
        "creator": lv.creator,
        "verifier": lv.verifier,
        "id": lv.id,
        "youtubeVideoId": lv.video_ref,
        "tags": {
            "difficulty": lv.difficulty,
            "gamemode": lv.gamemode,
            "decorationStyle": lv.decoration_style,
            "extraTags": list(lv.extra_tags or []),
        },
        "description": lv.description or "",
    }


async def build_snapshot(ledger: PlacementLedger) -> dict[str, Any]:
    """The whole ordered list as the static JSON document the site serves."""
    levels = await ledger.list()
    return {
        "metadata": {
            "totalLevels": len(levels),
            "lastUpdated": datetime.now(timezone.utc).date().isoformat(),
        },
        "levels": [level_document(lv) for lv in levels],
    }


class PublishSink(Protocol):
    async def publish(self, document: dict[str, Any], revision_line: str, message: str) -> dict[str, Any]: ...


class GitHubPublishSink:
    """
    Writes the snapshot to a file on a branch through the GitHub REST API.
    The branch is cut from the default branch the first time it is needed.
    """

    def __init__(self, token: str | None = None, owner: str | None = None, repo: str | None = None,
                 path: str | None = None, api_url: str | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.token = token if token is not None else settings.github_token
        self.owner = owner or settings.github_owner
        self.repo = repo or settings.github_repo
        self.path = path or settings.publish_path
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.transport = transport

    @property
    def _base(self) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}"

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/vnd.github+json", "Authorization": f"Bearer {self.token}"}
        return httpx.AsyncClient(
            headers=headers,
            timeout=10,
            transport=self.transport or httpx.AsyncHTTPTransport(retries=1),
        )

    @staticmethod
    def _ok(resp: httpx.Response, what: str) -> dict[str, Any]:
        if resp.status_code >= 400:
            log.error("publish.github_failed", step=what, status=resp.status_code, body=resp.text[:200])
            raise UpstreamError(f"GitHub {what} failed with {resp.status_code}")
        return resp.json()

    async def _ensure_branch(self, client: httpx.AsyncClient, branch: str) -> None:
        resp = await client.get(f"{self._base}/git/ref/heads/{branch}")
        if resp.status_code == 200:
            return
        if resp.status_code != 404:
            self._ok(resp, "branch lookup")
        default = self._ok(await client.get(self._base), "repo lookup").get("default_branch", "main")
        base = self._ok(await client.get(f"{self._base}/git/ref/heads/{default}"), "default branch lookup")
        self._ok(
            await client.post(f"{self._base}/git/refs", json={"ref": f"refs/heads/{branch}", "sha": base["object"]["sha"]}),
            "branch create",
        )
        log.info("publish.branch_created", branch=branch, base=default)

    async def publish(self, document: dict[str, Any], revision_line: str, message: str) -> dict[str, Any]:
        if not (self.token and self.owner and self.repo):
            raise ValidationError("Publishing is not configured", {"github": "token, owner and repo are required"})
        content = base64.b64encode(json.dumps(document, indent=2).encode()).decode()
        try:
            async with self._client() as client:
                await self._ensure_branch(client, revision_line)
                body: dict[str, Any] = {"message": message, "content": content, "branch": revision_line}
                current = await client.get(f"{self._base}/contents/{self.path}", params={"ref": revision_line})
                if current.status_code == 200:
                    body["sha"] = current.json()["sha"]
                result = self._ok(await client.put(f"{self._base}/contents/{self.path}", json=body), "file write")
        except httpx.HTTPError as e:
            log.error("publish.transport_failed", error=str(e))
            raise UpstreamError(f"GitHub unreachable: {e}") from e
        commit = result.get("commit") or {}
        log.info("publish.done", branch=revision_line, commit=commit.get("sha"))
        return {"branch": revision_line, "commit_sha": commit.get("sha"), "commit_url": commit.get("html_url")}
