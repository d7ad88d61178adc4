from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Iterable
import structlog

from challist.config import settings
from challist.errors import ItemNotFound, NotFoundError, ValidationError
from challist.models.user_activity import UserActivity
from challist.schemas.user import Identity
from challist.services.abort import Abort, aborted
from challist.store import Store

log = structlog.get_logger()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def levenshtein(a: str, b: str) -> int:
    """Case-insensitive edit distance."""
    a, b = a.lower(), b.lower()
    if len(a) < len(b):
        a, b = b, a
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i]
        for j, cb in enumerate(b, start=1):
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + (ca != cb)))
        prev = cur
    return prev[-1]


def similarity(a: str, b: str) -> float:
    """0..100, 100 meaning identical ignoring case."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return (longest - levenshtein(a, b)) / longest * 100


class UserActivityService:
    """Per-user presence, completed levels and awarded packs."""

    def __init__(self, store: Store):
        self.store = store
        self.repo = store.users

    async def get(self, user_id: str) -> UserActivity:
        user = await self.repo.get(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    async def list(self) -> list[UserActivity]:
        return await self.repo.list(order_by=UserActivity.user_id)

    # ----- presence -----

    async def touch(self, identity: Identity) -> UserActivity:
        user = await self.repo.get(identity.user_id)
        if user is None:
            user = UserActivity(user_id=identity.user_id, completed_levels=[], completed_packs=[])
        user.username = identity.username
        user.avatar = identity.avatar
        user.online = True
        user.last_online = datetime.now(timezone.utc)
        return await self.repo.upsert(user)

    async def set_offline(self, user_id: str) -> None:
        if await self.repo.update(user_id, online=False, last_online=datetime.now(timezone.utc)) is None:
            raise NotFoundError(f"User not found: {user_id}")

    # ----- completions -----

    async def live_completions(self, user: UserActivity, level_ids: Iterable[str] | None = None,
                               abort: Abort | None = None) -> list[dict[str, Any]]:
        """
        Completions whose level still exists. Entries pointing at deleted levels
        are dropped here and, when PRUNE_DANGLING_COMPLETIONS is on, written back
        unless the read was abandoned first.
        """
        known = set(level_ids) if level_ids is not None else {lv.id for lv in await self.store.levels.list()}
        entries = list(user.completed_levels or [])
        live = [e for e in entries if e.get("level_id") in known]
        if len(live) != len(entries) and settings.prune_dangling_completions and not await aborted(abort):
            log.info("users.prune_completions", user_id=user.user_id, dropped=len(entries) - len(live))
            await self.repo.update(user.user_id, completed_levels=live)
        return live

    async def upsert_completion(self, user_id: str, level_id: str, video_ref: str | None = None,
                                is_verifier: bool = False, username: str | None = None) -> UserActivity:
        """Last write wins: an existing (user, level) entry is replaced, never duplicated."""
        user = await self.repo.get(user_id)
        if user is None:
            user = UserActivity(user_id=user_id, username=username, completed_levels=[], completed_packs=[])
        entry = {"level_id": level_id, "video_ref": video_ref, "completed_at": _now_iso(), "is_verifier": is_verifier}
        user.completed_levels = [e for e in (user.completed_levels or []) if e.get("level_id") != level_id] + [entry]
        return await self.repo.upsert(user)

    async def add_completion(self, user_id: str, level_id: str, video_ref: str | None = None,
                             is_verifier: bool = False) -> UserActivity:
        """Admin add. First write wins: an existing entry is left alone."""
        if await self.store.levels.get(level_id) is None:
            raise ItemNotFound(level_id)
        user = await self.get(user_id)
        if any(e.get("level_id") == level_id for e in user.completed_levels or []):
            raise ValidationError(f"{user_id} already has {level_id}", {"level_id": "already completed"})
        entry = {"level_id": level_id, "video_ref": video_ref, "completed_at": _now_iso(), "is_verifier": is_verifier}
        updated = await self.repo.update(user_id, completed_levels=[*(user.completed_levels or []), entry])
        log.info("users.completion_added", user_id=user_id, level_id=level_id, is_verifier=is_verifier)
        return updated or user

    async def update_completion(self, user_id: str, level_id: str, **fields: Any) -> UserActivity:
        allowed = {"video_ref", "is_verifier"}
        bad = set(fields) - allowed
        if bad:
            raise ValidationError("Only video_ref and is_verifier can be edited", {k: "not editable" for k in bad})
        user = await self.get(user_id)
        entries = [dict(e) for e in user.completed_levels or []]
        hit = next((e for e in entries if e.get("level_id") == level_id), None)
        if hit is None:
            raise NotFoundError(f"{user_id} has no completion for {level_id}")
        hit.update({k: v for k, v in fields.items() if v is not None})
        return await self.repo.update(user_id, completed_levels=entries) or user

    async def remove_completion(self, user_id: str, level_id: str) -> UserActivity:
        user = await self.get(user_id)
        entries = user.completed_levels or []
        kept = [e for e in entries if e.get("level_id") != level_id]
        if len(kept) == len(entries):
            raise NotFoundError(f"{user_id} has no completion for {level_id}")
        log.info("users.completion_removed", user_id=user_id, level_id=level_id)
        return await self.repo.update(user_id, completed_levels=kept) or user

    async def users_who_completed(self, level_id: str) -> list[tuple[UserActivity, dict[str, Any]]]:
        """(user, entry) pairs for one level, newest completion first."""
        out = []
        for user in await self.repo.list():
            entry = next((e for e in user.completed_levels or [] if e.get("level_id") == level_id), None)
            if entry is not None:
                out.append((user, entry))
        out.sort(key=lambda pair: pair[1].get("completed_at") or "", reverse=True)
        return out

    # ----- lookup -----

    async def find_user_by_fuzzy_name(self, name: str, threshold: float | None = None) -> UserActivity | None:
        """Best username match at or above `threshold` percent similarity, else None."""
        threshold = settings.fuzzy_match_threshold if threshold is None else threshold
        name = (name or "").strip()
        if not name:
            return None
        users = [u for u in await self.repo.list() if u.username]
        if not users:
            return None
        scored = sorted(((similarity(name, u.username), u) for u in users), key=lambda t: t[0], reverse=True)
        best_score, best = scored[0]
        if best_score >= threshold:
            log.info("users.fuzzy_match", name=name, username=best.username, similarity=round(best_score, 1))
            return best
        log.info("users.fuzzy_no_match", name=name, best=best.username, similarity=round(best_score, 1))
        return None
