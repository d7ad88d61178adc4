from __future__ import annotations
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Iterable
import structlog

from challist.errors import NotFoundError, ValidationError
from challist.models.pack import Pack
from challist.models.user_activity import UserActivity
from challist.schemas.pack import PackCreate, PackProgress, PackUpdate
from challist.services.abort import Abort, aborted
from challist.services.scoring import round_half_up
from challist.store import Store

log = structlog.get_logger()

UNCATEGORIZED = "Uncategorized"


def pack_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * completed / total)


class PackAggregator:
    """
    Pack membership, per-user progress and bonus points.

    Progress is coverage of the pack's levels; completion is only ever what an
    admin awarded (`completed_packs`). The two are reported side by side and
    never derived from each other.
    """

    def __init__(self, store: Store):
        self.store = store
        self.repo = store.packs

    async def _known_level_ids(self) -> set[str]:
        return {lv.id for lv in await self.store.levels.list()}

    async def _user(self, user_id: str) -> UserActivity | None:
        return await self.store.users.get(user_id)

    # ----- reads -----

    async def get(self, pack_id: str) -> Pack:
        pack = await self.repo.get(pack_id)
        if pack is None:
            raise NotFoundError(f"Pack not found: {pack_id}")
        return pack

    async def list(self) -> list[Pack]:
        return await self.repo.list(order_by=Pack.name)

    async def resolve(self, pack: Pack, known: set[str] | None = None) -> list[str]:
        """The pack's level ids in order, minus any that no longer exist."""
        known = await self._known_level_ids() if known is None else known
        return [lid for lid in pack.level_ids or [] if lid in known]

    def _progress(self, pack: Pack, user: UserActivity | None) -> PackProgress:
        # measured against the pack's stored level list, dangling ids included
        level_ids = list(dict.fromkeys(pack.level_ids or []))
        done_levels = {e.get("level_id") for e in (user.completed_levels if user else None) or []}
        done_packs = {e.get("pack_id") for e in (user.completed_packs if user else None) or []}
        completed = sum(1 for lid in level_ids if lid in done_levels)
        return PackProgress(
            pack_id=pack.id,
            completed=completed,
            total=len(level_ids),
            percent=pack_percent(completed, len(level_ids)),
            is_completed=pack.id in done_packs,
        )

    async def progress(self, user_id: str, pack: Pack) -> PackProgress:
        return self._progress(pack, await self._user(user_id))

    async def progress_all(self, user_id: str, abort: Abort | None = None) -> list[PackProgress]:
        user = await self._user(user_id)
        if await aborted(abort):
            return []
        packs = await self.list()
        if await aborted(abort):
            return []
        return [self._progress(p, user) for p in packs]

    async def completed_packs(self, user_id: str) -> list[Pack]:
        """Awarded packs that still exist."""
        user = await self._user(user_id)
        if user is None:
            return []
        by_id = {p.id: p for p in await self.repo.list()}
        return [by_id[e["pack_id"]] for e in user.completed_packs or [] if e.get("pack_id") in by_id]

    def bonus_for(self, user: UserActivity | None, packs_by_id: dict[str, Pack]) -> int:
        if user is None:
            return 0
        # a missing pack contributes nothing
        awarded = {e.get("pack_id") for e in user.completed_packs or []}
        return sum(packs_by_id[pid].bonus_points for pid in awarded if pid in packs_by_id)

    async def bonus_points(self, user_id: str) -> int:
        return self.bonus_for(await self._user(user_id), {p.id: p for p in await self.repo.list()})

    async def packs_by_category(self) -> dict[str, list[Pack]]:
        groups: dict[str, list[Pack]] = defaultdict(list)
        for p in await self.list():
            groups[p.category or UNCATEGORIZED].append(p)
        return dict(groups)

    # ----- admin writes -----

    async def _check_levels(self, level_ids: Iterable[str]) -> None:
        known = await self._known_level_ids()
        missing = [lid for lid in level_ids if lid not in known]
        if missing:
            raise ValidationError(f"Unknown levels: {missing}", {"level_ids": "unknown level"})

    async def create(self, data: PackCreate, created_by: str | None = None) -> Pack:
        if await self.repo.get(data.id) is not None:
            raise ValidationError(f"Pack {data.id} already exists", {"id": "already exists"})
        await self._check_levels(data.level_ids)
        pack = Pack(created_by=created_by, **data.model_dump())
        pack = await self.repo.upsert(pack)
        log.info("packs.created", pack_id=pack.id, levels=len(pack.level_ids), bonus=pack.bonus_points)
        return pack

    async def update(self, pack_id: str, data: PackUpdate) -> Pack:
        fields: dict[str, Any] = data.model_dump(exclude_unset=True)
        if fields.get("level_ids") is not None:
            await self._check_levels(fields["level_ids"])
        fields = {k: v for k, v in fields.items() if v is not None}
        if not fields:
            return await self.get(pack_id)
        pack = await self.repo.update(pack_id, **fields)
        if pack is None:
            raise NotFoundError(f"Pack not found: {pack_id}")
        log.info("packs.updated", pack_id=pack_id, fields=sorted(fields))
        return pack

    async def delete(self, pack_id: str) -> None:
        if not await self.repo.delete(pack_id):
            raise NotFoundError(f"Pack not found: {pack_id}")
        log.info("packs.deleted", pack_id=pack_id)

    async def award(self, user_id: str, pack_id: str) -> UserActivity:
        """Mark a pack completed for a user. Awarding twice is a no-op."""
        await self.get(pack_id)
        user = await self._user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        entries = user.completed_packs or []
        if any(e.get("pack_id") == pack_id for e in entries):
            return user
        entry = {"pack_id": pack_id, "completed_at": datetime.now(timezone.utc).isoformat()}
        log.info("packs.awarded", user_id=user_id, pack_id=pack_id)
        return await self.store.users.update(user_id, completed_packs=[*entries, entry]) or user

    async def revoke(self, user_id: str, pack_id: str) -> UserActivity:
        user = await self._user(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        entries = user.completed_packs or []
        kept = [e for e in entries if e.get("pack_id") != pack_id]
        if len(kept) == len(entries):
            return user
        log.info("packs.revoked", user_id=user_id, pack_id=pack_id)
        return await self.store.users.update(user_id, completed_packs=kept) or user
