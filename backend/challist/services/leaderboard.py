from __future__ import annotations
import structlog

from challist.config import settings
from challist.models.level import Level
from challist.models.pack import Pack
from challist.models.user_activity import UserActivity
from challist.schemas.leaderboard import Completer, LeaderboardRow, LevelDetail, SearchResults, UserTotals
from challist.schemas.level import LevelPublic
from challist.schemas.user import CompletedLevel, UserProfile, UserPublic
from challist.services.abort import Abort, aborted
from challist.services.ledger import PlacementLedger, sort_levels
from challist.services.packs import PackAggregator
from challist.services.scoring import points
from challist.services.users import UserActivityService
from challist.store import Store

log = structlog.get_logger()


def _user_public(u: UserActivity) -> UserPublic:
    return UserPublic(user_id=u.user_id, username=u.username, avatar=u.avatar, online=u.online, last_online=u.last_online)


class LeaderboardAggregator:
    """
    Read-only totals over users, levels and packs.

    Each read path takes an optional `abort` coroutine (e.g. the request's
    is_disconnected) that is checked between fetches; an abandoned read returns
    an empty result quietly.
    """

    def __init__(self, store: Store, strategy: str | None = None):
        self.store = store
        self.strategy = strategy or settings.scoring_strategy
        self.ledger = PlacementLedger(store)
        self.packs = PackAggregator(store)
        self.users = UserActivityService(store)

    def _totals(self, user: UserActivity, levels_by_id: dict[str, Level], n: int,
                packs_by_id: dict[str, Pack]) -> UserTotals:
        level_points = 0
        count = 0
        seen: set[str] = set()
        for e in user.completed_levels or []:
            lv = levels_by_id.get(e.get("level_id"))
            if lv is None or lv.id in seen:
                continue
            seen.add(lv.id)
            count += 1
            level_points += points(lv.placement, n, self.strategy) if lv.placement >= 1 else 0
        pack_points = self.packs.bonus_for(user, packs_by_id)
        return UserTotals(
            user_id=user.user_id,
            level_points=level_points,
            pack_points=pack_points,
            total=level_points + pack_points,
            completed_count=count,
        )

    async def user_totals(self, user_id: str, abort: Abort | None = None) -> UserTotals:
        user = await self.store.users.get(user_id)
        if user is None or await aborted(abort):
            return UserTotals(user_id=user_id)
        levels = await self.store.levels.list()
        if await aborted(abort):
            return UserTotals(user_id=user_id)
        packs = await self.store.packs.list()
        return self._totals(user, {lv.id: lv for lv in levels}, len(levels), {p.id: p for p in packs})

    async def leaderboard(self, abort: Abort | None = None) -> list[LeaderboardRow]:
        levels = await self.store.levels.list()
        if await aborted(abort):
            return []
        packs = await self.store.packs.list()
        if await aborted(abort):
            return []
        users = await self.store.users.list(order_by=UserActivity.user_id)
        if await aborted(abort):
            return []

        by_id = {lv.id: lv for lv in levels}
        packs_by_id = {p.id: p for p in packs}
        scored = [(u, self._totals(u, by_id, len(levels), packs_by_id)) for u in users]
        # stable: equal totals keep user id order
        scored.sort(key=lambda pair: pair[1].total, reverse=True)
        return [
            LeaderboardRow(rank=i, username=u.username, avatar=u.avatar, **t.model_dump())
            for i, (u, t) in enumerate(scored, start=1)
        ]

    async def user_profile(self, user_id: str, abort: Abort | None = None) -> UserProfile | None:
        user = await self.users.get(user_id)
        if await aborted(abort):
            return None
        levels = await self.store.levels.list()
        if await aborted(abort):
            return None
        by_id = {lv.id: lv for lv in levels}
        n = len(levels)
        live = await self.users.live_completions(user, by_id, abort)
        if await aborted(abort):
            return None
        packs = await self.packs.progress_all(user_id, abort)
        if await aborted(abort):
            return None
        board = await self.leaderboard(abort)
        if await aborted(abort):
            return None

        row = next((r for r in board if r.user_id == user_id), None)
        completions = sorted(
            (
                CompletedLevel(
                    level=LevelPublic.of(by_id[e["level_id"]], n, self.strategy),
                    video_ref=e.get("video_ref"),
                    completed_at=e["completed_at"],
                    is_verifier=bool(e.get("is_verifier")),
                )
                for e in live
            ),
            key=lambda c: c.level.placement,
        )
        return UserProfile(
            user=_user_public(user),
            level_points=row.level_points if row else 0,
            pack_points=row.pack_points if row else 0,
            total=row.total if row else 0,
            rank=row.rank if row else None,
            completions=completions,
            packs=packs,
        )

    async def level_detail(self, placement: int, abort: Abort | None = None) -> LevelDetail | None:
        level = await self.ledger.get_by_placement(placement)
        n = await self.ledger.count()
        if await aborted(abort):
            return None
        pairs = await self.users.users_who_completed(level.id)
        return LevelDetail(
            level=LevelPublic.of(level, n, self.strategy),
            completions=[
                Completer(
                    user_id=u.user_id,
                    username=u.username,
                    video_ref=e.get("video_ref"),
                    completed_at=e["completed_at"],
                    is_verifier=bool(e.get("is_verifier")),
                )
                for u, e in pairs
            ],
        )

    async def search(self, query: str, abort: Abort | None = None, limit: int = 25) -> SearchResults:
        q = (query or "").strip().lower()
        if not q:
            return SearchResults()
        users = await self.store.users.list()
        if await aborted(abort):
            return SearchResults()
        levels = sort_levels(await self.store.levels.list())
        if await aborted(abort):
            return SearchResults()

        n = len(levels)
        return SearchResults(
            users=[_user_public(u) for u in users if u.username and q in u.username.lower()][:limit],
            levels=[
                LevelPublic.of(lv, n, self.strategy)
                for lv in levels
                if q in lv.name.lower() or q in lv.creator.lower() or q in lv.verifier.lower()
            ][:limit],
        )
