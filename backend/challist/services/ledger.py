from __future__ import annotations
from typing import Any, Iterable
import structlog

from challist.errors import (
    DuplicatePlacement,
    ItemNotFound,
    NotFoundError,
    PlacementGap,
    UpstreamError,
    ValidationError,
)
from challist.models.level import Level
from challist.store import Store

log = structlog.get_logger()

# ---------- helpers: ordering / contiguity ----------

def sort_levels(levels: Iterable[Level]) -> list[Level]:
    """Explicit placement order; id breaks ties so duplicated ranks sort deterministically."""
    return sorted(levels, key=lambda lv: (lv.placement, lv.id))


def check_contiguous(levels: list[Level]) -> None:
    """Raise DuplicatePlacement / PlacementGap unless placements are exactly 1..N."""
    counts: dict[int, int] = {}
    for lv in levels:
        counts[lv.placement] = counts.get(lv.placement, 0) + 1
    dups = sorted(p for p, c in counts.items() if c > 1)
    if dups:
        raise DuplicatePlacement(f"Duplicate placements {dups}; run the placement repair", dups)
    missing = sorted(set(range(1, len(levels) + 1)) - set(counts))
    if missing:
        raise PlacementGap(f"Missing placements {missing}; run the placement repair", missing)


# ---------- the ledger ----------

class PlacementLedger:
    """
    Ordered container over the stored levels. The only writer of `placement`.

    Mutations read the whole collection, refuse to touch a drifted one, compute
    the new ordering in memory, then persist the changed rows one by one. The
    store has no multi-row transaction, so a failure halfway leaves drift behind;
    that is surfaced to the caller (UpstreamError) and healed by the auditor,
    never rolled back here.
    """

    def __init__(self, store: Store):
        self.store = store
        self.repo = store.levels

    # ----- reads -----

    async def list(self) -> list[Level]:
        return sort_levels(await self.repo.list())

    async def count(self) -> int:
        return len(await self.repo.list())

    async def get(self, level_id: str) -> Level:
        lv = await self.repo.get(level_id)
        if lv is None:
            raise ItemNotFound(level_id)
        return lv

    async def get_by_placement(self, placement: int) -> Level:
        rows = await self.repo.list(Level.placement == placement)
        if not rows:
            raise NotFoundError(f"No level at placement {placement}")
        if len(rows) > 1:
            raise DuplicatePlacement(f"{len(rows)} levels claim placement {placement}", [placement])
        return rows[0]

    async def _load_checked(self) -> list[Level]:
        levels = await self.list()
        check_contiguous(levels)
        return levels

    async def _write_placements(self, moves: list[tuple[Level, int]], op: str) -> None:
        for done, (lv, new) in enumerate(moves):
            try:
                updated = await self.repo.update(lv.id, placement=new)
            except UpstreamError:
                log.error("ledger.partial_write", op=op, written=done, pending=len(moves) - done, level_id=lv.id)
                raise
            if updated is None:
                # removed concurrently between our read and this write
                log.warning("ledger.shift_row_missing", op=op, level_id=lv.id)
            lv.placement = new

    # ----- mutations -----

    async def insert(self, level: Level, at_placement: int | None = None) -> Level:
        """Put `level` at `at_placement` (append when None), shifting the tail down by one."""
        levels = await self._load_checked()
        n = len(levels)
        if any(lv.id == level.id for lv in levels):
            raise ValidationError(f"Level {level.id} is already on the list", {"id": "already exists"})
        at = n + 1 if at_placement is None else int(at_placement)
        if not 1 <= at <= n + 1:
            raise ValidationError(f"Placement must be between 1 and {n + 1}", {"placement": "out of range"})

        # last row first: no two rows share a placement at any point of the shift
        moves = [(lv, lv.placement + 1) for lv in reversed(levels) if lv.placement >= at]
        log.info("ledger.insert", level_id=level.id, placement=at, shifted=len(moves), total=n + 1)
        await self._write_placements(moves, "insert")

        level.placement = at
        return await self.repo.upsert(level)

    async def remove(self, level_id: str) -> Level:
        """Delete a level and close the gap it leaves."""
        levels = await self.list()
        target = next((lv for lv in levels if lv.id == level_id), None)
        if target is None:
            raise ItemNotFound(level_id)
        check_contiguous(levels)

        if not await self.repo.delete(level_id):
            raise ItemNotFound(level_id)
        moves = [(lv, lv.placement - 1) for lv in levels if lv.placement > target.placement]
        log.info("ledger.remove", level_id=level_id, placement=target.placement, shifted=len(moves), total=len(levels) - 1)
        await self._write_placements(moves, "remove")
        return target

    async def update_placement(self, level_id: str, new_placement: int) -> Level:
        """
        Move a level. Computed as remove + insert over the in-memory order, then
        every row whose rank changed is written in one pass by current placement.
        """
        levels = await self.list()
        target = next((lv for lv in levels if lv.id == level_id), None)
        if target is None:
            raise ItemNotFound(level_id)
        check_contiguous(levels)
        n = len(levels)
        if not 1 <= new_placement <= n:
            raise ValidationError(f"Placement must be between 1 and {n}", {"placement": "out of range"})
        old = target.placement
        if new_placement == old:
            return target

        order = [lv for lv in levels if lv.id != level_id]
        order.insert(new_placement - 1, target)
        moves = [(lv, rank) for rank, lv in enumerate(order, start=1) if lv.placement != rank]
        moves.sort(key=lambda m: m[0].placement)
        log.info("ledger.move", level_id=level_id, old=old, new=new_placement, shifted=len(moves) - 1)
        await self._write_placements(moves, "move")
        return target

    async def update_details(self, level_id: str, fields: dict[str, Any]) -> Level:
        if "placement" in fields:
            raise ValidationError("Placement changes go through update_placement", {"placement": "not editable here"})
        if not fields:
            return await self.get(level_id)
        updated = await self.repo.update(level_id, **fields)
        if updated is None:
            raise ItemNotFound(level_id)
        log.info("ledger.update_details", level_id=level_id, fields=sorted(fields))
        return updated

    async def add_enjoyment_rating(self, level_id: str, rating: float) -> Level:
        if not 0 <= rating <= 10:
            raise ValidationError("Enjoyment rating must be between 0 and 10", {"enjoyment_rating": "out of range"})
        lv = await self.get(level_id)
        updated = await self.repo.update(level_id, enjoyment_ratings=[*(lv.enjoyment_ratings or []), rating])
        if updated is None:
            raise ItemNotFound(level_id)
        return updated
