from __future__ import annotations
from typing import Literal
from fastapi import APIRouter, Depends, Query, Request, Response
from challist.auth_deps import require_admin
from challist.config import settings
from challist.jobs.audit_placements import audit_after_write
from challist.schemas.leaderboard import LevelDetail
from challist.schemas.level import LevelInsert, LevelPublic, LevelUpdate, PlacementMove
from challist.schemas.user import Identity
from challist.services.leaderboard import LeaderboardAggregator
from challist.services.ledger import PlacementLedger
from challist.store import Store, get_store

router = APIRouter(prefix="/levels", tags=["levels"])

StrategyParam = Literal["linear", "percent"]


def _strategy(strategy: StrategyParam | None) -> str:
    return strategy or settings.scoring_strategy


@router.get("", response_model=list[LevelPublic])
async def list_levels(
    strategy: StrategyParam | None = Query(None),
    difficulty: str | None = Query(None),
    gamemode: str | None = Query(None),
    q: str | None = Query(None, description="Name/creator/verifier substring"),
    store: Store = Depends(get_store),
):
    levels = await PlacementLedger(store).list()
    n = len(levels)
    if difficulty:
        levels = [lv for lv in levels if lv.difficulty == difficulty]
    if gamemode:
        levels = [lv for lv in levels if lv.gamemode == gamemode]
    if q:
        needle = q.lower()
        levels = [lv for lv in levels if needle in f"{lv.name}\n{lv.creator}\n{lv.verifier}".lower()]
    s = _strategy(strategy)
    return [LevelPublic.of(lv, n, s) for lv in levels]


@router.get("/id/{level_id}", response_model=LevelPublic)
async def get_level(level_id: str, strategy: StrategyParam | None = Query(None), store: Store = Depends(get_store)):
    ledger = PlacementLedger(store)
    level = await ledger.get(level_id)
    return LevelPublic.of(level, await ledger.count(), _strategy(strategy))


@router.get("/{placement}", response_model=LevelDetail)
async def level_detail(
    placement: int,
    request: Request,
    strategy: StrategyParam | None = Query(None),
    store: Store = Depends(get_store),
):
    detail = await LeaderboardAggregator(store, _strategy(strategy)).level_detail(placement, abort=request.is_disconnected)
    if detail is None:
        # client went away mid-read
        return Response(status_code=204)
    return detail


@router.post("", response_model=LevelPublic, status_code=201)
async def create_level(body: LevelInsert, _: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    ledger = PlacementLedger(store)
    level = await ledger.insert(body.to_model(), body.placement)
    audit_after_write()
    return LevelPublic.of(level, await ledger.count(), settings.scoring_strategy)


@router.patch("/id/{level_id}", response_model=LevelPublic)
async def update_level(level_id: str, body: LevelUpdate, _: Identity = Depends(require_admin),
                       store: Store = Depends(get_store)):
    ledger = PlacementLedger(store)
    level = await ledger.update_details(level_id, body.fields())
    return LevelPublic.of(level, await ledger.count(), settings.scoring_strategy)


@router.put("/id/{level_id}/placement", response_model=LevelPublic)
async def move_level(level_id: str, body: PlacementMove, _: Identity = Depends(require_admin),
                     store: Store = Depends(get_store)):
    ledger = PlacementLedger(store)
    level = await ledger.update_placement(level_id, body.placement)
    audit_after_write()
    return LevelPublic.of(level, await ledger.count(), settings.scoring_strategy)


@router.delete("/id/{level_id}", status_code=204)
async def delete_level(level_id: str, _: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    await PlacementLedger(store).remove(level_id)
    audit_after_write()
    return Response(status_code=204)
