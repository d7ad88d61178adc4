from __future__ import annotations
from typing import Literal
from fastapi import APIRouter, Depends, Query, Request, Response
from challist.auth_deps import get_identity, require_admin
from challist.config import settings
from challist.schemas.leaderboard import LeaderboardRow, SearchResults
from challist.schemas.user import CompletionCreate, CompletionPatch, Identity, UserProfile, UserPublic
from challist.services.leaderboard import LeaderboardAggregator
from challist.services.packs import PackAggregator
from challist.services.users import UserActivityService
from challist.services.video import extract_video_id
from challist.store import Store, get_store

router = APIRouter(tags=["users"])

StrategyParam = Literal["linear", "percent"]


def _public(u) -> UserPublic:
    return UserPublic(user_id=u.user_id, username=u.username, avatar=u.avatar, online=u.online, last_online=u.last_online)


@router.get("/leaderboard", response_model=list[LeaderboardRow])
async def leaderboard(request: Request, strategy: StrategyParam | None = Query(None),
                      limit: int = Query(100, ge=1, le=1000), store: Store = Depends(get_store)):
    rows = await LeaderboardAggregator(store, strategy).leaderboard(abort=request.is_disconnected)
    return rows[:limit]


@router.get("/search", response_model=SearchResults)
async def search(request: Request, q: str = Query("", max_length=100), store: Store = Depends(get_store)):
    return await LeaderboardAggregator(store).search(q, abort=request.is_disconnected)


# ---------- the caller ----------

@router.post("/users/me/presence", response_model=UserPublic)
async def presence(identity: Identity = Depends(get_identity), store: Store = Depends(get_store)):
    return _public(await UserActivityService(store).touch(identity))


@router.post("/users/me/offline", status_code=204)
async def offline(identity: Identity = Depends(get_identity), store: Store = Depends(get_store)):
    await UserActivityService(store).set_offline(identity.user_id)
    return Response(status_code=204)


@router.get("/users/{user_id}", response_model=UserProfile)
async def profile(user_id: str, request: Request, strategy: StrategyParam | None = Query(None),
                  store: Store = Depends(get_store)):
    prof = await LeaderboardAggregator(store, strategy or settings.scoring_strategy).user_profile(
        user_id, abort=request.is_disconnected
    )
    if prof is None:
        return Response(status_code=204)
    return prof


# ---------- admin: completions & pack awards ----------

@router.post("/users/{user_id}/completions", response_model=UserPublic, status_code=201)
async def add_completion(user_id: str, body: CompletionCreate, _: Identity = Depends(require_admin),
                         store: Store = Depends(get_store)):
    user = await UserActivityService(store).add_completion(
        user_id, body.level_id, video_ref=extract_video_id(body.video_ref), is_verifier=body.is_verifier
    )
    return _public(user)


@router.patch("/users/{user_id}/completions/{level_id}", response_model=UserPublic)
async def update_completion(user_id: str, level_id: str, body: CompletionPatch,
                            _: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    fields = body.model_dump(exclude_unset=True)
    if fields.get("video_ref"):
        fields["video_ref"] = extract_video_id(fields["video_ref"]) or fields["video_ref"]
    return _public(await UserActivityService(store).update_completion(user_id, level_id, **fields))


@router.delete("/users/{user_id}/completions/{level_id}", status_code=204)
async def remove_completion(user_id: str, level_id: str, _: Identity = Depends(require_admin),
                            store: Store = Depends(get_store)):
    await UserActivityService(store).remove_completion(user_id, level_id)
    return Response(status_code=204)


@router.post("/users/{user_id}/packs/{pack_id}", response_model=UserPublic)
async def award_pack(user_id: str, pack_id: str, _: Identity = Depends(require_admin),
                     store: Store = Depends(get_store)):
    return _public(await PackAggregator(store).award(user_id, pack_id))


@router.delete("/users/{user_id}/packs/{pack_id}", response_model=UserPublic)
async def revoke_pack(user_id: str, pack_id: str, _: Identity = Depends(require_admin),
                      store: Store = Depends(get_store)):
    return _public(await PackAggregator(store).revoke(user_id, pack_id))
