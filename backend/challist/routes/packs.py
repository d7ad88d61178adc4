from __future__ import annotations
from fastapi import APIRouter, Depends, Response
from challist.auth_deps import get_identity, require_admin
from challist.schemas.pack import PackCreate, PackProgress, PackPublic, PackUpdate
from challist.schemas.user import Identity
from challist.services.packs import PackAggregator
from challist.store import Store, get_store

router = APIRouter(prefix="/packs", tags=["packs"])


async def _public(agg: PackAggregator, pack, known: set[str] | None = None) -> PackPublic:
    return PackPublic.of(pack, await agg.resolve(pack, known))


@router.get("", response_model=dict[str, list[PackPublic]])
async def list_packs(store: Store = Depends(get_store)):
    """Packs grouped by category."""
    agg = PackAggregator(store)
    known = {lv.id for lv in await store.levels.list()}
    return {
        category: [await _public(agg, p, known) for p in packs]
        for category, packs in (await agg.packs_by_category()).items()
    }


@router.get("/progress", response_model=list[PackProgress])
async def my_progress(identity: Identity = Depends(get_identity), store: Store = Depends(get_store)):
    return await PackAggregator(store).progress_all(identity.user_id)


@router.get("/{pack_id}", response_model=PackPublic)
async def get_pack(pack_id: str, store: Store = Depends(get_store)):
    agg = PackAggregator(store)
    return await _public(agg, await agg.get(pack_id))


@router.post("", response_model=PackPublic, status_code=201)
async def create_pack(body: PackCreate, admin: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    agg = PackAggregator(store)
    return await _public(agg, await agg.create(body, created_by=admin.user_id))


@router.patch("/{pack_id}", response_model=PackPublic)
async def update_pack(pack_id: str, body: PackUpdate, _: Identity = Depends(require_admin),
                      store: Store = Depends(get_store)):
    agg = PackAggregator(store)
    return await _public(agg, await agg.update(pack_id, body))


@router.delete("/{pack_id}", status_code=204)
async def delete_pack(pack_id: str, _: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    await PackAggregator(store).delete(pack_id)
    return Response(status_code=204)
