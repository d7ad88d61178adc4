from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from challist.auth_deps import require_admin
from challist.config import settings
from challist.jobs.audit_placements import enqueue_audit
from challist.schemas.audit import Diagnosis, RepairResult
from challist.schemas.user import Identity
from challist.services.auditor import PlacementAuditor
from challist.services.ledger import PlacementLedger
from challist.services.snapshot import GitHubPublishSink, PublishSink, build_snapshot
from challist.store import Store, get_store

router = APIRouter(tags=["admin"])


class PublishRequest(BaseModel):
    branch: str | None = None
    message: str | None = None


def get_publish_sink() -> PublishSink:
    return GitHubPublishSink()


@router.get("/snapshot")
async def snapshot(store: Store = Depends(get_store)):
    return await build_snapshot(PlacementLedger(store))


@router.get("/admin/placements/diagnose", response_model=Diagnosis)
async def diagnose(_: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    return await PlacementAuditor(store).diagnose()


@router.post("/admin/placements/repair", response_model=RepairResult)
async def repair(dry_run: bool = Query(True), _: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    return await PlacementAuditor(store).repair(dry_run=dry_run)


@router.get("/admin/placements/verify")
async def verify(_: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    return {"ok": await PlacementAuditor(store).verify()}


@router.post("/admin/placements/audit-job", status_code=202)
async def queue_audit(repair: bool = Query(False), _: Identity = Depends(require_admin)):
    return {"job_id": enqueue_audit(repair=repair)}


@router.post("/admin/publish")
async def publish(
    body: PublishRequest,
    admin: Identity = Depends(require_admin),
    store: Store = Depends(get_store),
    sink: PublishSink = Depends(get_publish_sink),
):
    document = await build_snapshot(PlacementLedger(store))
    branch = body.branch or settings.publish_branch
    message = body.message or f"Update level list ({document['metadata']['totalLevels']} levels) by {admin.username}"
    return await sink.publish(document, branch, message)
