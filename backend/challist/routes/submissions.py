from __future__ import annotations
from typing import Literal
from fastapi import APIRouter, Body, Depends, Query
from challist.auth_deps import get_identity, require_admin
from challist.errors import NotFoundError
from challist.jobs.audit_placements import audit_after_write
from challist.schemas.submission import SubmissionPublic
from challist.schemas.user import Identity
from challist.services.submissions import SubmissionWorkflow
from challist.store import Store, get_store

router = APIRouter(prefix="/submissions", tags=["submissions"])

StatusFilter = Literal["pending", "approved", "declined", "all"]


@router.post("", response_model=SubmissionPublic, status_code=201)
async def create_submission(
    body: dict = Body(..., description="A level or completion submission, tagged by `type`"),
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
):
    sub = await SubmissionWorkflow(store).create_submission(identity, body)
    return SubmissionPublic.of(sub)


@router.get("/mine", response_model=list[SubmissionPublic])
async def my_submissions(identity: Identity = Depends(get_identity), store: Store = Depends(get_store)):
    subs = await SubmissionWorkflow(store).list_submissions(submitter_id=identity.user_id)
    return [SubmissionPublic.of(s) for s in subs]


@router.get("", response_model=list[SubmissionPublic])
async def list_submissions(
    status: StatusFilter = Query("pending"),
    type: Literal["level", "completion"] | None = Query(None),
    _: Identity = Depends(require_admin),
    store: Store = Depends(get_store),
):
    subs = await SubmissionWorkflow(store).list_submissions(status=None if status == "all" else status, type=type)
    return [SubmissionPublic.of(s) for s in subs]


@router.get("/{submission_id}", response_model=SubmissionPublic)
async def get_submission(submission_id: str, identity: Identity = Depends(get_identity),
                         store: Store = Depends(get_store)):
    sub = await SubmissionWorkflow(store).get_submission(submission_id)
    if sub.submitter_id != identity.user_id and not identity.is_admin:
        # other people's submissions are invisible, not forbidden
        raise NotFoundError(f"Submission not found: {submission_id}")
    return SubmissionPublic.of(sub)


@router.post("/{submission_id}/approve", response_model=SubmissionPublic)
async def approve(submission_id: str, admin: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    sub = await SubmissionWorkflow(store).approve(submission_id, admin)
    if sub.type == "level":
        audit_after_write()
    return SubmissionPublic.of(sub)


@router.post("/{submission_id}/decline", response_model=SubmissionPublic)
async def decline(submission_id: str, admin: Identity = Depends(require_admin), store: Store = Depends(get_store)):
    return SubmissionPublic.of(await SubmissionWorkflow(store).decline(submission_id, admin))
