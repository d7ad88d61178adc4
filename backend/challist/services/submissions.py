from __future__ import annotations
from datetime import datetime, timezone
from typing import Any
import structlog
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from challist.errors import EngineError, InvalidTransition, ItemNotFound, NotFoundError, ValidationError
from challist.models.level import Level
from challist.models.submission import Submission
from challist.schemas.level import LevelCreate
from challist.schemas.submission import CompletionSubmission, LevelSubmission, SubmissionCreate
from challist.schemas.user import Identity
from challist.services.ledger import PlacementLedger
from challist.services.users import UserActivityService
from challist.store import Store

log = structlog.get_logger()

_submission_adapter: TypeAdapter = TypeAdapter(SubmissionCreate)


def parse_submission(data: Any) -> LevelSubmission | CompletionSubmission:
    """Validate a raw submission body, turning pydantic errors into a ValidationError."""
    if isinstance(data, (LevelSubmission, CompletionSubmission)):
        return data
    try:
        return _submission_adapter.validate_python(data)
    except PydanticValidationError as e:
        errors = {".".join(str(p) for p in err["loc"]) or "body": err["msg"] for err in e.errors()}
        raise ValidationError("Invalid submission", errors) from None


class SubmissionWorkflow:
    """
    pending -> approved | declined, exactly once.

    Approval is the only path by which a user's request mutates the list; the
    ledger write comes first and the status flip last, so a failed approval
    leaves the submission pending and retryable.
    """

    def __init__(self, store: Store, ledger: PlacementLedger | None = None, users: UserActivityService | None = None):
        self.store = store
        self.repo = store.submissions
        self.ledger = ledger or PlacementLedger(store)
        self.users = users or UserActivityService(store)

    async def create_submission(self, identity: Identity, data: Any) -> Submission:
        body = parse_submission(data)
        if isinstance(body, CompletionSubmission) and await self.store.levels.get(body.level_id) is None:
            raise ItemNotFound(body.level_id)
        sub = Submission(
            type=body.type,
            submitter_id=identity.user_id,
            submitter_name=identity.username,
            status="pending",
            payload=body.model_dump(mode="json"),
        )
        sub = await self.repo.upsert(sub)
        log.info("submission.created", submission_id=sub.id, type=sub.type, submitter_id=sub.submitter_id)
        return sub

    async def get_submission(self, submission_id: str) -> Submission:
        sub = await self.repo.get(submission_id)
        if sub is None:
            raise NotFoundError(f"Submission not found: {submission_id}")
        return sub

    async def list_submissions(self, status: str | None = None, submitter_id: str | None = None,
                               type: str | None = None) -> list[Submission]:
        where = []
        if status:
            where.append(Submission.status == status)
        if submitter_id:
            where.append(Submission.submitter_id == submitter_id)
        if type:
            where.append(Submission.type == type)
        return await self.repo.list(*where, order_by=Submission.submitted_at.desc())

    async def _pending(self, submission_id: str) -> Submission:
        sub = await self.get_submission(submission_id)
        if sub.status != "pending":
            raise InvalidTransition(
                f"Submission {submission_id} is already {sub.status}", {"status": sub.status}
            )
        return sub

    async def _close(self, sub: Submission, status: str, reviewer: Identity) -> Submission:
        updated = await self.repo.update(
            sub.id, status=status, reviewed_at=datetime.now(timezone.utc), reviewed_by=reviewer.user_id
        )
        if updated is None:
            raise NotFoundError(f"Submission not found: {sub.id}")
        return updated

    async def approve(self, submission_id: str, reviewer: Identity) -> Submission:
        sub = await self._pending(submission_id)
        body = parse_submission(sub.payload)
        if isinstance(body, LevelSubmission):
            await self._approve_level(body)
        else:
            await self._approve_completion(sub, body)
        sub = await self._close(sub, "approved", reviewer)
        log.info("submission.approved", submission_id=sub.id, type=sub.type, reviewer=reviewer.user_id)
        return sub

    async def decline(self, submission_id: str, reviewer: Identity) -> Submission:
        sub = await self._pending(submission_id)
        sub = await self._close(sub, "declined", reviewer)
        log.info("submission.declined", submission_id=sub.id, type=sub.type, reviewer=reviewer.user_id)
        return sub

    # ----- approval side effects -----

    async def _approve_level(self, body: LevelSubmission) -> Level:
        level = LevelCreate(
            id=body.level_id,
            name=body.name,
            creator=body.creator,
            verifier=body.verifier,
            video_ref=body.video_ref,
            tags=body.tags,
            description=body.description,
        ).to_model()
        at = body.suggested_placement
        if at is not None:
            # a stale suggestion past the end just appends
            at = min(at, await self.ledger.count() + 1)
        level = await self.ledger.insert(level, at)

        if body.enjoyment_rating is not None:
            await self._best_effort("enjoyment_rating", self.ledger.add_enjoyment_rating(level.id, body.enjoyment_rating))
        await self._best_effort("verifier_credit", self._credit_verifier(level))
        return level

    async def _credit_verifier(self, level: Level) -> None:
        user = await self.users.find_user_by_fuzzy_name(level.verifier)
        if user is None:
            return
        await self.users.upsert_completion(user.user_id, level.id, video_ref=level.video_ref, is_verifier=True)
        log.info("submission.verifier_credited", level_id=level.id, user_id=user.user_id)

    async def _approve_completion(self, sub: Submission, body: CompletionSubmission) -> None:
        if await self.store.levels.get(body.level_id) is None:
            raise ItemNotFound(body.level_id)
        await self.users.upsert_completion(
            sub.submitter_id, body.level_id, video_ref=body.video_ref, username=sub.submitter_name
        )
        if body.enjoyment_rating is not None:
            await self._best_effort("enjoyment_rating", self.ledger.add_enjoyment_rating(body.level_id, body.enjoyment_rating))

    async def _best_effort(self, what: str, coro) -> None:
        try:
            await coro
        except EngineError as e:
            log.warning("submission.side_effect_failed", step=what, error=str(e))
