import pytest
from challist.errors import ConsistencyError, InvalidTransition, ItemNotFound, NotFoundError, ValidationError
from challist.schemas.user import Identity
from challist.services.ledger import PlacementLedger
from challist.services.submissions import SubmissionWorkflow

PLAYER = Identity(user_id="u1", username="player")
ADMIN = Identity(user_id="admin-1", username="moderator", is_admin=True)


def level_body(**kw):
    body = {
        "type": "level",
        "level_id": "1234",
        "name": "New Hard Level",
        "creator": "Creator",
        "verifier": "Zoinks",
        "video_ref": "https://youtu.be/YP06jhz3Jqo",
        "tags": {"difficulty": "Extreme", "gamemode": "Wave", "decoration_style": "Effect", "extra_tags": ["Memory"]},
    }
    body.update(kw)
    return body


def completion_body(**kw):
    body = {"type": "completion", "level_id": "a", "video_ref": "https://www.youtube.com/watch?v=YP06jhz3Jqo"}
    body.update(kw)
    return body


@pytest.mark.asyncio
async def test_create_normalizes_video(store):
    sub = await SubmissionWorkflow(store).create_submission(PLAYER, level_body())
    assert sub.status == "pending"
    assert sub.payload["video_ref"] == "YP06jhz3Jqo"
    assert sub.submitter_name == "player"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    level_body(video_ref="not a link"),
    level_body(enjoyment_rating=11),
    level_body(suggested_placement=0),
    level_body(name=""),
    level_body(tags={"difficulty": "Easy", "gamemode": "Wave", "decoration_style": "Effect"}),
    {"type": "record", "level_id": "a"},
    {"level_id": "a", "video_ref": "YP06jhz3Jqo"},
])
async def test_create_rejects_invalid_input(store, body):
    with pytest.raises(ValidationError):
        await SubmissionWorkflow(store).create_submission(PLAYER, body)
    assert await store.submissions.list() == []


@pytest.mark.asyncio
async def test_completion_for_unknown_level_rejected(store):
    with pytest.raises(ItemNotFound):
        await SubmissionWorkflow(store).create_submission(PLAYER, completion_body(level_id="nope"))


@pytest.mark.asyncio
async def test_approve_level_inserts_at_suggested_placement(store, seed_levels, seed_user):
    await seed_levels("a", "b", "c")
    await seed_user("verifier-id", username="Zoinks")
    wf = SubmissionWorkflow(store)
    sub = await wf.create_submission(PLAYER, level_body(suggested_placement=2, enjoyment_rating=8))
    sub = await wf.approve(sub.id, ADMIN)
    assert sub.status == "approved" and sub.reviewed_by == "admin-1" and sub.reviewed_at is not None

    order = [(lv.id, lv.placement) for lv in await PlacementLedger(store).list()]
    assert order == [("a", 1), ("1234", 2), ("b", 3), ("c", 4)]
    level = await store.levels.get("1234")
    assert level.enjoyment_ratings == [8]
    assert level.extra_tags == ["Memory"]

    verifier = await store.users.get("verifier-id")
    assert verifier.completed_levels[0]["level_id"] == "1234"
    assert verifier.completed_levels[0]["is_verifier"] is True


@pytest.mark.asyncio
async def test_approve_level_without_placement_appends(store, seed_levels):
    await seed_levels("a", "b")
    wf = SubmissionWorkflow(store)
    sub = await wf.create_submission(PLAYER, level_body(verifier="Nobody Known"))
    await wf.approve(sub.id, ADMIN)
    assert (await store.levels.get("1234")).placement == 3


@pytest.mark.asyncio
async def test_stale_suggestion_past_the_end_appends(store, seed_levels):
    await seed_levels("a")
    wf = SubmissionWorkflow(store)
    sub = await wf.create_submission(PLAYER, level_body(suggested_placement=40))
    await wf.approve(sub.id, ADMIN)
    assert (await store.levels.get("1234")).placement == 2


@pytest.mark.asyncio
async def test_duplicate_completion_approval_keeps_one_entry(store, seed_levels):
    await seed_levels("a")
    wf = SubmissionWorkflow(store)
    first = await wf.create_submission(PLAYER, completion_body(enjoyment_rating=6))
    second = await wf.create_submission(PLAYER, completion_body(video_ref="AAAAAAAAAAA"))
    await wf.approve(first.id, ADMIN)
    await wf.approve(second.id, ADMIN)
    user = await store.users.get("u1")
    assert len(user.completed_levels) == 1
    assert user.completed_levels[0]["video_ref"] == "AAAAAAAAAAA"
    assert user.username == "player"
    assert (await store.levels.get("a")).enjoyment_ratings == [6]


@pytest.mark.asyncio
async def test_decline_archives_without_touching_the_list(store, seed_levels):
    await seed_levels("a")
    wf = SubmissionWorkflow(store)
    sub = await wf.create_submission(PLAYER, level_body())
    sub = await wf.decline(sub.id, ADMIN)
    assert sub.status == "declined"
    assert await store.levels.get("1234") is None
    assert (await wf.get_submission(sub.id)).status == "declined"


@pytest.mark.asyncio
async def test_terminal_states_are_final(store, seed_levels):
    await seed_levels("a")
    wf = SubmissionWorkflow(store)
    sub = await wf.create_submission(PLAYER, completion_body())
    await wf.approve(sub.id, ADMIN)
    with pytest.raises(InvalidTransition):
        await wf.approve(sub.id, ADMIN)
    with pytest.raises(InvalidTransition):
        await wf.decline(sub.id, ADMIN)
    with pytest.raises(NotFoundError):
        await wf.approve("missing", ADMIN)


@pytest.mark.asyncio
async def test_failed_approval_stays_pending(store, seed_levels):
    await seed_levels("a", "b", placements=[1, 1])
    wf = SubmissionWorkflow(store)
    sub = await wf.create_submission(PLAYER, level_body(suggested_placement=1))
    with pytest.raises(ConsistencyError):
        await wf.approve(sub.id, ADMIN)
    assert (await wf.get_submission(sub.id)).status == "pending"


@pytest.mark.asyncio
async def test_list_submissions_filters(store, seed_levels):
    await seed_levels("a")
    wf = SubmissionWorkflow(store)
    s1 = await wf.create_submission(PLAYER, completion_body())
    await wf.create_submission(Identity(user_id="u2", username="other"), level_body())
    await wf.decline(s1.id, ADMIN)
    assert [s.type for s in await wf.list_submissions(status="pending")] == ["level"]
    assert [s.id for s in await wf.list_submissions(submitter_id="u1")] == [s1.id]
    assert len(await wf.list_submissions(type="completion")) == 1
    assert len(await wf.list_submissions()) == 2
