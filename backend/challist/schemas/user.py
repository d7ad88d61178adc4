from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field

from challist.schemas.level import LevelPublic
from challist.schemas.pack import PackProgress


class Identity(BaseModel):
    """Caller as vouched for by the identity provider's token."""
    user_id: str
    username: str
    avatar: str | None = None
    is_admin: bool = False


class CompletionEntry(BaseModel):
    level_id: str
    video_ref: str | None = None
    completed_at: datetime
    is_verifier: bool = False


class PackCompletionEntry(BaseModel):
    pack_id: str
    completed_at: datetime


class CompletionCreate(BaseModel):
    user_id: str
    level_id: str
    video_ref: str | None = None
    is_verifier: bool = False


class CompletionPatch(BaseModel):
    video_ref: str | None = None
    is_verifier: bool | None = None


class UserPublic(BaseModel):
    user_id: str
    username: str | None = None
    avatar: str | None = None
    online: bool = False
    last_online: datetime | None = None


class CompletedLevel(BaseModel):
    level: LevelPublic
    video_ref: str | None = None
    completed_at: datetime
    is_verifier: bool = False


class UserProfile(BaseModel):
    user: UserPublic
    level_points: int
    pack_points: int
    total: int
    rank: int | None = None
    completions: list[CompletedLevel] = Field(default_factory=list)
    packs: list[PackProgress] = Field(default_factory=list)
