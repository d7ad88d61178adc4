from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, Field

from challist.schemas.level import LevelPublic
from challist.schemas.user import UserPublic


class UserTotals(BaseModel):
    user_id: str
    level_points: int = 0
    pack_points: int = 0
    total: int = 0
    completed_count: int = 0


class LeaderboardRow(UserTotals):
    rank: int
    username: str | None = None
    avatar: str | None = None


class Completer(BaseModel):
    user_id: str
    username: str | None = None
    video_ref: str | None = None
    completed_at: datetime
    is_verifier: bool = False


class LevelDetail(BaseModel):
    level: LevelPublic
    completions: list[Completer] = Field(default_factory=list)


class SearchResults(BaseModel):
    users: list[UserPublic] = Field(default_factory=list)
    levels: list[LevelPublic] = Field(default_factory=list)
