from __future__ import annotations
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator

from challist.models.level import Level
from challist.services.scoring import points
from challist.services.video import extract_video_id

Difficulty = Literal["Insane", "Extreme", "Legacy"]
Gamemode = Literal["Mixed", "Cube", "Ship", "Ball", "UFO", "Wave", "Robot", "Spider"]
DecorationStyle = Literal["Effect", "Modern", "Classic", "Themed", "Minimalist"]
ExtraTag = Literal["Epilepsy", "Flashing", "Dual", "Triple", "Memory", "Timing", "LDMod"]


def _normalize_video(v: str | None) -> str | None:
    if v is None or v == "":
        return None
    vid = extract_video_id(v)
    if not vid:
        raise ValueError("Invalid YouTube URL or video ID")
    return vid


class LevelTags(BaseModel):
    difficulty: Difficulty
    gamemode: Gamemode
    decoration_style: DecorationStyle
    extra_tags: list[ExtraTag] = Field(default_factory=list)

    @field_validator("extra_tags")
    @classmethod
    def dedupe(cls, v: list[str]):
        # set semantics, first occurrence keeps its position
        return list(dict.fromkeys(v))


class LevelCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    creator: str = Field(min_length=1, max_length=120)
    verifier: str = Field(min_length=1, max_length=120)
    video_ref: str | None = Field(default=None, description="YouTube URL or 11-char id")
    tags: LevelTags
    description: str | None = None

    @field_validator("video_ref")
    @classmethod
    def normalize_video(cls, v: str | None):
        return _normalize_video(v)

    def to_model(self, placement: int = 0) -> Level:
        return Level(
            id=self.id,
            placement=placement,
            name=self.name,
            creator=self.creator,
            verifier=self.verifier,
            video_ref=self.video_ref,
            difficulty=self.tags.difficulty,
            gamemode=self.tags.gamemode,
            decoration_style=self.tags.decoration_style,
            extra_tags=list(self.tags.extra_tags),
            description=self.description,
            enjoyment_ratings=[],
        )


class LevelInsert(LevelCreate):
    placement: int | None = Field(default=None, ge=1, description="Omit to append at the end")


class LevelUpdate(BaseModel):
    """Non-placement edits. Placement only moves through the ledger."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=200)
    creator: str | None = Field(default=None, min_length=1, max_length=120)
    verifier: str | None = Field(default=None, min_length=1, max_length=120)
    video_ref: str | None = None
    tags: LevelTags | None = None
    description: str | None = None

    @field_validator("video_ref")
    @classmethod
    def normalize_video(cls, v: str | None):
        return _normalize_video(v)

    def fields(self) -> dict:
        data = self.model_dump(exclude_unset=True, exclude={"tags"})
        if self.tags is not None:
            data.update(
                difficulty=self.tags.difficulty,
                gamemode=self.tags.gamemode,
                decoration_style=self.tags.decoration_style,
                extra_tags=list(self.tags.extra_tags),
            )
        return data


class PlacementMove(BaseModel):
    placement: int = Field(ge=1)


class LevelPublic(BaseModel):
    id: str
    placement: int
    points: int
    name: str
    creator: str
    verifier: str
    video_ref: str | None = None
    tags: LevelTags
    description: str | None = None
    enjoyment: float | None = None   # mean of submitted ratings
    enjoyment_count: int = 0
    added_at: datetime | None = None

    @classmethod
    def of(cls, level: Level, total: int, strategy: str = "linear") -> "LevelPublic":
        ratings = [float(r) for r in (level.enjoyment_ratings or [])]
        return cls(
            id=level.id,
            placement=level.placement,
            points=points(level.placement, total, strategy) if level.placement >= 1 else 0,
            name=level.name,
            creator=level.creator,
            verifier=level.verifier,
            video_ref=level.video_ref,
            tags=LevelTags(
                difficulty=level.difficulty,
                gamemode=level.gamemode,
                decoration_style=level.decoration_style,
                extra_tags=level.extra_tags or [],
            ),
            description=level.description,
            enjoyment=round(sum(ratings) / len(ratings), 2) if ratings else None,
            enjoyment_count=len(ratings),
            added_at=level.added_at,
        )
