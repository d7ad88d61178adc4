from __future__ import annotations
from datetime import datetime
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from challist.models.submission import Submission
from challist.schemas.level import LevelTags, _normalize_video

SubmissionStatus = Literal["pending", "approved", "declined"]


class LevelSubmission(BaseModel):
    """A new level proposed for the list."""
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Literal["level"] = "level"
    level_id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    creator: str = Field(min_length=1, max_length=120)
    verifier: str = Field(min_length=1, max_length=120)
    video_ref: str
    tags: LevelTags
    description: str | None = None
    suggested_placement: int | None = Field(default=None, ge=1)
    enjoyment_rating: float | None = Field(default=None, ge=0, le=10)

    @field_validator("video_ref")
    @classmethod
    def normalize_video(cls, v: str):
        vid = _normalize_video(v)
        if vid is None:
            raise ValueError("A verification video is required")
        return vid


class CompletionSubmission(BaseModel):
    """Claim of having beaten a level already on the list."""
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Literal["completion"] = "completion"
    level_id: str = Field(min_length=1, max_length=64)
    video_ref: str
    enjoyment_rating: float | None = Field(default=None, ge=0, le=10)

    @field_validator("video_ref")
    @classmethod
    def normalize_video(cls, v: str):
        vid = _normalize_video(v)
        if vid is None:
            raise ValueError("A completion video is required")
        return vid


SubmissionCreate = Annotated[Union[LevelSubmission, CompletionSubmission], Field(discriminator="type")]


class SubmissionPublic(BaseModel):
    id: str
    type: str
    submitter_id: str
    submitter_name: str
    status: SubmissionStatus
    payload: dict = Field(default_factory=dict)
    submitted_at: datetime
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None

    @classmethod
    def of(cls, s: Submission) -> "SubmissionPublic":
        return cls(
            id=s.id,
            type=s.type,
            submitter_id=s.submitter_id,
            submitter_name=s.submitter_name,
            status=s.status,
            payload=s.payload or {},
            submitted_at=s.submitted_at,
            reviewed_at=s.reviewed_at,
            reviewed_by=s.reviewed_by,
        )
