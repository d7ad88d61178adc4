from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from challist.models.pack import Pack


def _dedupe(v: list[str]) -> list[str]:
    out = list(dict.fromkeys(x.strip() for x in v if x and x.strip()))
    if not out:
        raise ValueError("A pack needs at least one level")
    return out


class PackCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    category: str = Field(min_length=1, max_length=64)
    bonus_points: int = Field(default=0, ge=0)
    level_ids: list[str]

    @field_validator("level_ids")
    @classmethod
    def unique_levels(cls, v: list[str]):
        return _dedupe(v)


class PackUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    category: str | None = Field(default=None, min_length=1, max_length=64)
    bonus_points: int | None = Field(default=None, ge=0)
    level_ids: list[str] | None = None

    @field_validator("level_ids")
    @classmethod
    def unique_levels(cls, v: list[str] | None):
        return None if v is None else _dedupe(v)


class PackPublic(BaseModel):
    id: str
    name: str
    description: str
    category: str
    bonus_points: int
    level_ids: list[str]        # dangling ids already filtered out
    created_at: datetime | None = None

    @classmethod
    def of(cls, pack: Pack, level_ids: list[str]) -> "PackPublic":
        return cls(
            id=pack.id,
            name=pack.name,
            description=pack.description or "",
            category=pack.category or "Uncategorized",
            bonus_points=pack.bonus_points,
            level_ids=level_ids,
            created_at=pack.created_at,
        )


class PackProgress(BaseModel):
    pack_id: str
    completed: int
    total: int
    percent: int = Field(ge=0, le=100)
    is_completed: bool
