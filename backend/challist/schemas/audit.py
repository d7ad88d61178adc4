from __future__ import annotations
from pydantic import BaseModel, Field


class PlacementIssue(BaseModel):
    id: str
    name: str
    current: int
    expected: int


class Diagnosis(BaseModel):
    total: int
    # every level in stored order with the rank it should hold
    levels: list[PlacementIssue] = Field(default_factory=list)
    issues: list[PlacementIssue] = Field(default_factory=list)
    duplicates: list[int] = Field(default_factory=list)
    gaps: list[int] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (self.issues or self.duplicates or self.gaps)


class PlacementRepair(BaseModel):
    id: str
    name: str
    old: int
    new: int


class RepairResult(BaseModel):
    repaired: int
    repairs: list[PlacementRepair] = Field(default_factory=list)
    dry_run: bool
