from __future__ import annotations


class EngineError(Exception):
    """Base for every error the placement/scoring engine raises on purpose."""


# ---------- caller input ----------

class ValidationError(EngineError):
    """Malformed input, rejected before any mutation."""

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class InvalidRank(ValidationError):
    pass


class InvalidTransition(ValidationError):
    """Submission is already approved/declined."""


# ---------- missing references ----------

class NotFoundError(EngineError):
    pass


class ItemNotFound(NotFoundError):
    def __init__(self, level_id: str):
        super().__init__(f"Level not found: {level_id}")
        self.level_id = level_id


# ---------- drift ----------

class ConsistencyError(EngineError):
    """Stored placements are not a contiguous 1..N permutation. Run the auditor."""

    def __init__(self, message: str, placements: list[int] | None = None):
        super().__init__(message)
        self.placements = placements or []


class DuplicatePlacement(ConsistencyError):
    pass


class PlacementGap(ConsistencyError):
    pass


# ---------- storage collaborator ----------

class UpstreamError(EngineError):
    pass
