from __future__ import annotations
import math
from typing import Callable, Literal
from challist.errors import InvalidRank, ValidationError

Strategy = Literal["linear", "percent"]

MAX_POINTS = 150
MIN_POINTS = 1
SCORED_WINDOW = 150

LEGACY_MAX_POINTS = 100


def round_half_up(x: float) -> int:
    """Nearest integer, .5 rounds up (Python's round() is banker's rounding)."""
    return int(math.floor(x + 0.5))


def _check(placement: int) -> None:
    if placement < 1:
        raise InvalidRank(f"placement must be >= 1, got {placement}")


def linear_points(placement: int, n: int) -> int:
    """
    150 at rank 1 down to 1 at rank M = min(N, 150), linear, rounded half up.
    Levels past the scored window are worth 0.

    >>> [linear_points(p, 3) for p in (1, 2, 3)]
    [150, 76, 1]
    """
    _check(placement)
    m = min(n, SCORED_WINDOW)
    if placement > m:
        return 0
    if m == 1:
        return MAX_POINTS
    step = (MAX_POINTS - MIN_POINTS) / (m - 1)
    return round_half_up(MAX_POINTS - (placement - 1) * step)


def percent_points(placement: int, n: int) -> int:
    """Legacy display variant: 1 + 99 * (N - p) / (N - 1), 100 for a one-level list."""
    _check(placement)
    if placement > n:
        return 0
    if n == 1:
        return LEGACY_MAX_POINTS
    return round_half_up(1 + (LEGACY_MAX_POINTS - 1) * (n - placement) / (n - 1))


STRATEGIES: dict[str, Callable[[int, int], int]] = {
    "linear": linear_points,
    "percent": percent_points,
}


def points(placement: int, n: int, strategy: Strategy | str = "linear") -> int:
    """Point value of `placement` in a list of `n` levels. Evaluate at read time, never store."""
    try:
        fn = STRATEGIES[strategy]
    except KeyError:
        raise ValidationError(f"unknown scoring strategy: {strategy}") from None
    return fn(placement, n)
