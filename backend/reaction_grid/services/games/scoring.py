import math
from numbers import Real

BASE_SCORE_MAX = 1000
STREAK_BONUS = 100


def score_round(reaction_time_ms: float, streak: int) -> int:
    """Score one successful tap.

    ``floor(max(0, 1000 - t) + streak * 100)`` where ``streak`` already counts
    the current success. Negative times clamp to the 1000 baseline.
    """
    if not isinstance(reaction_time_ms, Real) or isinstance(reaction_time_ms, bool) or math.isnan(reaction_time_ms):
        raise ValueError(f"reaction_time_ms must be a number, got {reaction_time_ms!r}")
    if not isinstance(streak, int) or isinstance(streak, bool) or streak < 0:
        raise ValueError(f"streak must be a non-negative integer, got {streak!r}")
    base = min(BASE_SCORE_MAX, max(0, BASE_SCORE_MAX - reaction_time_ms))
    return int(math.floor(base + streak * STREAK_BONUS))
