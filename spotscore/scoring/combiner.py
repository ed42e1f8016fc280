"""Fishability score: the blend of static and dynamic scores shown to users."""

from spotscore.scoring.fusion import round_half_up

STATIC_WEIGHT = 0.45
DYNAMIC_WEIGHT = 0.55

# Stand-in for a score that was never computed
NEUTRAL_SCORE = 50


def compute_fishability_score(static_score: int, dynamic_score: int) -> int:
    """
    ``round(0.45 * static + 0.55 * dynamic)``.

    Pure; always recomputable from the two persisted scores.
    """
    return round_half_up(STATIC_WEIGHT * static_score + DYNAMIC_WEIGHT * dynamic_score)
