"""
Signal Fusion
=============

The aggregation shared by spot validation and access detection.

Two variants over the same ``Signal`` type:

1. Point sum (validation): every fired signal carries a signed integer
   impact, the score is the clamped sum.
2. Weighted vote (access detection): every signal proposes an outcome
   with a tier weight (high=3, medium=2, low=1). Weights are summed per
   outcome, the heaviest outcome wins, and confidence is its share of
   the total weight.

Ties in the vote are broken by a fixed priority list, so the result
never depends on the order signals were gathered in.
"""

import math
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence

from spotscore.domain import Signal

SCORE_MIN = 0
SCORE_MAX = 100


def round_half_up(value: float) -> int:
    """Round .5 upwards (2.5 -> 3, -2.5 -> -2), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round and bound a raw value to an integer score in [0, 100]."""
    return max(SCORE_MIN, min(SCORE_MAX, round_half_up(value)))


def sum_points(signals: Iterable[Signal]) -> int:
    """Unbounded sum of point-signal impacts."""
    return sum(signal.weight for signal in signals if signal.outcome is None)


@dataclass
class FusionResult:
    """
    Outcome of a weighted vote.

    Attributes:
        outcome: Winning outcome, None when no signal voted.
        confidence: Winner's share of the total weight (0-100).
        totals: Summed weight per outcome, in first-seen order.
        total_weight: Sum of every vote's weight.
    """

    outcome: Optional[str]
    confidence: int
    totals: Dict[str, int] = field(default_factory=dict)
    total_weight: int = 0


def fuse_signals(signals: Iterable[Signal], priority: Sequence[str] = ()) -> FusionResult:
    """
    Resolve a weighted vote.

    Args:
        signals: Vote signals; point signals (no outcome) are ignored.
        priority: Outcomes ordered from highest to lowest precedence,
            used only to break exact weight ties. Outcomes missing from
            the list rank after it, alphabetically.

    Returns:
        FusionResult with ``outcome=None, confidence=0`` for no votes.
    """
    totals: Dict[str, int] = OrderedDict()
    for signal in signals:
        if signal.outcome is None:
            continue
        totals[signal.outcome] = totals.get(signal.outcome, 0) + signal.weight

    total_weight = sum(totals.values())
    if total_weight <= 0:
        return FusionResult(outcome=None, confidence=0, totals=dict(totals), total_weight=0)

    rank = {outcome: index for index, outcome in enumerate(priority)}
    best = min(totals, key=lambda outcome: (-totals[outcome], rank.get(outcome, len(rank)), outcome))
    confidence = min(SCORE_MAX, round_half_up(100 * totals[best] / total_weight))

    return FusionResult(
        outcome=best,
        confidence=confidence,
        totals=dict(totals),
        total_weight=total_weight,
    )
