from .access import detect_access_type
from .activity_index import calculate_activity_index
from .combiner import compute_fishability_score
from .confidence import compute_confidence_score
from .dynamic import DynamicScoreCalculator, compute_dynamic_score
from .fusion import fuse_signals
from .static import StaticScoreCalculator, compute_static_score

__all__ = [
    "DynamicScoreCalculator",
    "StaticScoreCalculator",
    "calculate_activity_index",
    "compute_confidence_score",
    "compute_dynamic_score",
    "compute_fishability_score",
    "compute_static_score",
    "detect_access_type",
    "fuse_signals",
]
