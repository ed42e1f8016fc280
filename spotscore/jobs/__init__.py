from .batch import refresh_dynamic_scores, refresh_static_scores, validate_spots_batch

__all__ = ["refresh_dynamic_scores", "refresh_static_scores", "validate_spots_batch"]
