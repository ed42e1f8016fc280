# Importing every model here registers them all on Base.metadata, so
# `from spotscore import models` resolves every relationship string.
from .base import Base
from .regulation import SpotRegulation
from .review import Review
from .species import Species, SpeciesObservation, SpotSpecies
from .spot import Spot
from .water import BiologicalIndex, WaterQualitySnapshot

__all__ = [
    "Base",
    "BiologicalIndex",
    "Review",
    "Species",
    "SpeciesObservation",
    "Spot",
    "SpotRegulation",
    "SpotSpecies",
    "WaterQualitySnapshot",
]
