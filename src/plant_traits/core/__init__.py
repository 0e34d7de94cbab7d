# plant-traits Core Module
"""
Core numeric logic for trait retrieval.

Contains:
- Error taxonomy
- Trait identifiers and legend catalogue
- TraitModel definition and model store
- GPR posterior-mean engine
- Floor clamping post-processor
"""

from plant_traits.core.errors import (
    BandMismatchError,
    EvaluationCancelled,
    NumericError,
    TraitRetrievalError,
    UnknownTraitError,
)
from plant_traits.core.gpr import predict, predict_pixels
from plant_traits.core.model_store import TraitModelStore, default_store
from plant_traits.core.postprocess import clamp_floor
from plant_traits.core.trait_model import TraitModel
from plant_traits.core.traits import TraitId

__all__ = [
    "BandMismatchError",
    "EvaluationCancelled",
    "NumericError",
    "TraitId",
    "TraitModel",
    "TraitModelStore",
    "TraitRetrievalError",
    "UnknownTraitError",
    "clamp_floor",
    "default_store",
    "predict",
    "predict_pixels",
]
