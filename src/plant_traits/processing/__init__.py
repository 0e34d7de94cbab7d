"""Raster-level trait evaluation: tiling, file I/O and background workers."""

from plant_traits.processing.batch import (
    RasterBatchProcessor,
    SpectralRaster,
    TraitRaster,
    TraitRequest,
)
from plant_traits.processing.geotiff import evaluate_geotiff
from plant_traits.processing.indices import compute_ndvi
from plant_traits.processing.worker import TraitInferenceInput, TraitInferenceWorker

__all__ = [
    "RasterBatchProcessor",
    "SpectralRaster",
    "TraitInferenceInput",
    "TraitInferenceWorker",
    "TraitRaster",
    "TraitRequest",
    "compute_ndvi",
    "evaluate_geotiff",
]
