"""Floor clamping for non-physical trait predictions."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import numpy as np

from plant_traits.config import TRAIT_FLOOR

if TYPE_CHECKING:
    from plant_traits.processing.batch import TraitRaster


def _clamp_values(values: np.ndarray, floor: float) -> np.ndarray:
    """Replace strictly negative values with ``floor``; NaN passes through."""
    value_array = np.asarray(values, dtype=np.float64)
    return np.where(value_array < 0.0, floor, value_array)


def clamp_floor(
    trait_raster: TraitRaster | np.ndarray,
    floor: float = TRAIT_FLOOR,
) -> TraitRaster | np.ndarray:
    """Floor negative trait values to a small positive constant.

    Parameters
    ----------
    trait_raster : TraitRaster | numpy.ndarray
        Predicted trait values.
    floor : float, optional
        Replacement for values strictly below zero. Must be positive.

    Returns
    -------
    TraitRaster | numpy.ndarray
        New object of the same kind. Zero stays zero and no-data pixels are
        left untouched.

    Examples
    --------
    >>> clamp_floor(np.array([-2.0, 0.0, 3.0])).tolist()
    [1e-05, 0.0, 3.0]
    """
    if not floor > 0.0:
        raise ValueError(f"floor must be > 0, got {floor}")
    if isinstance(trait_raster, np.ndarray):
        return _clamp_values(trait_raster, floor)
    clamped = _clamp_values(trait_raster.values, floor)
    clamped[~trait_raster.valid_mask] = trait_raster.nodata
    return replace(trait_raster, values=clamped)
